"""레포지토리 패키지 — 데이터베이스 쿼리 계층.

Repository package — Database query layer.
Contains the generic CRUD repository plus the query predicate and query
options it is driven by. Domain repositories extend CRUDRepository or use it
directly as a singleton per model.
"""
