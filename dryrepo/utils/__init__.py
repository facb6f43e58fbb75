"""유틸리티 패키지 — 예외, 페이지네이션, 필드 추출, 집합 비교.

Utility package — Exceptions, pagination, field projection and set
reconciliation helpers.
"""
