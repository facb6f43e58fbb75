"""서비스 패키지 — 레포지토리 위에서 동작하는 조합 로직.

Service package — Logic composed on top of repositories, such as
reconciling stored records with a target key list.
"""
