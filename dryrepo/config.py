"""애플리케이션 환경 설정 모듈.

Configuration module using pydantic-settings.
All settings can be overridden via environment variables or a .env file.
Several env files or plain mappings can be merged; later sources win.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic_settings import BaseSettings

# .env 파일 절대 경로 — CWD와 무관하게 항상 프로젝트 루트의 .env를 참조
# Absolute path to .env file — ensures correct loading regardless of CWD
_ENV_FILE: Path = Path(__file__).resolve().parent.parent / ".env"


class Settings(BaseSettings):
    """데이터베이스 연결 설정 — 환경 변수 기반 구성.

    Database connection settings loaded from environment variables.

    Attributes:
        DATABASE_URL: SQLAlchemy 연결 문자열 (SQLAlchemy connection URL)
        DEBUG: 디버그 모드 플래그 (Debug mode flag, enables SQL echo)
        DB_POOL_SIZE: 커넥션 풀 크기 (Connection pool size)
        DB_MAX_OVERFLOW: 풀 초과 허용 연결 수 (Connections allowed beyond the pool)
        DB_POOL_RECYCLE: 연결 재사용 최대 시간(초) (Max connection lifetime in seconds)
        DB_POOL_PRE_PING: 연결 사전 확인 (Validate connections before use)
        DB_STATEMENT_CACHE_SIZE: asyncpg prepared statement 캐시 크기
                                 (asyncpg prepared statement cache size)
    """

    # 데이터베이스 — 드라이버 접미사는 생략 가능 (Async driver suffix may be omitted)
    DATABASE_URL: str = "sqlite+aiosqlite:///./dryrepo.db"
    DEBUG: bool = False  # True이면 SQLAlchemy SQL 로그 출력 (Enables SQL echo when True)

    # 커넥션 풀 — Connection pool (서버 DB에만 적용, server databases only)
    DB_POOL_SIZE: int = 30
    DB_MAX_OVERFLOW: int = 0
    DB_POOL_RECYCLE: int = 600  # 10분 (10 minutes)
    DB_POOL_PRE_PING: bool = True

    # Supavisor/pgbouncer 트랜잭션 모드 풀러에서 prepared statement 비활성화
    # Disable prepared statement caches for transaction-mode poolers
    DB_STATEMENT_CACHE_SIZE: int = 0

    model_config = {"env_file": _ENV_FILE, "env_file_encoding": "utf-8"}


def load_settings(*env_files: str | Path) -> Settings:
    """여러 .env 파일을 병합하여 설정을 로드합니다.

    Load settings from several env files; values in later files override
    earlier ones. Environment variables still take precedence.

    Args:
        *env_files: .env 파일 경로 목록 (Env file paths, lowest priority first)

    Returns:
        Settings: 병합된 설정 (Merged settings)
    """
    if not env_files:
        return Settings()
    return Settings(_env_file=tuple(Path(p) for p in env_files))


def settings_from_mapping(*mappings: Mapping[str, Any] | None) -> Settings:
    """딕셔너리를 병합하여 설정을 생성합니다.

    Build settings from in-memory mappings; later mappings win and ``None``
    entries are skipped. Explicit values override the environment.
    """
    merged: dict[str, Any] = {}
    for mapping in mappings:
        if mapping is None:
            continue
        merged.update(mapping)
    return Settings(**merged)


# 전역 설정 싱글턴 인스턴스 — Global settings singleton instance
settings: Settings = Settings()
