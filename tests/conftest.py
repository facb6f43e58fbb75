"""테스트 인프라 — 임시 SQLite DB, 엔진, 세션 픽스처.

Test infrastructure — Temporary database, engine, and session fixtures.
Each test gets a fresh SQLite file (aiosqlite) unless TEST_DATABASE_URL
points somewhere else. Schema is created per engine and dropped afterwards.
"""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from dryrepo.config import settings_from_mapping
from dryrepo.database import Base, create_engine_from_settings, create_session_factory
from dryrepo.repositories.base import CRUDRepository
from tests.models import Membership, Order, OrderItem, User  # noqa: F401 — register all models with metadata


# ---------------------------------------------------------------------------
# Function-scoped: 엔진, 세션
# ---------------------------------------------------------------------------
@pytest.fixture
def database_url(tmp_path) -> str:
    """테스트 DB URL. TEST_DATABASE_URL 환경 변수로 재정의 가능."""
    return os.environ.get("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")


@pytest_asyncio.fixture
async def engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """테스트용 async 엔진. 스키마를 생성하고 종료 시 삭제합니다."""
    eng = create_engine_from_settings(settings_from_mapping({"DATABASE_URL": database_url}))

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield eng

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """각 테스트에 격리된 DB 세션을 제공합니다."""
    async with session_factory() as session:
        yield session
        # 커밋되지 않은 변경 처리
        try:
            await session.commit()
        except Exception:
            await session.rollback()


# ---------------------------------------------------------------------------
# 헬퍼 픽스처: 레포지토리 및 테스트 데이터
# ---------------------------------------------------------------------------
@pytest.fixture
def user_repository() -> CRUDRepository[User]:
    return CRUDRepository(User)


@pytest.fixture
def order_repository() -> CRUDRepository[Order]:
    return CRUDRepository(Order)


@pytest.fixture
def membership_repository() -> CRUDRepository[Membership]:
    return CRUDRepository(Membership)


def make_user(n: int, **overrides) -> User:
    """번호로 테스트 사용자를 생성합니다."""
    fields = {"name": f"user{n}", "email": f"user{n}@test.com", "age": 20 + n}
    fields.update(overrides)
    return User(**fields)


@pytest_asyncio.fixture
async def users(db: AsyncSession, user_repository: CRUDRepository[User]) -> list[User]:
    """5명의 사용자를 생성하고 커밋합니다 (team: a, a, b, b, None)."""
    created = await user_repository.create(
        db,
        make_user(1, team="a"),
        make_user(2, team="a"),
        make_user(3, team="b"),
        make_user(4, team="b"),
        make_user(5),
    )
    await db.commit()
    return created
