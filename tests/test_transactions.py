"""트랜잭션 테스트 — update_by_fn 및 transaction.

Transactional operation tests — read-modify-write with commit-with-write,
commit-without-write and rollback outcomes, plus ad-hoc transactions and
nesting through savepoints. Results are verified through an independent
session.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction, async_sessionmaker

from dryrepo.repositories.query import Query, q
from dryrepo.utils.exceptions import NotFoundError, PersistenceError
from tests.conftest import make_user
from tests.models import User


async def _refetch(factory: async_sessionmaker[AsyncSession], user_repository, **filters) -> User:
    """독립 세션으로 다시 조회합니다."""
    async with factory() as session:
        return await user_repository.get(session, q(**filters))


class TestUpdateByFn:
    """update_by_fn 테스트."""

    async def test_changed_record_is_saved(self, session_factory, user_repository, users):
        """변경됨 → 커밋과 함께 저장."""

        def rename(user: User) -> bool:
            user.name = "renamed"
            return True

        async with session_factory() as session:
            saved = await user_repository.update_by_fn(session, q(email="user1@test.com"), rename)
            assert saved.name == "renamed"

        stored = await _refetch(session_factory, user_repository, email="user1@test.com")
        assert stored.name == "renamed"

    async def test_unchanged_record_is_not_written(self, session_factory, user_repository, users):
        """변경 없음 → 수정 사항이 저장되지 않음."""

        def touch_but_report_unchanged(user: User) -> bool:
            user.name = "should-not-persist"
            return False

        async with session_factory() as session:
            record = await user_repository.update_by_fn(
                session, q(email="user2@test.com"), touch_but_report_unchanged
            )
            assert record.name == "user2"

        stored = await _refetch(session_factory, user_repository, email="user2@test.com")
        assert stored.name == "user2"
        assert stored.updated_at == users[1].updated_at

    async def test_async_update_fn(self, session_factory, user_repository, users):
        async def grow(user: User) -> bool:
            user.age += 10
            return True

        async with session_factory() as session:
            await user_repository.update_by_fn(session, q(email="user3@test.com"), grow)

        stored = await _refetch(session_factory, user_repository, email="user3@test.com")
        assert stored.age == 33

    async def test_update_fn_error_rolls_back_and_propagates(self, session_factory, user_repository, users):
        """갱신 함수의 예외는 그대로 전파되고 롤백."""

        class BusinessRuleViolation(Exception):
            pass

        def fail(user: User) -> bool:
            user.name = "half-done"
            raise BusinessRuleViolation("age limit")

        async with session_factory() as session:
            with pytest.raises(BusinessRuleViolation, match="age limit"):
                await user_repository.update_by_fn(session, q(email="user4@test.com"), fail)

        stored = await _refetch(session_factory, user_repository, email="user4@test.com")
        assert stored.name == "user4"

    async def test_not_found(self, session_factory, user_repository, users):
        async with session_factory() as session:
            with pytest.raises(NotFoundError):
                await user_repository.update_by_fn(session, q(email="nobody@test.com"), lambda u: True)

    async def test_save_failure_is_persistence_error(self, session_factory, user_repository, users):
        def steal_email(user: User) -> bool:
            user.email = "user1@test.com"
            return True

        async with session_factory() as session:
            with pytest.raises(PersistenceError):
                await user_repository.update_by_fn(session, q(email="user5@test.com"), steal_email)

        stored = await _refetch(session_factory, user_repository, name="user5")
        assert stored.email == "user5@test.com"

    async def test_inside_open_transaction_uses_savepoint(self, db: AsyncSession, user_repository, users):
        """이미 열린 트랜잭션 안에서는 SAVEPOINT로 동작."""
        await user_repository.create(db, make_user(9))
        assert db.in_transaction()

        def bump(user: User) -> bool:
            user.age = 1
            return True

        await user_repository.update_by_fn(db, q(email="user9@test.com"), bump)
        assert db.in_transaction()
        assert await user_repository.count(db, q(age=1)) == 1


class TestTransaction:
    """transaction 테스트."""

    async def test_commit_on_success(self, session_factory, user_repository, users):
        async def work(session: AsyncSession) -> int:
            await user_repository.create(session, make_user(6))
            await user_repository.update(session, q(team="a"), {"team": "c"})
            return await user_repository.count(session, q(team="c"))

        async with session_factory() as session:
            assert await user_repository.transaction(session, work) == 2

        async with session_factory() as session:
            assert await user_repository.count(session, Query()) == 6
            assert await user_repository.count(session, q(team="c")) == 2

    async def test_rollback_on_error(self, session_factory, user_repository, users):
        """오류 발생 시 모든 변경을 롤백."""

        async def work(session: AsyncSession) -> None:
            await user_repository.create(session, make_user(7))
            await user_repository.delete(session, q(team="b"))
            raise RuntimeError("abort")

        async with session_factory() as session:
            with pytest.raises(RuntimeError, match="abort"):
                await user_repository.transaction(session, work)

        async with session_factory() as session:
            assert await user_repository.count(session, Query()) == 5
            assert await user_repository.exists(session, q(team="b"))

    async def test_nested_update_by_fn_rolls_back_with_outer(self, session_factory, user_repository, users):
        """중첩된 update_by_fn도 바깥 트랜잭션과 함께 롤백."""

        def deactivate(user: User) -> bool:
            user.is_active = False
            return True

        async def work(session: AsyncSession) -> None:
            await user_repository.update_by_fn(session, q(email="user1@test.com"), deactivate)
            raise ValueError("outer failure")

        async with session_factory() as session:
            with pytest.raises(ValueError):
                await user_repository.transaction(session, work)

        stored = await _refetch(session_factory, user_repository, email="user1@test.com")
        assert stored.is_active is True

    async def test_nested_failure_keeps_outer_work(self, session_factory, user_repository, users):
        """내부 SAVEPOINT만 롤백되고 바깥 작업은 커밋."""

        def fail(user: User) -> bool:
            raise LookupError("inner")

        async def work(session: AsyncSession) -> None:
            await user_repository.update(session, q(name="user5"), {"team": "z"})
            with pytest.raises(LookupError):
                await user_repository.update_by_fn(session, q(name="user5"), fail)

        async with session_factory() as session:
            await user_repository.transaction(session, work)

        stored = await _refetch(session_factory, user_repository, name="user5")
        assert stored.team == "z"

    async def test_failed_rollback_keeps_original_error(self, session_factory, user_repository, users, monkeypatch):
        """롤백 자체가 실패해도 원래 예외가 전파됨."""

        async def broken_rollback(self) -> None:
            raise ConnectionError("connection dropped")

        monkeypatch.setattr(AsyncSessionTransaction, "rollback", broken_rollback)

        async def work(session: AsyncSession) -> None:
            raise ValueError("business failure")

        async with session_factory() as session:
            with pytest.raises(ValueError, match="business failure"):
                await user_repository.transaction(session, work)
