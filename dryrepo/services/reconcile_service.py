"""집합 동기화 서비스 — 현재 레코드를 목표 키 목록에 맞춥니다.

Reconcile Service — Brings the records under a scope in line with a target
list of keys. Current keys are fetched through the repository, diffed with
set_compare, and the additions/removals are written in one transaction.

Usage:
    diff = await reconcile_service.sync(
        db,
        membership_repository,
        scope=q(team_id=team.id),
        key_field="user_id",
        target_keys=[u.id for u in desired_users],
        build=lambda user_id: Membership(team_id=team.id, user_id=user_id),
    )
"""

import logging
from collections.abc import Callable, Hashable, Iterable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from dryrepo.repositories.base import CRUDRepository, ModelType
from dryrepo.repositories.query import Query
from dryrepo.utils.projection import pluck, select_all
from dryrepo.utils.sets import SetDiff, set_compare

logger = logging.getLogger(__name__)


class ReconcileService:
    """목표 키 목록과 저장된 레코드를 동기화하는 서비스.

    Service that reconciles stored records with a desired set of keys.
    """

    async def diff(
        self,
        db: AsyncSession,
        repository: CRUDRepository[ModelType],
        scope: Query,
        key_field: str,
        target_keys: Iterable[Hashable],
    ) -> SetDiff[Any]:
        """저장된 키와 목표 키를 비교합니다.

        Compare the keys stored under ``scope`` with ``target_keys``
        without writing anything.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            repository: 대상 레포지토리 (Repository of the reconciled model)
            scope: 비교 범위 조건 (Predicate selecting the current records)
            key_field: 비교 키 필드 이름 (Name of the key field)
            target_keys: 목표 키 목록 (Keys that should exist)

        Returns:
            SetDiff: (추가, 중복, 삭제) 키 (Added, overlapped, deleted keys)
        """
        current = await repository.list(db, scope)
        current_keys = pluck(current.items, select_all(lambda record: getattr(record, key_field)))
        return set_compare(current_keys, target_keys)

    async def sync(
        self,
        db: AsyncSession,
        repository: CRUDRepository[ModelType],
        scope: Query,
        key_field: str,
        target_keys: Iterable[Hashable],
        build: Callable[[Any], ModelType],
    ) -> SetDiff[Any]:
        """저장된 레코드를 목표 키 목록에 맞춥니다.

        Create a record via ``build(key)`` for every added key and delete
        the records of every removed key, inside one transaction. An empty
        diff writes nothing.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            repository: 대상 레포지토리 (Repository of the reconciled model)
            scope: 동기화 범위 조건 (Predicate selecting the current records)
            key_field: 비교 키 필드 이름 (Name of the key field)
            target_keys: 목표 키 목록 (Keys that should exist)
            build: 추가 키로 새 레코드를 생성하는 함수 (Builds a record for an added key)

        Returns:
            SetDiff: 적용된 (추가, 중복, 삭제) 키 (Applied added, overlapped, deleted keys)
        """

        async def apply(session: AsyncSession) -> SetDiff[Any]:
            diff = await self.diff(session, repository, scope, key_field, target_keys)
            if diff.deleted:
                removal = Query({**scope.filters, key_field: diff.deleted}, scope.exclusions)
                await repository.delete(session, removal)
            if diff.added:
                await repository.create(session, *(build(key) for key in diff.added))

            logger.debug(
                "reconciled %s.%s: +%d =%d -%d",
                repository.model.__name__,
                key_field,
                len(diff.added),
                len(diff.overlapped),
                len(diff.deleted),
            )
            return diff

        return await repository.transaction(db, apply)


# 싱글턴 인스턴스 — Singleton instance
reconcile_service: ReconcileService = ReconcileService()
