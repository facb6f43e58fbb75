"""기본 CRUD 레포지토리 — 모든 레포지토리의 부모 클래스.

Base CRUD Repository — Generic repository shared by every mapped model.
Provides create, get, list, bulk update, delete, read-modify-write and
transaction operations driven by a Query predicate and query options.

Reads and plain writes only flush; committing is left to the caller.
``update_by_fn`` and ``transaction`` own exactly one transaction (a SAVEPOINT
when the session is already inside one).

Usage:
    class UserRepository(CRUDRepository[User]):
        def __init__(self) -> None:
            super().__init__(User)

    user_repository = CRUDRepository(User)
    user = await user_repository.get(db, q(email="a@b.c"), preload("orders"))
"""

import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from contextlib import asynccontextmanager, contextmanager
from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase

from dryrepo.repositories.query import OptionFn, Query, build_options
from dryrepo.utils.exceptions import ConfigurationError, NotFoundError, PersistenceError
from dryrepo.utils.pagination import ListResult, page_count

logger = logging.getLogger(__name__)

# 제네릭 타입 변수 — SQLAlchemy 모델을 나타냄
# Generic type variable representing a SQLAlchemy model
ModelType = TypeVar("ModelType", bound=DeclarativeBase)
ResultT = TypeVar("ResultT")

# 변경 여부를 반환하는 갱신 함수 — 동기/비동기 모두 허용
# Update function returning whether the record changed (sync or async)
UpdateFn = Callable[[ModelType], bool | Awaitable[bool]]


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    """저장소 오류를 PersistenceError로 변환합니다 (Translate store errors)."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise PersistenceError(f"{action} failed: {exc}") from exc


@asynccontextmanager
async def _transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """트랜잭션 하나를 시작하고 결과에 따라 커밋/롤백합니다.

    Begin one transaction, or a SAVEPOINT when the session is already in a
    transaction. Any exception rolls back and propagates unchanged; normal
    exit commits (or releases the savepoint).
    """
    with _store_errors("begin"):
        if db.in_transaction():
            tx = await db.begin_nested()
        else:
            tx = await db.begin()

    try:
        yield db
    except BaseException:
        # 롤백 실패가 원래 예외를 가리지 않도록 함 (Original error wins over a failed rollback)
        try:
            await tx.rollback()
        except Exception:
            logger.exception("transaction rollback failed")
        else:
            logger.debug("transaction rolled back")
        raise

    with _store_errors("commit"):
        await tx.commit()


class CRUDRepository(Generic[ModelType]):
    """제네릭 CRUD 레포지토리.

    Generic CRUD repository providing common database operations for any
    mapped model. Every operation takes the async session first; the session
    is propagated untouched through nested calls.

    Attributes:
        model: SQLAlchemy 모델 클래스 (The SQLAlchemy model class)
    """

    def __init__(self, model: type[ModelType]) -> None:
        """레포지토리를 초기화합니다.

        Initialize the repository with a model class.

        Args:
            model: 이 레포지토리가 관리할 SQLAlchemy 모델 클래스
                   (SQLAlchemy model class this repository manages)
        """
        self.model: type[ModelType] = model

    def _select(self, query: Query) -> Select:
        """조건이 적용된 기본 SELECT 쿼리 (Base SELECT with the predicate applied)."""
        return select(self.model).where(*query.criteria(self.model))

    def _require_conditions(self, query: Query, action: str) -> None:
        # 조건 없는 일괄 변경 금지 — No unconditioned bulk writes
        if query.is_empty:
            raise ConfigurationError(f"{action} on {self.model.__name__} requires at least one condition")

    async def create(self, db: AsyncSession, *records: ModelType) -> list[ModelType]:
        """하나 이상의 레코드를 생성합니다.

        Insert one or more records in a single flush. Server-generated fields
        (identity, timestamps) are back-filled into the given instances.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            *records: 생성할 레코드 인스턴스 (Record instances to insert)

        Returns:
            list[ModelType]: 생성된 레코드 (The same instances, refreshed)

        Raises:
            PersistenceError: 제약 조건 위반 또는 연결 실패
                              (Constraint violation or connectivity failure)
        """
        if not records:
            return []

        with _store_errors(f"create {self.model.__name__}"):
            db.add_all(records)
            await db.flush()
            for record in records:
                await db.refresh(record)
        return list(records)

    async def get(self, db: AsyncSession, query: Query, *opts: OptionFn) -> ModelType | Any:
        """조건에 맞는 첫 번째 레코드를 조회합니다.

        Retrieve the first record matching the predicate. Ordering is applied
        before the first row is chosen; preloads are populated.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            query: 쿼리 조건 (Query predicate)
            *opts: 쿼리 옵션 (order_by, preload, suppress_not_found)

        Returns:
            ModelType | Any: 조회된 레코드, 또는 억제 시 변환 함수의 결과
                             (Found record, or the mapped result when suppressed)

        Raises:
            NotFoundError: 일치하는 레코드가 없고 억제되지 않은 경우
                           (No match and suppression not configured)
        """
        options = build_options(*opts)
        stmt: Select = (
            self._select(query)
            .order_by(*options.sort_clauses(self.model))
            .options(*options.loader_options(self.model))
            .limit(1)
        )

        with _store_errors(f"get {self.model.__name__}"):
            record: ModelType | None = (await db.execute(stmt)).scalars().first()

        if record is None:
            return options.resolve_not_found(NotFoundError(f"{self.model.__name__} not found for {query!r}"))
        return record

    async def list(self, db: AsyncSession, query: Query, *opts: OptionFn) -> ListResult[ModelType]:
        """조건에 맞는 모든 레코드를 조회합니다.

        Retrieve every matching record, ordered and preloaded per options.
        With pagination a count query runs first over the predicate alone,
        then ``OFFSET (page-1)*page_size LIMIT page_size`` is applied.
        Without pagination the result is a single page holding everything.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            query: 쿼리 조건 (Query predicate)
            *opts: 쿼리 옵션 (paginate, order_by, preload)

        Returns:
            ListResult[ModelType]: 레코드 목록과 페이지 정보
                                   (Records with pagination metadata)
        """
        options = build_options(*opts)
        base: Select = self._select(query)
        stmt: Select = base.order_by(*options.sort_clauses(self.model)).options(
            *options.loader_options(self.model)
        )

        with _store_errors(f"list {self.model.__name__}"):
            if options.paginate:
                # 전체 카운트 쿼리 — 정렬/프리로드 없이 조건만 적용 (Count ignores order and preloads)
                count_query: Select = select(func.count()).select_from(base.subquery())
                options.total = (await db.execute(count_query)).scalar() or 0

                # 오프셋 계산 및 페이지 적용 — Calculate offset and apply pagination
                offset: int = (options.page - 1) * options.page_size
                stmt = stmt.offset(offset).limit(options.page_size)

            items: Sequence[ModelType] = (await db.execute(stmt)).scalars().all()

        if not options.paginate:
            return ListResult(
                items=list(items),
                total=len(items),
                page=1,
                page_size=max(len(items), 1),
                page_count=1 if items else 0,
            )

        return ListResult(
            items=list(items),
            total=options.total,
            page=options.page,
            page_size=options.page_size,
            page_count=page_count(options.total, options.page_size),
        )

    async def update(self, db: AsyncSession, query: Query, values: dict[str, Any]) -> None:
        """조건에 맞는 모든 레코드의 필드를 일괄 업데이트합니다.

        Bulk field-level update of every matching row. The affected row count
        is not reported, and no caller instance is back-filled; instances
        already tracked by the session are synchronised by SQLAlchemy.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            query: 쿼리 조건, 비어 있으면 안 됨 (Query predicate, must not be empty)
            values: 업데이트할 필드와 값 (Fields and values to set)

        Raises:
            ConfigurationError: 빈 조건 또는 알 수 없는 필드 (Empty predicate or unknown field)
            PersistenceError: 저장소 실패 (Store failure)
        """
        self._require_conditions(query, "update")
        if not values:
            return

        for field in values:
            if field not in self.model.__mapper__.columns:
                raise ConfigurationError(f"{self.model.__name__} has no column {field!r}")

        stmt = update(self.model).where(*query.criteria(self.model)).values(**values)
        with _store_errors(f"update {self.model.__name__}"):
            await db.execute(stmt)

    async def delete(self, db: AsyncSession, query: Query, *opts: OptionFn) -> int | Any:
        """조건에 맞는 모든 레코드를 삭제합니다.

        Remove every matching record through the unit of work so ORM cascades
        apply. No match follows the same not-found contract as ``get``.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            query: 쿼리 조건, 비어 있으면 안 됨 (Query predicate, must not be empty)
            *opts: 쿼리 옵션 (suppress_not_found)

        Returns:
            int | Any: 삭제된 레코드 수, 또는 억제 시 변환 함수의 결과
                       (Number of deleted records, or the mapped result)

        Raises:
            NotFoundError: 일치하는 레코드가 없고 억제되지 않은 경우
            ConfigurationError: 빈 조건 (Empty predicate)
        """
        self._require_conditions(query, "delete")
        options = build_options(*opts)

        with _store_errors(f"delete {self.model.__name__}"):
            records: Sequence[ModelType] = (await db.execute(self._select(query))).scalars().all()
            if records:
                for record in records:
                    await db.delete(record)
                await db.flush()

        if not records:
            return options.resolve_not_found(NotFoundError(f"{self.model.__name__} not found for {query!r}"))
        return len(records)

    async def update_by_fn(
        self,
        db: AsyncSession,
        query: Query,
        update_fn: UpdateFn,
    ) -> ModelType:
        """갱신 함수로 레코드를 읽고-수정하고-저장합니다.

        Read-modify-write inside one transaction: fetch the first match (with
        ``FOR UPDATE`` where supported), call ``update_fn(record)``, and save
        only if it reports a change. When it reports no change, in-memory
        edits are discarded and nothing is written. Exceptions raised by
        ``update_fn`` roll back and propagate unchanged.

        Business rules stay in the caller's closure, e.g.::

            def deactivate(user: User) -> bool:
                if not user.is_active:
                    return False
                user.is_active = False
                return True

            await user_repository.update_by_fn(db, q(id=user_id), deactivate)

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            query: 쿼리 조건 (Query predicate)
            update_fn: 레코드를 수정하고 변경 여부를 반환하는 함수
                       (Mutates the record, returns whether it changed)

        Returns:
            ModelType: 저장된 (또는 변경되지 않은) 레코드 (The saved or untouched record)

        Raises:
            NotFoundError: 일치하는 레코드가 없을 때 (No matching record)
        """
        stmt: Select = self._select(query).limit(1).with_for_update()

        async with _transaction(db):
            with _store_errors(f"fetch {self.model.__name__}"):
                record: ModelType | None = (await db.execute(stmt)).scalars().first()
            if record is None:
                raise NotFoundError(f"{self.model.__name__} not found for {query!r}")

            changed = update_fn(record)
            if inspect.isawaitable(changed):
                changed = await changed

            with _store_errors(f"save {self.model.__name__}"):
                if not changed:
                    # 변경 없음 — 메모리 상의 수정 사항을 버리고 쓰기 생략
                    # No change: discard in-memory edits and skip the write
                    await db.refresh(record)
                    logger.debug("%s unchanged, commit without write", self.model.__name__)
                else:
                    await db.flush()
                    await db.refresh(record)
                    logger.debug("%s updated, commit with write", self.model.__name__)

        return record

    async def transaction(
        self,
        db: AsyncSession,
        fn: Callable[[AsyncSession], Awaitable[ResultT]],
    ) -> ResultT:
        """트랜잭션 안에서 작업 단위를 실행합니다.

        Run ``fn(db)`` inside one transaction (a SAVEPOINT when one is already
        open). Nested repository calls receive the same session through
        ``fn``'s argument. Any exception rolls back and propagates unchanged.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            fn: 세션을 받아 실행되는 비동기 함수 (Async unit of work)

        Returns:
            ResultT: fn의 반환값 (Whatever fn returns)
        """
        async with _transaction(db):
            return await fn(db)

    async def count(self, db: AsyncSession, query: Query) -> int:
        """조건에 맞는 레코드 수를 반환합니다 (Count matching records)."""
        count_query: Select = select(func.count()).select_from(self._select(query).subquery())
        with _store_errors(f"count {self.model.__name__}"):
            return (await db.execute(count_query)).scalar() or 0

    async def exists(self, db: AsyncSession, query: Query) -> bool:
        """조건에 맞는 레코드가 존재하는지 확인합니다.

        Check if a record matching the predicate exists.
        """
        return await self.count(db, query) > 0
