"""쿼리 조건 및 옵션 모듈.

Query predicate and query options module.
A Query holds an inclusion mapping and an exclusion mapping that are applied
conjunctively. Query options (pagination, ordering, eager loading, not-found
suppression) are option functions folded over a default configuration.

Usage:
    query = q(organization_id=org_id).exclude(status="archived")
    opts = [paginate(2, 20), order_by("created_at desc"), preload("orders")]
    result = await user_repository.list(db, query, *opts)
"""

from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import ColumnElement, and_, or_
from sqlalchemy.orm import Load, RelationshipProperty, selectinload
from sqlalchemy.orm.attributes import InstrumentedAttribute

from dryrepo.utils.exceptions import ConfigurationError, NotFoundError

DEFAULT_PAGE: int = 1
DEFAULT_PAGE_SIZE: int = 50

# 컬렉션 값은 IN / NOT IN 조건으로 변환 (Collection values become IN / NOT IN)
_COLLECTION_TYPES = (list, tuple, set, frozenset)


def _column(model: type, field: str) -> InstrumentedAttribute:
    """매핑된 클래스에서 컬럼 속성을 찾습니다 (Resolve a mapped attribute)."""
    attr = getattr(model, field, None)
    if not isinstance(attr, InstrumentedAttribute):
        raise ConfigurationError(f"{model.__name__} has no mapped field {field!r}")
    return attr


def _split_null(values: Any) -> tuple[list[Any], bool]:
    """컬렉션에서 None을 분리합니다.

    SQL ``IN`` never matches NULL, so None is compared with IS NULL separately.
    """
    non_null = [v for v in values if v is not None]
    return non_null, len(non_null) != len(values)


class Query:
    """쿼리 조건 — 포함 조건과 제외 조건.

    Conjunctive query predicate. ``filters`` must all match; every field in
    ``exclusions`` must differ from its value. Both mappings are copied on
    construction and exposed read-only, so a Query handed to a repository is
    never mutated.

    Attributes:
        filters: 포함 조건 {필드: 값} (Equality conditions {field: value})
        exclusions: 제외 조건 {필드: 값} (Negated conditions {field: value})
    """

    __slots__ = ("filters", "exclusions")

    def __init__(
        self,
        filters: Mapping[str, Any] | None = None,
        exclusions: Mapping[str, Any] | None = None,
    ) -> None:
        self.filters: Mapping[str, Any] = MappingProxyType(dict(filters or {}))
        self.exclusions: Mapping[str, Any] = MappingProxyType(dict(exclusions or {}))

    def exclude(self, mapping: Mapping[str, Any] | None = None, **fields: Any) -> "Query":
        """제외 조건을 추가한 새 Query를 반환합니다.

        Return a new Query with the given negated conditions attached.
        The receiver is left untouched.

        Args:
            mapping: 제외 조건 딕셔너리 (Negated conditions)
            **fields: 키워드 형태의 제외 조건 (Negated conditions as keywords)

        Returns:
            Query: 새 쿼리 조건 (New predicate)
        """
        exclusions: dict[str, Any] = {**self.exclusions, **(mapping or {}), **fields}
        return Query(self.filters, exclusions)

    @property
    def is_empty(self) -> bool:
        return not self.filters and not self.exclusions

    def criteria(self, model: type) -> list[ColumnElement[bool]]:
        """조건을 SQLAlchemy WHERE 절 목록으로 변환합니다.

        Compile the predicate against a mapped class.

        Args:
            model: SQLAlchemy 모델 클래스 (Mapped class)

        Returns:
            list[ColumnElement[bool]]: AND로 결합될 조건 목록
                                       (Conditions to be ANDed together)

        Raises:
            ConfigurationError: 매핑되지 않은 필드 이름 (Unknown field name)
        """
        clauses: list[ColumnElement[bool]] = []

        for field, value in self.filters.items():
            column = _column(model, field)
            if isinstance(value, _COLLECTION_TYPES):
                values, has_null = _split_null(value)
                if has_null:
                    clauses.append(or_(column.in_(values), column.is_(None)))
                else:
                    clauses.append(column.in_(values))
            elif value is None:
                clauses.append(column.is_(None))
            else:
                clauses.append(column == value)

        # NULL 행도 "값이 다름"으로 취급 (NULL rows count as "not equal")
        for field, value in self.exclusions.items():
            column = _column(model, field)
            if isinstance(value, _COLLECTION_TYPES):
                values, has_null = _split_null(value)
                if has_null:
                    clauses.append(and_(column.not_in(values), column.is_not(None)))
                else:
                    clauses.append(or_(column.not_in(values), column.is_(None)))
            else:
                clauses.append(column.is_distinct_from(value))

        return clauses

    def __repr__(self) -> str:
        return f"Query(filters={dict(self.filters)!r}, exclusions={dict(self.exclusions)!r})"


def q(filters: Mapping[str, Any] | None = None, **fields: Any) -> Query:
    """Query 생성 축약 함수 (Shorthand for building a Query)."""
    return Query({**(filters or {}), **fields})


NotFoundFn = Callable[[NotFoundError], Any]


class QueryOptions(BaseModel):
    """쿼리 옵션 구성.

    Optional-behaviour configuration for repository reads and deletes.
    Built by :func:`build_options`; ``total`` is filled in by ``list`` when
    pagination is enabled.

    Attributes:
        order_by: 정렬 절 목록 (Sort clauses, applied in order)
        preloads: 즉시 로딩할 관계 경로 (Relationship paths to eager-load)
        paginate: 페이지네이션 여부 (Whether pagination is enabled)
        page: 페이지 번호, 1부터 시작 (Page number, 1-based)
        page_size: 페이지당 항목 수 (Items per page)
        total: 전체 개수 (Total count, set by list)
        omit_not_found: NotFound 억제 여부 (Whether not-found is suppressed)
        not_found_fn: NotFound 변환 함수 (Not-found mapping function)
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    order_by: list[Any] = Field(default_factory=list)
    preloads: list[str] = Field(default_factory=list)
    paginate: bool = False
    page: int = DEFAULT_PAGE
    page_size: int = DEFAULT_PAGE_SIZE
    total: int = 0
    omit_not_found: bool = False
    not_found_fn: NotFoundFn | None = None

    def sort_clauses(self, model: type) -> list[ColumnElement[Any]]:
        """정렬 절을 SQLAlchemy 표현식으로 변환합니다.

        ``"name"``, ``"name asc"``, ``"name desc"`` and ``"-name"`` are
        resolved against the model; column expressions pass through.
        """
        clauses: list[ColumnElement[Any]] = []
        for clause in self.order_by:
            if not isinstance(clause, str):
                clauses.append(clause)
                continue

            parts = clause.split()
            descending = False
            if len(parts) == 2 and parts[1].lower() in ("asc", "desc"):
                descending = parts[1].lower() == "desc"
            elif len(parts) != 1:
                raise ConfigurationError(f"Invalid order by clause {clause!r}")

            field = parts[0]
            if field.startswith("-"):
                descending, field = True, field[1:]

            column = _column(model, field)
            clauses.append(column.desc() if descending else column.asc())
        return clauses

    def loader_options(self, model: type) -> list[Load]:
        """관계 경로를 selectinload 옵션으로 변환합니다.

        Dotted paths (``"orders.items"``) chain nested relationships.
        """
        loaders: list[Load] = []
        for path in self.preloads:
            loader = None
            current: type = model
            for name in path.split("."):
                attr = _column(current, name)
                if not isinstance(attr.property, RelationshipProperty):
                    raise ConfigurationError(f"{current.__name__}.{name} is not a relationship")
                loader = selectinload(attr) if loader is None else loader.selectinload(attr)
                current = attr.property.mapper.class_
            if loader is not None:
                loaders.append(loader)
        return loaders

    def resolve_not_found(self, error: NotFoundError) -> Any:
        """NotFound 오류를 억제 설정에 따라 처리합니다.

        Without suppression the error is raised. With suppression it goes
        through ``not_found_fn``; an exception result is raised, anything
        else is returned.
        """
        if not self.omit_not_found or self.not_found_fn is None:
            raise error
        mapped = self.not_found_fn(error)
        if isinstance(mapped, BaseException):
            raise mapped
        return mapped


OptionFn = Callable[[QueryOptions], QueryOptions]


def paginate(page: int = DEFAULT_PAGE, page_size: int = DEFAULT_PAGE_SIZE) -> OptionFn:
    """페이지네이션을 활성화합니다.

    Enable pagination. A non-positive ``page`` or ``page_size`` keeps the
    current value.
    """

    def apply(opts: QueryOptions) -> QueryOptions:
        opts.paginate = True
        if page > 0:
            opts.page = page
        if page_size > 0:
            opts.page_size = page_size
        return opts

    return apply


def order_by(*clauses: Any) -> OptionFn:
    """정렬 절을 설정합니다 (Replaces any earlier ordering)."""

    def apply(opts: QueryOptions) -> QueryOptions:
        opts.order_by = list(clauses)
        return opts

    return apply


def preload(*relations: str) -> OptionFn:
    """즉시 로딩할 관계를 설정합니다 (Replaces any earlier preloads)."""

    def apply(opts: QueryOptions) -> QueryOptions:
        opts.preloads = list(relations)
        return opts

    return apply


def suppress_not_found(fn: NotFoundFn) -> OptionFn:
    """NotFound 오류를 변환 함수로 억제합니다.

    Route not-found conditions through ``fn`` instead of raising.

    Args:
        fn: NotFoundError를 받아 결과 또는 예외를 반환하는 함수
            (Receives the NotFoundError; returns a value or an exception)

    Raises:
        ConfigurationError: fn이 호출 가능하지 않을 때 (fn is not callable)
    """
    if fn is None or not callable(fn):
        raise ConfigurationError("suppress_not_found requires a callable mapping function")

    def apply(opts: QueryOptions) -> QueryOptions:
        opts.omit_not_found = True
        opts.not_found_fn = fn
        return opts

    return apply


def build_options(*opts: OptionFn) -> QueryOptions:
    """옵션 함수를 기본 구성에 순서대로 적용합니다.

    Fold option functions left-to-right over the default configuration.

    Raises:
        ConfigurationError: 페이지 번호나 크기가 양수가 아닐 때
                            (Non-positive page or page size)
    """
    options = QueryOptions()
    for fn in opts:
        options = fn(options)

    if options.page <= 0 or options.page_size <= 0:
        raise ConfigurationError(
            f"page and page_size must be positive (page={options.page}, page_size={options.page_size})"
        )
    return options
