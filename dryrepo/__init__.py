"""dryrepo — 제네릭 레포지토리 및 집합 동기화 툴킷.

Generic repository and reconciliation toolkit for async SQLAlchemy.
"""

from dryrepo.repositories.base import CRUDRepository
from dryrepo.repositories.query import (
    Query,
    QueryOptions,
    build_options,
    order_by,
    paginate,
    preload,
    q,
    suppress_not_found,
)
from dryrepo.utils.exceptions import (
    ConfigurationError,
    NotFoundError,
    PersistenceError,
    RepositoryError,
)
from dryrepo.utils.pagination import ListResult
from dryrepo.utils.projection import field_map, field_value_map, pluck, pluck_unique, select_all
from dryrepo.utils.sets import Set, SetDiff, set_compare, unique

__all__ = [
    "CRUDRepository",
    "ConfigurationError",
    "ListResult",
    "NotFoundError",
    "PersistenceError",
    "Query",
    "QueryOptions",
    "RepositoryError",
    "Set",
    "SetDiff",
    "build_options",
    "field_map",
    "field_value_map",
    "order_by",
    "paginate",
    "pluck",
    "pluck_unique",
    "preload",
    "q",
    "select_all",
    "set_compare",
    "suppress_not_found",
    "unique",
]
