"""페이지네이션 결과 모듈.

Pagination result module.
Provides the immutable ListResult model returned by every repository list call
and the page-count helper it relies on.
"""

import math
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


def page_count(total: int, page_size: int) -> int:
    """전체 페이지 수를 계산합니다.

    Compute ``ceil(total / page_size)``. A non-positive page size yields 0
    instead of dividing.

    Args:
        total: 전체 항목 수 (Total item count)
        page_size: 페이지당 항목 수 (Items per page)

    Returns:
        int: 전체 페이지 수 (Total pages)
    """
    if page_size <= 0 or total <= 0:
        return 0
    return math.ceil(total / page_size)


class ListResult(BaseModel, Generic[T]):
    """목록 조회 결과 모델.

    List query result with pagination metadata. Built fresh per ``list`` call
    and frozen afterwards; the ``items`` list belongs to the caller.

    Attributes:
        items: 현재 페이지 항목 목록 (Items for the current page)
        total: 페이지네이션 무시 전체 개수 (Total matches ignoring pagination)
        page: 현재 페이지 번호, 1부터 시작 (Current page, 1-based)
        page_size: 페이지당 항목 수 (Items per page)
        page_count: 전체 페이지 수 (Total pages, ceil(total/page_size))
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    items: list[Any]  # 현재 페이지 항목 목록 (Paginated items)
    total: int  # 전체 항목 수 (Total item count)
    page: int  # 현재 페이지 번호 — 1부터 시작 (Current page, 1-indexed)
    page_size: int  # 페이지당 항목 수 (Items per page)
    page_count: int  # 전체 페이지 수 (Total pages)
