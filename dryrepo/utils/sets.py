"""집합 비교 유틸리티 모듈.

Set reconciliation utilities.
Compares a "current" and a "target" collection of hashable keys and reports
what has to be added, what stays, and what has to be removed.

Usage:
    diff = set_compare([1, 2, 3, 4], [3, 4, 5, 6])
    # diff.added == [5, 6], diff.overlapped == [3, 4], diff.deleted == [1, 2]
    # (순서 보장 없음 — no ordering guarantee)
"""

from typing import Generic, Hashable, Iterable, Iterator, NamedTuple, TypeVar

E = TypeVar("E", bound=Hashable)


class Set(Generic[E]):
    """순서 없는 얇은 집합 타입.

    Thin unordered collection. ``add``/``remove``/``contains`` are amortized
    O(1); ``to_list`` is O(n).
    """

    def __init__(self, items: Iterable[E] = ()) -> None:
        self._items: set[E] = set(items)

    def add(self, *items: E) -> None:
        self._items.update(items)

    def remove(self, *items: E) -> None:
        """요소를 제거합니다. 없는 요소는 무시합니다 (Absent items are ignored)."""
        for item in items:
            self._items.discard(item)

    def contains(self, *items: E) -> bool:
        """모든 요소가 포함되어 있는지 확인합니다 (True if every item is present)."""
        return all(item in self._items for item in items)

    def to_list(self) -> list[E]:
        return list(self._items)

    def difference(self, other: "Set[E]") -> "Set[E]":
        return Set(self._items - other._items)

    def intersection(self, other: "Set[E]") -> "Set[E]":
        return Set(self._items & other._items)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __iter__(self) -> Iterator[E]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Set({self._items!r})"


class SetDiff(NamedTuple, Generic[E]):
    """집합 비교 결과 — (추가, 중복, 삭제).

    Result of :func:`set_compare`.

    Attributes:
        added: target에만 있는 요소 (Elements only in target)
        overlapped: 양쪽 모두에 있는 요소 (Elements in both)
        deleted: current에만 있는 요소 (Elements only in current)
    """

    added: list[E]
    overlapped: list[E]
    deleted: list[E]


def set_compare(current: Iterable[E], target: Iterable[E]) -> SetDiff[E]:
    """두 컬렉션을 비교하여 추가/중복/삭제 요소를 계산합니다.

    Compare ``current`` against ``target`` using value equality.

    Args:
        current: 현재 상태의 키 목록 (Keys currently present)
        target: 목표 상태의 키 목록 (Keys that should be present)

    Returns:
        SetDiff: ``added = target - current``, ``overlapped = current & target``,
                 ``deleted = current - target``. 순서 보장 없음 (unordered).
    """
    current_set: Set[E] = Set(current)
    target_set: Set[E] = Set(target)

    return SetDiff(
        added=target_set.difference(current_set).to_list(),
        overlapped=current_set.intersection(target_set).to_list(),
        deleted=current_set.difference(target_set).to_list(),
    )


def unique(items: Iterable[E]) -> list[E]:
    """중복을 제거한 목록을 반환합니다. 순서는 보장되지 않습니다.

    Return the distinct elements of ``items``; order is not guaranteed.
    """
    seen: dict[E, None] = {}
    for item in items:
        seen[item] = None
    return list(seen)
