"""필드 추출 및 키 매핑 유틸리티 모듈.

Field projection and keying utilities.
Values are pulled out of records through selector functions instead of
attribute-name lookups, so a typo fails at the call site rather than deep
inside a loop.

A selector returns ``(value, include)``. When ``include`` is False the record
contributes nothing: ``pluck`` compacts it out of the result and the map
builders skip it.

Usage:
    ids = pluck(users, select_all(lambda u: u.id))
    active_ids = pluck(users, lambda u: (u.id, u.is_active))
    by_id = field_map(users, select_all(lambda u: u.id))
"""

from typing import Callable, Hashable, Iterable, TypeVar

from dryrepo.utils.sets import unique

R = TypeVar("R")
V = TypeVar("V")
K = TypeVar("K", bound=Hashable)

# 선택자 — (값, 포함 여부) 반환 (Selector returning (value, include))
Selector = Callable[[R], tuple[V, bool]]


def select_all(extract: Callable[[R], V]) -> Selector[R, V]:
    """항상 포함하는 선택자로 감쌉니다.

    Wrap an unconditional extractor into a selector that always includes.
    """

    def selector(record: R) -> tuple[V, bool]:
        return extract(record), True

    return selector


def pluck(records: Iterable[R], selector: Selector[R, V]) -> list[V]:
    """레코드 목록에서 선택자가 포함한 값만 추출합니다.

    Extract the selected value of every record the selector includes.
    Excluded records leave no gap, so the result is never longer than the
    input.

    Args:
        records: 입력 레코드 (Input records)
        selector: 값 선택자 (Value selector)

    Returns:
        list[V]: 입력 순서를 유지한 값 목록 (Values in input order)
    """
    result: list[V] = []
    for record in records:
        value, include = selector(record)
        if include:
            result.append(value)
    return result


def pluck_unique(records: Iterable[R], selector: Selector[R, V]) -> list[V]:
    """중복 제거된 pluck 결과. 순서 보장 없음."""
    return unique(pluck(records, selector))


def field_map(records: Iterable[R], key_selector: Selector[R, K]) -> dict[K, R]:
    """선택된 키로 레코드를 매핑합니다.

    Build a ``key -> record`` mapping. Later records overwrite earlier ones
    on duplicate keys.

    Args:
        records: 입력 레코드 (Input records)
        key_selector: 키 선택자 (Key selector)

    Returns:
        dict[K, R]: 키별 레코드 (Record per key, last occurrence wins)
    """
    result: dict[K, R] = {}
    for record in records:
        key, include = key_selector(record)
        if include:
            result[key] = record
    return result


def field_value_map(
    records: Iterable[R],
    key_selector: Selector[R, K],
    value_selector: Selector[R, V],
) -> dict[K, V]:
    """선택된 키로 다른 필드 값을 매핑합니다.

    Build a ``key -> value`` mapping. A record contributes an entry only when
    both selectors include it; later records win on duplicate keys.

    Args:
        records: 입력 레코드 (Input records)
        key_selector: 키 선택자 (Key selector)
        value_selector: 값 선택자 (Value selector)

    Returns:
        dict[K, V]: 키별 값 (Value per key, last occurrence wins)
    """
    result: dict[K, V] = {}
    for record in records:
        key, include_key = key_selector(record)
        if not include_key:
            continue
        value, include_value = value_selector(record)
        if include_value:
            result[key] = value
    return result
