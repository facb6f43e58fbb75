"""집합 비교 유틸리티 테스트.

Set reconciliation tests — set_compare, unique and the Set collection.
"""

from dryrepo.utils.sets import Set, set_compare, unique


class TestSetCompare:
    """set_compare 테스트."""

    def test_added_overlapped_deleted(self):
        """[1,2,3,4] → [3,4,5,6] 비교."""
        diff = set_compare([1, 2, 3, 4], [3, 4, 5, 6])
        assert sorted(diff.added) == [5, 6]
        assert sorted(diff.overlapped) == [3, 4]
        assert sorted(diff.deleted) == [1, 2]

    def test_partition_properties(self):
        """추가/삭제는 서로소, 합집합은 원래 컬렉션."""
        current = ["a", "b", "c", "c", "d"]
        target = ["c", "d", "e", "e"]
        added, overlapped, deleted = set_compare(current, target)

        assert set(added) & set(deleted) == set()
        assert set(added) | set(overlapped) == set(target)
        assert set(deleted) | set(overlapped) == set(current)

    def test_duplicates_reported_once(self):
        diff = set_compare([1, 1, 2], [2, 2, 3, 3])
        assert diff.added == [3]
        assert diff.overlapped == [2]
        assert diff.deleted == [1]

    def test_empty_inputs(self):
        """빈 입력."""
        assert set_compare([], []) == ([], [], [])
        diff = set_compare([], [1, 2])
        assert sorted(diff.added) == [1, 2]
        assert diff.deleted == []

    def test_accepts_generators(self):
        diff = set_compare((i for i in range(3)), iter([2, 3]))
        assert diff.added == [3]
        assert sorted(diff.deleted) == [0, 1]


class TestUnique:
    """unique 테스트."""

    def test_removes_duplicates(self):
        names = ["Alice", "Bob", "Alice", "Eve"]
        result = unique(names)
        assert len(result) == 3
        assert set(result) == {"Alice", "Bob", "Eve"}

    def test_idempotent(self):
        """unique(unique(x)) == unique(x)."""
        data = [3, 1, 3, 2, 1]
        once = unique(data)
        assert unique(once) == once
        assert set(once) == set(data)

    def test_empty(self):
        assert unique([]) == []


class TestSet:
    """Set 컬렉션 테스트."""

    def test_add_remove_contain(self):
        s: Set[int] = Set()
        s.add(1, 2, 3)
        assert s.contains(1)
        assert s.contains(1, 2)
        assert not s.contains(1, 4)

        s.remove(2)
        assert 2 not in s
        assert len(s) == 2

    def test_remove_missing_is_ignored(self):
        """없는 요소 제거는 무시."""
        s = Set([1])
        s.remove(99)
        assert s.to_list() == [1]

    def test_to_list_and_iter(self):
        s = Set(["x", "y", "x"])
        assert sorted(s.to_list()) == ["x", "y"]
        assert sorted(s) == ["x", "y"]

    def test_difference_and_intersection(self):
        left, right = Set([1, 2, 3]), Set([2, 3, 4])
        assert left.difference(right).to_list() == [1]
        assert sorted(left.intersection(right)) == [2, 3]
