"""Unit tests for the immutable ordered map."""

from __future__ import annotations

import pytest

from core.errors import DuplicateKeyError
from core.ordered_map import OrderedMap


def test_insert_preserves_insertion_order() -> None:
    """Keys should iterate in the order they were inserted."""
    ordered = OrderedMap.empty().insert("c", 1).insert("a", 2).insert("b", 3)

    assert list(ordered) == ["c", "a", "b"]


def test_insert_returns_new_map_without_mutating_original() -> None:
    """Holders of a prior reference should never observe later inserts."""
    original = OrderedMap.empty().insert("a", 1)

    updated = original.insert("b", 2)

    assert list(original) == ["a"] and list(updated) == ["a", "b"]


def test_insert_rejects_existing_key() -> None:
    """Insert-only semantics should fail on a duplicate key."""
    ordered = OrderedMap.empty().insert("a", 1)

    with pytest.raises(DuplicateKeyError):
        ordered.insert("a", 2)


def test_of_rejects_duplicate_pairs() -> None:
    """Construction from pairs should enforce unique keys."""
    with pytest.raises(DuplicateKeyError):
        OrderedMap.of([("a", 1), ("a", 2)])


def test_upsert_keeps_original_position() -> None:
    """Overwriting a key should keep it where it was first inserted."""
    ordered = OrderedMap.of([("a", 1), ("b", 2), ("c", 3)])

    updated = ordered.upsert("a", 10)

    assert updated.entries() == (("a", 10), ("b", 2), ("c", 3))


def test_upsert_appends_new_key() -> None:
    """Upserting an absent key should append it."""
    updated = OrderedMap.of([("a", 1)]).upsert("b", 2)

    assert updated.entries() == (("a", 1), ("b", 2))


def test_remove_and_retain_preserve_order() -> None:
    """Removing and retaining keys should leave survivors in order."""
    ordered = OrderedMap.of([("x", 1), ("y", 2), ("z", 3)])

    removed = ordered.remove("y")
    retained = ordered.retain(["z", "x"])

    assert list(removed) == ["x", "z"] and list(retained) == ["x", "z"]


def test_remove_missing_key_returns_same_map() -> None:
    """Removing an absent key should be a no-op."""
    ordered = OrderedMap.of([("x", 1)])

    assert ordered.remove("missing") is ordered


def test_get_returns_default_for_missing_key() -> None:
    """Lookup should report absence through the default value."""
    ordered = OrderedMap.of([("x", 1)])

    assert ordered.get("x") == 1 and ordered.get("y") is None and ordered.get("y", 5) == 5


def test_equality_is_order_sensitive() -> None:
    """Equal maps must share key order as well as values."""
    forward = OrderedMap.of([("a", 1), ("b", 2)])
    backward = OrderedMap.of([("b", 2), ("a", 1)])

    assert forward == OrderedMap.of([("a", 1), ("b", 2)]) and forward != backward


def test_large_map_keeps_every_entry() -> None:
    """A thousand inserts should keep all keys in order."""
    ordered: OrderedMap[str, int] = OrderedMap.empty()
    for index in range(1, 1001):
        ordered = ordered.insert(f"test {index:04d}", index)

    assert len(ordered) == 1000 and next(iter(ordered)) == "test 0001"
