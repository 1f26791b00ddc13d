"""Immutable insertion-ordered map.

Every update returns a new map and leaves the receiver untouched, so a
reference handed to another thread never observes a later write.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import TypeVar, overload

from core.errors import DuplicateKeyError

K = TypeVar("K")
V = TypeVar("V")
_D = TypeVar("_D")


class OrderedMap(Mapping[K, V]):
    """Persistent mapping whose iteration order is insertion order.

    Equality is order-sensitive: two maps are equal only when they hold the
    same keys in the same order with equal values.
    """

    __slots__ = ("_keys", "_values")

    def __init__(self, pairs: Iterable[tuple[K, V]] = ()) -> None:
        keys: list[K] = []
        values: dict[K, V] = {}
        for key, value in pairs:
            if key in values:
                raise DuplicateKeyError(key)
            keys.append(key)
            values[key] = value
        self._keys: tuple[K, ...] = tuple(keys)
        self._values: dict[K, V] = values

    @classmethod
    def empty(cls) -> OrderedMap[K, V]:
        return cls()

    @classmethod
    def of(cls, pairs: Iterable[tuple[K, V]]) -> OrderedMap[K, V]:
        """Build a map from pairs, raising DuplicateKeyError on repeats."""
        return cls(pairs)

    def insert(self, key: K, value: V) -> OrderedMap[K, V]:
        """Return a new map with ``key`` appended.

        Raises:
            DuplicateKeyError: If ``key`` is already present.
        """
        if key in self._values:
            raise DuplicateKeyError(key)
        return self._derive(self._keys + (key,), {**self._values, key: value})

    def upsert(self, key: K, value: V) -> OrderedMap[K, V]:
        """Return a new map with ``key`` set, keeping its original position."""
        if key in self._values:
            if self._values[key] is value:
                return self
            return self._derive(self._keys, {**self._values, key: value})
        return self.insert(key, value)

    def remove(self, key: K) -> OrderedMap[K, V]:
        """Return a new map without ``key``; unchanged when absent."""
        if key not in self._values:
            return self
        values = dict(self._values)
        del values[key]
        return self._derive(tuple(k for k in self._keys if k != key), values)

    def retain(self, keep: Iterable[K]) -> OrderedMap[K, V]:
        """Return a new map holding only the keys in ``keep``, order preserved."""
        wanted = set(keep)
        kept_keys = tuple(key for key in self._keys if key in wanted)
        if len(kept_keys) == len(self._keys):
            return self
        return self._derive(kept_keys, {key: self._values[key] for key in kept_keys})

    @overload
    def get(self, key: K) -> V | None: ...

    @overload
    def get(self, key: K, default: V | _D) -> V | _D: ...

    def get(self, key, default=None):
        return self._values.get(key, default)

    def entries(self) -> tuple[tuple[K, V], ...]:
        """Return ``(key, value)`` pairs in insertion order."""
        return tuple((key, self._values[key]) for key in self._keys)

    def __getitem__(self, key: K) -> V:
        return self._values[key]

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[K]:
        return iter(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OrderedMap):
            return NotImplemented
        return self._keys == other._keys and self._values == other._values

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        body = ", ".join(f"{key!r}: {value!r}" for key, value in self.entries())
        return f"OrderedMap({{{body}}})"

    def _derive(self, keys: tuple[K, ...], values: dict[K, V]) -> OrderedMap[K, V]:
        derived: OrderedMap[K, V] = object.__new__(type(self))
        derived._keys = keys
        derived._values = values
        return derived
