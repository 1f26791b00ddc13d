"""Immutable snapshot values.

A snapshot is one primary payload plus named facets, all text or bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from core.ordered_map import OrderedMap
from core.types import SnapshotValue


@dataclass(frozen=True, eq=False)
class Snapshot:
    """Expected value recorded for one snapshot key.

    Attributes:
        subject: Primary payload.
        facets: Named secondary payloads in insertion order.
    """

    subject: SnapshotValue
    facets: OrderedMap[str, SnapshotValue] = field(default_factory=OrderedMap.empty)

    def __post_init__(self) -> None:
        _check_payload(self.subject, "subject")
        for name, payload in self.facets.entries():
            if not name:
                raise ValueError("Snapshot facet names must be non-empty strings.")
            _check_payload(payload, f"facet '{name}'")

    @classmethod
    def of(cls, payload: SnapshotValue) -> Snapshot:
        return cls(subject=payload)

    def with_facet(self, name: str, payload: SnapshotValue) -> Snapshot:
        """Return a copy with facet ``name`` added or overwritten."""
        return Snapshot(subject=self.subject, facets=self.facets.upsert(name, payload))

    def facet(self, name: str) -> SnapshotValue | None:
        return self.facets.get(name)

    @property
    def facet_names(self) -> tuple[str, ...]:
        return tuple(self.facets)

    def all_entries(self) -> tuple[tuple[str, SnapshotValue], ...]:
        """Return the subject under the empty name followed by every facet."""
        return (("", self.subject),) + self.facets.entries()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Snapshot):
            return NotImplemented
        return self.subject == other.subject and dict(self.facets) == dict(other.facets)

    def __hash__(self) -> int:
        return hash((self.subject, frozenset(self.facets.entries())))


def _check_payload(payload: object, label: str) -> None:
    """Reject payloads that are neither text nor bytes."""
    if not isinstance(payload, (str, bytes)):
        raise TypeError(
            f"Snapshot {label} must be str or bytes, got {type(payload).__name__}."
        )
