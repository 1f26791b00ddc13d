"""Shared typed models.

This module defines the immutable run context, file lifecycle states,
and diff results shared by the store, coordinator, and CLI layers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union, cast

from core.errors import SnapstoreInternalError

RunMode = Literal["record", "verify"]
SUPPORTED_RUN_MODES: tuple[RunMode, ...] = ("record", "verify")

SnapshotValue = Union[str, bytes]

FileState = Literal["untouched", "loaded", "dirty", "flushed"]
ALLOWED_STATE_TRANSITIONS: dict[FileState, tuple[FileState, ...]] = {
    "untouched": ("loaded",),
    "loaded": ("dirty", "flushed"),
    "dirty": ("dirty", "flushed"),
    "flushed": (),
}


@dataclass(frozen=True)
class RunContext:
    """Immutable per-run settings consumed by the storage coordinator.

    Attributes:
        mode: Whether this run records snapshots or verifies against them.
        allow_multiple_equivalent_writes: Lenient conflict policy when True.
    """

    mode: RunMode
    allow_multiple_equivalent_writes: bool = True

    @property
    def is_record(self) -> bool:
        return self.mode == "record"

    @property
    def strict_writes(self) -> bool:
        return not self.allow_multiple_equivalent_writes


@dataclass(frozen=True)
class DiffResult:
    """Location and content of the first divergence between two texts.

    Attributes:
        line: 1-based line number of the divergence.
        column: 1-based column number of the divergence.
        expected_line: Expected line content, None when one text is a prefix.
        actual_line: Actual line content, None when one text is a prefix.
    """

    line: int
    column: int
    expected_line: str | None = None
    actual_line: str | None = None

    @property
    def location(self) -> str:
        return f"L{self.line}:C{self.column}"

    @property
    def message(self) -> str:
        header = f"Snapshot mismatch at {self.location}"
        if self.expected_line is None or self.actual_line is None:
            return header
        return f"{header}\n-{self.expected_line}\n+{self.actual_line}"


def parse_run_mode(raw_value: str) -> RunMode | None:
    """Return the normalized run mode, or None when unsupported."""
    normalized = raw_value.strip().lower()
    if normalized in SUPPORTED_RUN_MODES:
        return cast(RunMode, normalized)
    return None


def validate_transition(current: FileState, target: FileState) -> None:
    """Validate one snapshot file lifecycle transition.

    Raises:
        SnapstoreInternalError: If the transition is not allowed.
    """
    if target not in ALLOWED_STATE_TRANSITIONS[current]:
        raise SnapstoreInternalError(
            f"Invalid snapshot file transition {current} -> {target}. "
            "The coordinator was driven out of order."
        )
