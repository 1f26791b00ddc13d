"""Snapstore exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each failure a caller can act on has its own error type.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.types import DiffResult


class SnapstoreError(Exception):
    """Base exception for all snapstore failures."""


class SnapstoreConfigError(SnapstoreError):
    """Raised for invalid runtime configuration or settings classes."""


class SnapstoreStoreError(SnapstoreError):
    """Raised for snapshot file I/O and lifecycle failures."""


class SnapstoreModeError(SnapstoreError):
    """Raised when an operation does not match the active run mode."""


class SnapstoreInternalError(SnapstoreError):
    """Raised when an internal contract is violated by the caller."""


class DuplicateKeyError(SnapstoreError):
    """Raised when an insert-only operation meets an existing key."""

    def __init__(self, key: object) -> None:
        super().__init__(
            f"Key {key!r} already exists. Use upsert to replace an existing entry."
        )
        self.key = key


class MalformedSnapshotFileError(SnapstoreError):
    """Raised when on-disk snapshot content cannot be parsed."""

    def __init__(self, message: str, line_number: int | None = None) -> None:
        location = f"L{line_number}: " if line_number is not None else ""
        super().__init__(
            f"{location}{message}. Fix the snapshot file by hand or regenerate it in record mode."
        )
        self.line_number = line_number


class SnapshotMissingError(SnapstoreError):
    """Raised when verify mode requests a key that was never recorded."""

    def __init__(self, file_id: str, key: str) -> None:
        super().__init__(
            f"No snapshot recorded for '{key}' in '{file_id}'. "
            "Run the suite in record mode to create it."
        )
        self.file_id = file_id
        self.key = key


class SnapshotMismatchError(SnapstoreError, AssertionError):
    """Raised when an actual value differs from its stored snapshot."""

    def __init__(self, key: str, message: str, diff: DiffResult | None = None) -> None:
        super().__init__(f"'{key}': {message}")
        self.key = key
        self.diff = diff


class ConflictingWriteError(SnapstoreError):
    """Raised when one run records two different snapshots for the same key."""

    def __init__(
        self,
        key: str,
        first: object,
        second: object,
        first_origin: str | None,
        second_origin: str | None,
    ) -> None:
        super().__init__(
            f"Snapshot '{key}' was written twice with different values.\n"
            f"  first from {first_origin or 'unknown origin'}: {first!r}\n"
            f"  then from {second_origin or 'unknown origin'}: {second!r}\n"
            "Make both codepaths produce the same value or give them distinct keys."
        )
        self.key = key
        self.first = first
        self.second = second
        self.first_origin = first_origin
        self.second_origin = second_origin
