"""Storage coordinator for record and verify runs.

The coordinator is the single arbiter of snapshot file access during one
run. Each snapshot file has its own lock guarding its in-memory contents,
the keys touched this run, and the writes recorded so far. Files are loaded
lazily once per run and written at most once, by ``finalize_run``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import threading
from typing import Protocol

from core.constants import KEY_SUFFIX_SEPARATOR
from core.errors import (
    ConflictingWriteError,
    SnapshotMissingError,
    SnapstoreError,
    SnapstoreModeError,
    SnapstoreStoreError,
)
from core.logging_config import get_logger
from core.types import FileState, RunContext, RunMode, validate_transition
from store.file_layout import SnapshotFileLayout, read_text, write_atomic
from store.snapshot import Snapshot
from store.snapshot_diff import mismatch_error
from store.snapshot_file import SnapshotFile

_LOGGER = get_logger(__name__)


class SnapshotLifecycle(Protocol):
    """Hooks a test runner integration calls around tests and the run."""

    def on_test_start(self, file_id: str, test_name: str) -> None: ...

    def on_test_end(self, file_id: str, test_name: str, succeeded: bool = True) -> None: ...

    def on_run_end(self) -> list[Path]: ...


def snapshot_key(test_name: str, suffix: str | None = None) -> str:
    """Build the composite key for a test, optionally disambiguated by suffix."""
    if suffix is None:
        return test_name
    return f"{test_name}{KEY_SUFFIX_SEPARATOR}{suffix}"


@dataclass(frozen=True)
class _RecordedWrite:
    """First snapshot written to a key during this run."""

    snapshot: Snapshot
    origin: str | None


class _FileSlot:
    """In-memory state of one snapshot file, guarded by ``lock``."""

    def __init__(self, file_id: str, path: Path) -> None:
        self.file_id = file_id
        self.path = path
        self.lock = threading.Lock()
        self.state: FileState = "untouched"
        self.snapshot_file: SnapshotFile | None = None
        self.load_error: SnapstoreError | None = None
        self.touched: set[str] = set()
        self.writes: dict[str, _RecordedWrite] = {}

    def transition(self, target: FileState) -> None:
        """Move to ``target`` after checking the transition is allowed."""
        validate_transition(self.state, target)
        self.state = target


class StorageCoordinator:
    """Arbitrate concurrent snapshot reads and writes for one run."""

    def __init__(self, context: RunContext, layout: SnapshotFileLayout) -> None:
        """Initialize a coordinator for one run.

        Args:
            context: Immutable run mode and write policy.
            layout: Mapping from file ids to snapshot paths.
        """
        self._context = context
        self._layout = layout
        self._slots: dict[Path, _FileSlot] = {}
        self._slots_lock = threading.Lock()
        self._finalized = False

    @property
    def context(self) -> RunContext:
        return self._context

    def file_state(self, file_id: str) -> FileState:
        """Return the lifecycle state of a file in this run."""
        slot = self._slots.get(self._layout.path_for(file_id))
        return slot.state if slot is not None else "untouched"

    def read_or_fail(self, file_id: str, key: str) -> Snapshot:
        """Return the stored snapshot for ``key``.

        Args:
            file_id: Test source id owning the snapshot file.
            key: Composite snapshot key.

        Returns:
            Stored snapshot for comparison by the caller.

        Raises:
            SnapstoreModeError: If the run is not in verify mode.
            SnapshotMissingError: If the key was never recorded.
            MalformedSnapshotFileError: If the snapshot file cannot be parsed.
        """
        self._require_mode("verify", "read_or_fail")
        snapshot = self._loaded(self._slot(file_id)).get(key)
        if snapshot is None:
            raise SnapshotMissingError(file_id, key)
        return snapshot

    def verify(self, file_id: str, key: str, actual: Snapshot) -> None:
        """Compare ``actual`` with the stored snapshot.

        Raises:
            SnapshotMismatchError: If the values differ, with the first
                divergence rendered by the mismatch reporter.
        """
        expected = self.read_or_fail(file_id, key)
        if expected == actual:
            return
        error = mismatch_error(key, expected, actual)
        _LOGGER.info(
            "snapshot_mismatch",
            file_id=file_id,
            key=key,
            location=error.diff.location if error.diff is not None else None,
        )
        raise error

    def record_or_reconcile(
        self,
        file_id: str,
        key: str,
        snapshot: Snapshot,
        origin: str | None = None,
    ) -> None:
        """Record ``snapshot`` as the expected value for ``key``.

        A repeated equal write is a no-op. A repeated different write keeps
        the first value and logs a warning, or raises under strict policy.

        Args:
            file_id: Test source id owning the snapshot file.
            key: Composite snapshot key.
            snapshot: Freshly computed snapshot.
            origin: Optional description of the call site, used in conflicts.

        Raises:
            SnapstoreModeError: If the run is not in record mode or is finalized.
            ConflictingWriteError: If strict policy sees two different values.
            MalformedSnapshotFileError: If the existing file cannot be parsed.
        """
        self._require_mode("record", "record_or_reconcile")
        slot = self._slot(file_id)
        with slot.lock:
            self._require_open(slot)
            snapshot_file = self._load_locked(slot)
            previous = slot.writes.get(key)
            if previous is not None:
                self._reconcile(slot, key, previous, _RecordedWrite(snapshot, origin))
                return
            if snapshot_file.get(key) != snapshot:
                slot.snapshot_file = snapshot_file.with_snapshot(key, snapshot)
            slot.writes[key] = _RecordedWrite(snapshot, origin)
            slot.touched.add(key)
            slot.transition("dirty")

    def finalize_run(self) -> list[Path]:
        """Prune and write every file recorded this run, each exactly once.

        Keys not touched during the run are removed from touched files.
        Files that were only read are left alone. Calling this again is a
        no-op.

        Returns:
            Paths of the files written.

        Raises:
            SnapstoreStoreError: If one or more files could not be written;
                the remaining files are still written.
        """
        with self._slots_lock:
            if self._finalized:
                return []
            self._finalized = True
            slots = list(self._slots.values())
        written: list[Path] = []
        failures: list[SnapstoreStoreError] = []
        for slot in slots:
            with slot.lock:
                try:
                    if self._flush_locked(slot):
                        written.append(slot.path)
                except SnapstoreStoreError as error:
                    failures.append(error)
        _LOGGER.info("snapshot_run_finalized", mode=self._context.mode, files_written=len(written))
        if failures:
            raise SnapstoreStoreError(
                f"Failed to write {len(failures)} snapshot file(s): "
                + "; ".join(str(failure) for failure in failures)
            ) from failures[0]
        return written

    def on_test_start(self, file_id: str, test_name: str) -> None:
        """Register the file a test is about to use."""
        self._slot(file_id)
        _LOGGER.debug("snapshot_test_started", file_id=file_id, test_name=test_name)

    def on_test_end(self, file_id: str, test_name: str, succeeded: bool = True) -> None:
        """Protect the stored snapshots of a test that did not succeed.

        In record mode a failed or skipped test may not have written all of
        its keys, so its existing keys are marked touched and survive pruning.
        """
        if succeeded or not self._context.is_record:
            return
        slot = self._slot(file_id)
        with slot.lock:
            self._require_open(slot)
            snapshot_file = self._load_locked(slot)
            prefix = test_name + KEY_SUFFIX_SEPARATOR
            kept = [key for key in snapshot_file.keys if key == test_name or key.startswith(prefix)]
            slot.touched.update(kept)
        _LOGGER.debug(
            "snapshot_test_keys_kept", file_id=file_id, test_name=test_name, kept=len(kept)
        )

    def on_run_end(self) -> list[Path]:
        return self.finalize_run()

    def _reconcile(
        self,
        slot: _FileSlot,
        key: str,
        previous: _RecordedWrite,
        current: _RecordedWrite,
    ) -> None:
        """Apply the write-conflict policy to a repeated write of one key."""
        if previous.snapshot == current.snapshot:
            return
        if self._context.strict_writes:
            raise ConflictingWriteError(
                key,
                previous.snapshot,
                current.snapshot,
                previous.origin,
                current.origin,
            )
        _LOGGER.warning(
            "snapshot_conflicting_write",
            file_id=slot.file_id,
            key=key,
            kept_origin=previous.origin,
            ignored_origin=current.origin,
        )

    def _slot(self, file_id: str) -> _FileSlot:
        """Return the slot for the physical file behind ``file_id``.

        Slots are keyed by resolved path so ids naming the same file share one.
        """
        path = self._layout.path_for(file_id)
        slot = self._slots.get(path)
        if slot is not None:
            return slot
        with self._slots_lock:
            return self._slots.setdefault(path, _FileSlot(file_id, path))

    def _loaded(self, slot: _FileSlot) -> SnapshotFile:
        """Return the loaded file, taking the lock only for the first load."""
        snapshot_file = slot.snapshot_file
        if snapshot_file is not None:
            return snapshot_file
        with slot.lock:
            return self._load_locked(slot)

    def _load_locked(self, slot: _FileSlot) -> SnapshotFile:
        """Load a slot's file on first use; caller holds ``slot.lock``."""
        if slot.load_error is not None:
            raise slot.load_error
        if slot.snapshot_file is not None:
            return slot.snapshot_file
        try:
            text = read_text(slot.path)
            snapshot_file = SnapshotFile.parse(text) if text is not None else SnapshotFile.empty()
        except SnapstoreError as error:
            slot.load_error = error
            _LOGGER.error("snapshot_file_invalid", file_id=slot.file_id, path=str(slot.path))
            raise
        slot.snapshot_file = snapshot_file
        slot.transition("loaded")
        _LOGGER.debug(
            "snapshot_file_loaded",
            file_id=slot.file_id,
            path=str(slot.path),
            existed=text is not None,
            key_count=len(snapshot_file),
        )
        return snapshot_file

    def _flush_locked(self, slot: _FileSlot) -> bool:
        """Write a recorded file after pruning; caller holds ``slot.lock``."""
        if slot.state == "loaded":
            slot.transition("flushed")
        if slot.state != "dirty" or slot.snapshot_file is None:
            return False
        stale_keys = [key for key in slot.snapshot_file.keys if key not in slot.touched]
        pruned = slot.snapshot_file.retain_keys(slot.touched)
        write_atomic(slot.path, pruned.serialize())
        slot.snapshot_file = pruned
        slot.transition("flushed")
        if stale_keys:
            _LOGGER.info(
                "snapshot_keys_pruned",
                file_id=slot.file_id,
                pruned=len(stale_keys),
                keys=stale_keys,
            )
        _LOGGER.info(
            "snapshot_file_written",
            file_id=slot.file_id,
            path=str(slot.path),
            key_count=len(pruned),
        )
        return True

    def _require_mode(self, mode: RunMode, operation: str) -> None:
        """Reject an operation that belongs to the other run mode."""
        if self._context.mode != mode:
            raise SnapstoreModeError(
                f"{operation} requires {mode} mode, but this run is in {self._context.mode} mode."
            )

    def _require_open(self, slot: _FileSlot) -> None:
        """Reject changes once the run or the file has been finalized."""
        if self._finalized or slot.state == "flushed":
            raise SnapstoreModeError(
                f"The run was already finalized; '{slot.file_id}' can no longer change."
            )
