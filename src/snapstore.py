"""Public SDK surface for snapstore.

This module provides a stable import path for test-runner integrations.
It re-exports the snapshot model, the coordinator, and the error types.
"""

from __future__ import annotations

from core.config import SnapstoreConfig
from core.errors import (
    ConflictingWriteError,
    DuplicateKeyError,
    MalformedSnapshotFileError,
    SnapshotMismatchError,
    SnapshotMissingError,
    SnapstoreError,
)
from core.ordered_map import OrderedMap
from core.settings import SnapshotSettings
from core.types import DiffResult, RunContext
from store.coordinator import SnapshotLifecycle, StorageCoordinator, snapshot_key
from store.file_layout import SnapshotFileLayout
from store.snapshot import Snapshot
from store.snapshot_diff import diff_strings
from store.snapshot_file import SnapshotFile


def open_run(config: SnapstoreConfig | None = None) -> StorageCoordinator:
    """Create the coordinator for one test run.

    Args:
        config: Optional config; resolved from settings and env when omitted.

    Returns:
        Coordinator bound to the run mode and snapshot root.
    """
    active_config = config if config is not None else SnapstoreConfig.from_env()
    return StorageCoordinator(
        active_config.run_context(),
        SnapshotFileLayout.from_config(active_config),
    )


__all__ = [
    "ConflictingWriteError",
    "DiffResult",
    "DuplicateKeyError",
    "MalformedSnapshotFileError",
    "OrderedMap",
    "RunContext",
    "Snapshot",
    "SnapshotFile",
    "SnapshotFileLayout",
    "SnapshotLifecycle",
    "SnapshotMismatchError",
    "SnapshotMissingError",
    "SnapshotSettings",
    "SnapstoreConfig",
    "SnapstoreError",
    "StorageCoordinator",
    "diff_strings",
    "open_run",
    "snapshot_key",
]
