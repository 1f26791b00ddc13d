"""Integration tests for a full record-then-verify snapshot run."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from core.config import SnapstoreConfig
from core.errors import SnapshotMismatchError
from core.ordered_map import OrderedMap
from snapstore import open_run
from store.snapshot import Snapshot
from store.snapshot_file import SnapshotFile

_FILE_ID = "stress/test_concurrency.py"


def _config(tmp_path, mode: str) -> SnapstoreConfig:
    return SnapstoreConfig(
        root_folder=tmp_path,
        snapshot_folder_name="__snapshots__",
        allow_multiple_equivalent_writes=False,
        mode=mode,  # type: ignore[arg-type]
    )


def _expected_file() -> str:
    snapshots: OrderedMap[str, Snapshot] = OrderedMap.empty()
    for index in range(1, 1001):
        snapshots = snapshots.insert(f"test {index:04d}", Snapshot.of(str(index)))
    return SnapshotFile(snapshots=snapshots).serialize()


def test_thousand_concurrent_records_then_verify(tmp_path) -> None:
    """A thousand parallel writers should produce one complete, verifiable file."""
    recorder = open_run(_config(tmp_path, "record"))

    def record(index: int) -> None:
        recorder.on_test_start(_FILE_ID, f"test {index:04d}")
        recorder.record_or_reconcile(_FILE_ID, f"test {index:04d}", Snapshot.of(str(index)))
        recorder.on_test_end(_FILE_ID, f"test {index:04d}")

    with ThreadPoolExecutor(max_workers=16) as executor:
        list(executor.map(record, range(1, 1001)))
    written = recorder.on_run_end()
    stored = SnapshotFile.parse(written[0].read_text(encoding="utf-8"))

    assert written[0] == tmp_path.resolve() / "stress" / "__snapshots__" / "test_concurrency.ss"
    assert sorted(stored.keys) == sorted(SnapshotFile.parse(_expected_file()).keys)

    verifier = open_run(_config(tmp_path, "verify"))
    with ThreadPoolExecutor(max_workers=16) as executor:
        list(
            executor.map(
                lambda index: verifier.verify(
                    _FILE_ID, f"test {index:04d}", Snapshot.of(str(index))
                ),
                range(1, 1001),
            )
        )
    with pytest.raises(SnapshotMismatchError):
        verifier.verify(_FILE_ID, "test 0001", Snapshot.of("changed"))


def test_sequential_record_matches_reference_serialization(tmp_path) -> None:
    """Recording keys in order should serialize exactly like the reference file."""
    recorder = open_run(_config(tmp_path, "record"))
    for index in range(1, 1001):
        recorder.record_or_reconcile(_FILE_ID, f"test {index:04d}", Snapshot.of(str(index)))

    written = recorder.finalize_run()

    assert written[0].read_text(encoding="utf-8") == _expected_file()
