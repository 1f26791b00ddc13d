"""Unit tests for snapstore CLI commands."""

from __future__ import annotations

import pytest

from cli.main import main
from core.ordered_map import OrderedMap
from store.file_layout import write_atomic
from store.snapshot import Snapshot
from store.snapshot_file import SnapshotFile


def _write_sample(path) -> None:
    snapshots = OrderedMap.of(
        [
            ("test_a", Snapshot.of("a").with_facet("stdout", "printed")),
            ("test_b", Snapshot.of("b")),
        ]
    )
    write_atomic(path, SnapshotFile(snapshots=snapshots).serialize())


def test_cli_validate_reports_ok_for_valid_file(tmp_path, capsys) -> None:
    """Validate should exit zero and report the key count."""
    path = tmp_path / "test_sample.ss"
    _write_sample(path)

    exit_code = main(["validate", str(path)])
    output = capsys.readouterr().out

    assert exit_code == 0 and f"{path}\tok\t2" in output


def test_cli_validate_returns_one_for_malformed_file(tmp_path, capsys) -> None:
    """Validate should exit one when any file fails to parse."""
    good = tmp_path / "test_good.ss"
    bad = tmp_path / "test_bad.ss"
    _write_sample(good)
    bad.write_text("garbage\n", encoding="utf-8")

    exit_code = main(["validate", str(good), str(bad)])
    output = capsys.readouterr().out

    assert exit_code == 1 and f"{bad}\terror\t" in output


def test_cli_keys_lists_keys_and_facets(tmp_path, capsys) -> None:
    """Keys should print one line per snapshot with its facets."""
    path = tmp_path / "test_sample.ss"
    _write_sample(path)

    exit_code = main(["keys", str(path)])
    output = capsys.readouterr().out

    assert exit_code == 0 and output.splitlines() == ["test_a\tstdout", "test_b\t-"]


def test_cli_keys_reports_missing_file(tmp_path, capsys) -> None:
    """Keys should fail cleanly for a missing file."""
    exit_code = main(["keys", str(tmp_path / "missing.ss")])
    output = capsys.readouterr().out

    assert exit_code == 1 and output.startswith("error=")


def test_cli_requires_command() -> None:
    """Running without a subcommand should be a usage error."""
    with pytest.raises(SystemExit):
        main([])
