"""Snapstore CLI entry points.

This module exposes maintenance commands for snapshot files.
It maps argparse commands onto the snapshot file parser.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Sequence

from core.errors import SnapstoreError
from store.file_layout import read_text
from store.snapshot_file import SnapshotFile


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="snapstore", description="Snapshot file tools")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_validate_command(subparsers)
    _add_keys_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the snapstore CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "validate":
        return _run_validate_command(args)
    if args.command == "keys":
        return _run_keys_command(args)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _add_validate_command(subparsers: Any) -> None:
    """Register validate subcommand."""
    parser = subparsers.add_parser("validate", help="Check that snapshot files parse")
    parser.add_argument("paths", nargs="+", help="Snapshot files to check")


def _add_keys_command(subparsers: Any) -> None:
    """Register keys subcommand."""
    parser = subparsers.add_parser("keys", help="List snapshot keys and facets in a file")
    parser.add_argument("path", help="Snapshot file to list")


def _run_validate_command(args: argparse.Namespace) -> int:
    """Handle validate command.

    Args:
        args: Parsed CLI args.

    Returns:
        Exit code, 1 when any file fails to load.
    """
    failed = 0
    for raw_path in args.paths:
        try:
            snapshot_file = _load_file(Path(raw_path))
        except SnapstoreError as error:
            failed += 1
            print(f"{raw_path}\terror\t{error}")
            continue
        print(f"{raw_path}\tok\t{len(snapshot_file)}")
    return 1 if failed else 0


def _run_keys_command(args: argparse.Namespace) -> int:
    """Handle keys command.

    Args:
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    try:
        snapshot_file = _load_file(Path(args.path))
    except SnapstoreError as error:
        print(f"error={error}")
        return 1
    for key, snapshot in snapshot_file.snapshots.entries():
        facets = ",".join(snapshot.facet_names) or "-"
        print(f"{key}\t{facets}")
    return 0


def _load_file(path: Path) -> SnapshotFile:
    """Read and parse one snapshot file, treating a missing file as an error."""
    text = read_text(path)
    if text is None:
        raise SnapstoreError(f"Snapshot file not found at {path}.")
    return SnapshotFile.parse(text)
