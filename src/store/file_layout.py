"""Snapshot file placement and atomic persistence.

This module maps test source ids onto ``.ss`` paths under the root folder
and performs the raw text reads and replace-on-write file updates.
"""

from __future__ import annotations

import os
import stat
from pathlib import Path, PurePosixPath
import tempfile

from core.config import SnapstoreConfig
from core.constants import SNAPSHOT_FILE_SUFFIX
from core.errors import SnapstoreStoreError

_UMASK = os.umask(0)
os.umask(_UMASK)


class SnapshotFileLayout:
    """Resolve and persist snapshot files under one root folder."""

    def __init__(self, root_folder: Path, snapshot_folder_name: str | None = None) -> None:
        self._root_folder = root_folder.expanduser().resolve()
        self._snapshot_folder_name = snapshot_folder_name

    @classmethod
    def from_config(cls, config: SnapstoreConfig) -> SnapshotFileLayout:
        return cls(config.root_folder, config.snapshot_folder_name)

    @property
    def root_folder(self) -> Path:
        return self._root_folder

    def path_for(self, file_id: str) -> Path:
        """Return the snapshot path for a test source id.

        Args:
            file_id: Posix path of the test source relative to the root,
                for example ``pkg/test_render.py``.

        Returns:
            Absolute ``.ss`` path, inside the snapshot folder when configured.

        Raises:
            SnapstoreStoreError: If the id is absolute or leaves the root.
        """
        source = PurePosixPath(file_id)
        if not file_id or source.is_absolute() or ".." in source.parts:
            raise SnapstoreStoreError(
                f"Invalid snapshot file id '{file_id}': "
                "expected a relative path inside the snapshot root folder."
            )
        directory = self._root_folder.joinpath(*source.parent.parts)
        if self._snapshot_folder_name:
            directory = directory / self._snapshot_folder_name
        return directory / f"{source.stem}{SNAPSHOT_FILE_SUFFIX}"


def read_text(path: Path) -> str | None:
    """Read a snapshot file without newline translation.

    Returns:
        File content, or None when the file does not exist.

    Raises:
        SnapstoreStoreError: If the file exists but cannot be read.
    """
    try:
        with path.open("r", encoding="utf-8", newline="") as handle:
            return handle.read()
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as error:
        raise SnapstoreStoreError(f"Failed to read snapshot file {path}: {error}.") from error


def write_atomic(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` so readers never see a partial file.

    Raises:
        SnapstoreStoreError: If the file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handle, temp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
        )
        try:
            with os.fdopen(handle, "w", encoding="utf-8", newline="") as temp_file:
                temp_file.write(text)
            os.chmod(temp_name, _target_mode(path))
            os.replace(temp_name, path)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise
    except OSError as error:
        raise SnapstoreStoreError(f"Failed to write snapshot file {path}: {error}.") from error


def _target_mode(path: Path) -> int:
    """Return the existing file mode, or the umask default for a new file."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        return 0o666 & ~_UMASK
