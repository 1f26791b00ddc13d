"""Runtime configuration model for snapstore.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import DEFAULT_RUN_MODE, ROOT_FOLDER_ENV, RUN_MODE_ENV
from core.errors import SnapstoreConfigError
from core.settings import SnapshotSettings, load_settings
from core.types import SUPPORTED_RUN_MODES, RunContext, RunMode, parse_run_mode


@dataclass(frozen=True)
class SnapstoreConfig:
    """Validated runtime configuration.

    Attributes:
        root_folder: Directory that holds every snapshot file.
        snapshot_folder_name: Optional per-directory folder for snapshot files.
        allow_multiple_equivalent_writes: Lenient write-conflict policy flag.
        mode: Run mode, fixed for the whole run.
    """

    root_folder: Path
    snapshot_folder_name: str | None
    allow_multiple_equivalent_writes: bool
    mode: RunMode

    @classmethod
    def from_env(cls, settings: SnapshotSettings | None = None) -> "SnapstoreConfig":
        """Build config from settings and process environment variables.

        Args:
            settings: Optional settings; loaded via load_settings when omitted.

        Returns:
            A validated config object.

        Raises:
            SnapstoreConfigError: If environment values or settings are invalid.
        """
        active_settings = settings if settings is not None else load_settings()
        mode = _parse_mode(os.getenv(RUN_MODE_ENV, DEFAULT_RUN_MODE))
        root_override = os.getenv(ROOT_FOLDER_ENV)
        if root_override:
            root_folder = Path(root_override).expanduser().resolve()
        else:
            root_folder = active_settings.root_folder
        return cls(
            root_folder=root_folder,
            snapshot_folder_name=_validate_folder_name(active_settings.snapshot_folder_name),
            allow_multiple_equivalent_writes=active_settings.allow_multiple_equivalent_writes,
            mode=mode,
        )

    def run_context(self) -> RunContext:
        """Return the immutable run context for the storage coordinator."""
        return RunContext(
            mode=self.mode,
            allow_multiple_equivalent_writes=self.allow_multiple_equivalent_writes,
        )


def _parse_mode(raw_value: str) -> RunMode:
    """Parse the run mode environment value.

    Raises:
        SnapstoreConfigError: If value is not a supported mode.
    """
    mode = parse_run_mode(raw_value)
    if mode is None:
        raise SnapstoreConfigError(
            f"Invalid {RUN_MODE_ENV} value: expected one of "
            f"{', '.join(SUPPORTED_RUN_MODES)}, got '{raw_value}'."
        )
    return mode


def _validate_folder_name(folder_name: str | None) -> str | None:
    """Reject snapshot folder names that would leave their directory."""
    if folder_name is None:
        return None
    if not folder_name or "/" in folder_name or "\\" in folder_name or folder_name in (".", ".."):
        raise SnapstoreConfigError(
            f"Invalid snapshot_folder_name '{folder_name}': "
            "expected a single directory name such as '__snapshots__'."
        )
    return folder_name
