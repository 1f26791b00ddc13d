"""User-overridable snapshot settings.

Projects customize snapshot placement and write policy by subclassing
``SnapshotSettings``. The subclass is located through SNAPSTORE_SETTINGS
or a ``snapstore_settings`` module on the import path.
"""

from __future__ import annotations

import importlib
import os
from pathlib import Path

from core.constants import (
    DEFAULT_SETTINGS_CLASS,
    DEFAULT_SETTINGS_MODULE,
    SETTINGS_ENV,
    STANDARD_TEST_DIRS,
)
from core.errors import SnapstoreConfigError


class SnapshotSettings:
    """Default settings; override properties in a subclass to customize."""

    @property
    def allow_multiple_equivalent_writes(self) -> bool:
        """Whether two codepaths may write the same key within one run.

        Equal writes are always accepted. When this is True, a later write with
        a different value is logged and the first value is kept; when False it
        raises ConflictingWriteError so the conflict is fixed at its source.
        """
        return True

    @property
    def snapshot_folder_name(self) -> str | None:
        """Folder holding snapshot files, None to store them beside the test."""
        return None

    @property
    def root_folder(self) -> Path:
        """Root under which all snapshot files are stored.

        Defaults to the first standard test directory found in the working
        directory.

        Raises:
            SnapstoreConfigError: If no standard test directory exists.
        """
        working_dir = Path.cwd()
        for standard_dir in STANDARD_TEST_DIRS:
            candidate = working_dir / standard_dir
            if candidate.is_dir():
                return candidate.resolve()
        raise SnapstoreConfigError(
            f"Could not find a standard test directory in {working_dir}, "
            f"looked for {', '.join(STANDARD_TEST_DIRS)}. "
            "Set SNAPSTORE_ROOT or override root_folder in your settings class."
        )


def load_settings() -> SnapshotSettings:
    """Instantiate the active settings class.

    Returns:
        Settings named by SNAPSTORE_SETTINGS, else the ``SnapshotSettings``
        class of a ``snapstore_settings`` module, else the defaults.

    Raises:
        SnapstoreConfigError: If the named settings class cannot be used.
    """
    settings_path = os.getenv(SETTINGS_ENV, "").strip()
    if settings_path:
        module_name, class_name = _split_class_path(settings_path)
        try:
            module = importlib.import_module(module_name)
        except ImportError as error:
            raise SnapstoreConfigError(
                f"{SETTINGS_ENV} was set to '{settings_path}', "
                f"but module '{module_name}' could not be imported: {error}."
            ) from error
        return _instantiate(module, class_name, settings_path)
    try:
        module = importlib.import_module(DEFAULT_SETTINGS_MODULE)
    except ModuleNotFoundError as error:
        if error.name != DEFAULT_SETTINGS_MODULE:
            raise
        return SnapshotSettings()
    return _instantiate(module, DEFAULT_SETTINGS_CLASS, DEFAULT_SETTINGS_MODULE)


def _split_class_path(settings_path: str) -> tuple[str, str]:
    """Split ``module:Class`` or ``module.Class`` into its two parts."""
    if ":" in settings_path:
        module_name, _, class_name = settings_path.partition(":")
    else:
        module_name, _, class_name = settings_path.rpartition(".")
    if not module_name or not class_name:
        raise SnapstoreConfigError(
            f"Invalid {SETTINGS_ENV} value '{settings_path}': "
            "expected 'package.module:ClassName'."
        )
    return module_name, class_name


def _instantiate(module: object, class_name: str, source: str) -> SnapshotSettings:
    """Instantiate a settings subclass from an imported module."""
    settings_class = getattr(module, class_name, None)
    if settings_class is None:
        raise SnapstoreConfigError(
            f"Settings class '{class_name}' was not found in '{source}'. "
            "Check the class name and module path."
        )
    if not isinstance(settings_class, type) or not issubclass(settings_class, SnapshotSettings):
        raise SnapstoreConfigError(
            f"'{source}' names {class_name}, which does not subclass SnapshotSettings."
        )
    try:
        return settings_class()
    except TypeError as error:
        raise SnapstoreConfigError(
            f"Unable to instantiate {class_name} from '{source}': {error}. "
            "Settings classes must take no constructor arguments."
        ) from error
