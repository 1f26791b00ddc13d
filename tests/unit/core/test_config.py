"""Unit tests for core config parsing."""

from __future__ import annotations

import pytest

from core.config import SnapstoreConfig
from core.errors import SnapstoreConfigError
from core.settings import SnapshotSettings


class _JestLikeSettings(SnapshotSettings):
    @property
    def snapshot_folder_name(self) -> str | None:
        return "__snapshots__"

    @property
    def allow_multiple_equivalent_writes(self) -> bool:
        return False


def test_from_env_defaults_to_verify_mode(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Config should verify snapshots unless told to record."""
    monkeypatch.delenv("SNAPSTORE_MODE", raising=False)
    monkeypatch.setenv("SNAPSTORE_ROOT", str(tmp_path))

    config = SnapstoreConfig.from_env(SnapshotSettings())

    assert config.mode == "verify"


def test_from_env_reads_record_mode_and_root(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Config should resolve mode and root override from environment."""
    monkeypatch.setenv("SNAPSTORE_MODE", "RECORD")
    monkeypatch.setenv("SNAPSTORE_ROOT", str(tmp_path))

    config = SnapstoreConfig.from_env(SnapshotSettings())

    assert config.mode == "record" and config.root_folder == tmp_path.resolve()


def test_from_env_raises_for_invalid_mode(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Config should fail for an unsupported run mode."""
    monkeypatch.setenv("SNAPSTORE_MODE", "overwrite")
    monkeypatch.setenv("SNAPSTORE_ROOT", str(tmp_path))

    with pytest.raises(SnapstoreConfigError):
        SnapstoreConfig.from_env(SnapshotSettings())


def test_from_env_applies_settings_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Settings subclasses should drive folder name and write policy."""
    monkeypatch.setenv("SNAPSTORE_ROOT", str(tmp_path))

    config = SnapstoreConfig.from_env(_JestLikeSettings())

    assert config.snapshot_folder_name == "__snapshots__"
    assert config.run_context().strict_writes


def test_from_env_rejects_nested_folder_name(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Snapshot folder names must be a single directory name."""

    class _NestedSettings(SnapshotSettings):
        @property
        def snapshot_folder_name(self) -> str | None:
            return "../snapshots"

    monkeypatch.setenv("SNAPSTORE_ROOT", str(tmp_path))

    with pytest.raises(SnapstoreConfigError):
        SnapstoreConfig.from_env(_NestedSettings())
