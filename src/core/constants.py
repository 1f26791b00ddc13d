"""Core constants used across snapstore modules.

This module centralizes file-format markers and environment names.
Keeping values here avoids magic literals in parsing and storage logic.
"""

from __future__ import annotations

SNAPSHOT_FILE_SUFFIX = ".ss"
DELIMITER_OPEN = "╔═ "
DELIMITER_CLOSE = " ═╗"
DELIMITER_MARKER = "╔"
ESCAPE_PREFIX = "╠"
BINARY_TAG = "base64"
HEADER_SECTION = "[header]"
END_OF_FILE_SECTION = "[end of file]"
BASE64_LINE_WIDTH = 76
KEY_SUFFIX_SEPARATOR = "/"

RUN_MODE_ENV = "SNAPSTORE_MODE"
ROOT_FOLDER_ENV = "SNAPSTORE_ROOT"
SETTINGS_ENV = "SNAPSTORE_SETTINGS"
LOG_LEVEL_ENV = "SNAPSTORE_LOG_LEVEL"
DEFAULT_RUN_MODE = "verify"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_SETTINGS_MODULE = "snapstore_settings"
DEFAULT_SETTINGS_CLASS = "SnapshotSettings"
STANDARD_TEST_DIRS = ("tests", "test", "src/tests")
