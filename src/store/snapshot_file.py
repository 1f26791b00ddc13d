"""Snapshot file model and its line-oriented text format.

A file is a run of sections, each opened by a delimiter line::

    ╔═ test_render ═╗
    <subject lines>
    ╔═ test_render[stdout] ═╗
    <facet lines>
    ╔═ test_bytes ═╗ base64
    <base64 lines>
    ╔═ [end of file] ═╗

Keys and facet names are backslash-escaped inside the delimiter. Payload
lines that begin with a delimiter or escape marker are prefixed with the
escape marker, so any text survives a write and re-read unchanged.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Iterable

from core.constants import (
    BASE64_LINE_WIDTH,
    BINARY_TAG,
    DELIMITER_CLOSE,
    DELIMITER_MARKER,
    DELIMITER_OPEN,
    END_OF_FILE_SECTION,
    ESCAPE_PREFIX,
    HEADER_SECTION,
)
from core.errors import DuplicateKeyError, MalformedSnapshotFileError, SnapstoreStoreError
from core.ordered_map import OrderedMap
from core.types import SnapshotValue
from store.snapshot import Snapshot

_NAME_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r", "[": "\\[", "]": "\\]"}
_NAME_UNESCAPES = {"\\": "\\", "n": "\n", "r": "\r", "[": "[", "]": "]"}
_BINARY_CLOSE = f"{DELIMITER_CLOSE} {BINARY_TAG}"


@dataclass(frozen=True)
class SnapshotFile:
    """Ordered snapshots persisted for one test source file.

    Attributes:
        snapshots: Snapshots keyed by composite test key, in file order.
        metadata: Optional free-form header text such as a format version.
    """

    snapshots: OrderedMap[str, Snapshot] = field(default_factory=OrderedMap.empty)
    metadata: str | None = None

    @classmethod
    def empty(cls) -> SnapshotFile:
        return cls()

    def get(self, key: str) -> Snapshot | None:
        return self.snapshots.get(key)

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self.snapshots)

    def __len__(self) -> int:
        return len(self.snapshots)

    def with_snapshot(self, key: str, snapshot: Snapshot) -> SnapshotFile:
        """Return a copy with ``key`` set, keeping its position when present.

        Raises:
            SnapstoreStoreError: If ``key`` is empty.
        """
        if not key:
            raise SnapstoreStoreError("Snapshot keys must be non-empty strings.")
        return SnapshotFile(snapshots=self.snapshots.upsert(key, snapshot), metadata=self.metadata)

    def without(self, key: str) -> SnapshotFile:
        return SnapshotFile(snapshots=self.snapshots.remove(key), metadata=self.metadata)

    def retain_keys(self, keys: Iterable[str]) -> SnapshotFile:
        """Return a copy holding only ``keys``, in their existing order."""
        return SnapshotFile(snapshots=self.snapshots.retain(keys), metadata=self.metadata)

    def serialize(self) -> str:
        """Render the file as text, entries in map order."""
        lines: list[str] = []
        if self.metadata is not None:
            lines.append(_delimiter(HEADER_SECTION))
            lines.extend(_text_lines(self.metadata))
        for key, snapshot in self.snapshots.entries():
            for facet_name, payload in snapshot.all_entries():
                section = _escape_name(key)
                if facet_name:
                    section += f"[{_escape_name(facet_name)}]"
                lines.append(_delimiter(section, binary=isinstance(payload, bytes)))
                lines.extend(_payload_lines(payload))
        lines.append(_delimiter(END_OF_FILE_SECTION))
        return "\n".join(lines) + "\n"

    @classmethod
    def parse(cls, text: str) -> SnapshotFile:
        """Parse serialized text back into a snapshot file.

        Args:
            text: Full file content, newlines untranslated.

        Returns:
            Parsed snapshot file; empty text yields an empty file.

        Raises:
            MalformedSnapshotFileError: If the content is not a valid file.
        """
        if not text:
            return cls.empty()
        return _Parser(text).parse()


@dataclass
class _Section:
    """Delimiter currently collecting payload lines."""

    kind: str
    line_number: int
    key: str = ""
    facet: str = ""
    binary: bool = False
    body: list[str] = field(default_factory=list)


class _Parser:
    """Single-pass parser over the lines of one snapshot file."""

    def __init__(self, text: str) -> None:
        lines = text.split("\n")
        if lines[-1] == "":
            lines.pop()
        self._lines = lines
        self._snapshots: OrderedMap[str, Snapshot] = OrderedMap.empty()
        self._metadata: str | None = None
        self._pending_key: str | None = None
        self._pending: Snapshot | None = None
        self._pending_line = 0

    def parse(self) -> SnapshotFile:
        section: _Section | None = None
        reached_end = False
        for line_number, line in enumerate(self._lines, 1):
            if reached_end:
                raise MalformedSnapshotFileError(
                    "Content found after the end-of-file marker", line_number
                )
            if line.startswith(DELIMITER_MARKER):
                if section is not None:
                    self._close(section)
                section = _read_delimiter(line, line_number)
                if section.kind == "header" and (self._metadata is not None or self._seen_any()):
                    raise MalformedSnapshotFileError(
                        "The header section must appear once, before any snapshot", line_number
                    )
                reached_end = section.kind == "end"
                continue
            if section is None:
                raise MalformedSnapshotFileError(
                    "Content found before the first delimiter line", line_number
                )
            if line.startswith(ESCAPE_PREFIX):
                line = line[len(ESCAPE_PREFIX):]
            section.body.append(line)
        if not reached_end:
            raise MalformedSnapshotFileError(
                "Missing end-of-file marker, the file may be truncated", len(self._lines)
            )
        self._flush_pending()
        return SnapshotFile(snapshots=self._snapshots, metadata=self._metadata)

    def _seen_any(self) -> bool:
        """Return whether any snapshot section was already read."""
        return self._pending is not None or len(self._snapshots) > 0

    def _close(self, section: _Section) -> None:
        """Fold a finished section into the header or pending snapshot."""
        if section.kind == "header":
            self._metadata = "\n".join(section.body)
            return
        payload = _decode_payload(section)
        if not section.facet:
            self._flush_pending()
            self._pending_key = section.key
            self._pending_line = section.line_number
            self._pending = Snapshot.of(payload)
            return
        if self._pending is None or self._pending_key != section.key:
            raise MalformedSnapshotFileError(
                f"Facet '{section.facet}' of '{section.key}' must follow its subject",
                section.line_number,
            )
        if section.facet in self._pending.facets:
            raise MalformedSnapshotFileError(
                f"Duplicate facet '{section.facet}' for '{section.key}'", section.line_number
            )
        self._pending = self._pending.with_facet(section.facet, payload)

    def _flush_pending(self) -> None:
        """Move the pending snapshot and its facets into the map."""
        if self._pending is None or self._pending_key is None:
            return
        try:
            self._snapshots = self._snapshots.insert(self._pending_key, self._pending)
        except DuplicateKeyError as error:
            raise MalformedSnapshotFileError(
                f"Duplicate snapshot key '{self._pending_key}'", self._pending_line
            ) from error
        self._pending_key = None
        self._pending = None


def _read_delimiter(line: str, line_number: int) -> _Section:
    """Decode one delimiter line into an open section."""
    if not line.startswith(DELIMITER_OPEN):
        raise MalformedSnapshotFileError(f"Unrecognized delimiter line {line!r}", line_number)
    if line.endswith(DELIMITER_CLOSE):
        inner, binary = line[len(DELIMITER_OPEN):-len(DELIMITER_CLOSE)], False
    elif line.endswith(_BINARY_CLOSE):
        inner, binary = line[len(DELIMITER_OPEN):-len(_BINARY_CLOSE)], True
    else:
        raise MalformedSnapshotFileError(f"Unterminated delimiter line {line!r}", line_number)
    if inner == HEADER_SECTION and not binary:
        return _Section(kind="header", line_number=line_number)
    if inner == END_OF_FILE_SECTION and not binary:
        return _Section(kind="end", line_number=line_number)
    key, facet = _decode_section_name(inner, line_number)
    return _Section(kind="entry", line_number=line_number, key=key, facet=facet, binary=binary)


def _decode_section_name(inner: str, line_number: int) -> tuple[str, str]:
    """Split ``key[facet]`` and reverse the backslash escapes of each part."""
    key_chars: list[str] = []
    facet_chars: list[str] | None = None
    target = key_chars
    closed = False
    index = 0
    while index < len(inner):
        char = inner[index]
        if closed:
            raise MalformedSnapshotFileError(f"Text after facet name in {inner!r}", line_number)
        if char == "\\":
            escaped = inner[index + 1:index + 2]
            if escaped not in _NAME_UNESCAPES:
                raise MalformedSnapshotFileError(f"Invalid escape in key {inner!r}", line_number)
            target.append(_NAME_UNESCAPES[escaped])
            index += 2
            continue
        if char == "[":
            if facet_chars is not None:
                raise MalformedSnapshotFileError(f"Nested facet in key {inner!r}", line_number)
            facet_chars = []
            target = facet_chars
        elif char == "]":
            if facet_chars is None:
                raise MalformedSnapshotFileError(f"Unbalanced ']' in key {inner!r}", line_number)
            closed = True
        else:
            target.append(char)
        index += 1
    if facet_chars is not None and not closed:
        raise MalformedSnapshotFileError(f"Unclosed facet in key {inner!r}", line_number)
    if not key_chars:
        raise MalformedSnapshotFileError(f"Empty snapshot key in {inner!r}", line_number)
    if facet_chars is not None and not facet_chars:
        raise MalformedSnapshotFileError(f"Empty facet name in {inner!r}", line_number)
    return "".join(key_chars), "".join(facet_chars or ())


def _decode_payload(section: _Section) -> SnapshotValue:
    """Join a section body into text, or decode it from base64."""
    if not section.binary:
        return "\n".join(section.body)
    try:
        return base64.b64decode("".join(section.body), validate=True)
    except binascii.Error as error:
        raise MalformedSnapshotFileError(
            f"Invalid base64 payload for '{section.key}': {error}", section.line_number
        ) from error


def _escape_name(name: str) -> str:
    """Backslash-escape characters that would break a delimiter line."""
    return "".join(_NAME_ESCAPES.get(char, char) for char in name)


def _delimiter(section: str, binary: bool = False) -> str:
    """Render one delimiter line for a section name."""
    close = _BINARY_CLOSE if binary else DELIMITER_CLOSE
    return f"{DELIMITER_OPEN}{section}{close}"


def _payload_lines(payload: SnapshotValue) -> list[str]:
    """Render a payload as body lines, base64-wrapped for bytes."""
    if isinstance(payload, bytes):
        encoded = base64.b64encode(payload).decode("ascii")
        return [
            encoded[start:start + BASE64_LINE_WIDTH]
            for start in range(0, len(encoded), BASE64_LINE_WIDTH)
        ] or [""]
    return _text_lines(payload)


def _text_lines(text: str) -> list[str]:
    """Split text on newlines, escaping lines that look like markup."""
    return [
        ESCAPE_PREFIX + line
        if line.startswith(DELIMITER_MARKER) or line.startswith(ESCAPE_PREFIX)
        else line
        for line in text.split("\n")
    ]
