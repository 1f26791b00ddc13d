"""Mismatch reporting for snapshot comparisons.

This module locates the first divergence between two payloads and renders
a short ``L<line>:C<column>`` message. It reports one location only and is
not a multi-hunk diff.
"""

from __future__ import annotations

from core.errors import SnapshotMismatchError, SnapstoreInternalError
from core.types import DiffResult, SnapshotValue
from store.snapshot import Snapshot


def diff_strings(expected: str, actual: str) -> DiffResult:
    """Locate the first character where two unequal strings diverge.

    Line and column advance along ``expected``. When one string is a strict
    prefix of the other, the result points one past the shared prefix and
    carries no line content.

    Args:
        expected: Stored snapshot text.
        actual: Freshly computed text.

    Returns:
        Location of the first divergence.

    Raises:
        SnapstoreInternalError: If the strings are equal.
    """
    line_number = 1
    column_number = 1
    for index, (expected_char, actual_char) in enumerate(zip(expected, actual)):
        if expected_char != actual_char:
            line_start = index - column_number + 1
            return DiffResult(
                line=line_number,
                column=column_number,
                expected_line=expected[line_start:_line_end(expected, index)],
                actual_line=actual[line_start:_line_end(actual, index)],
            )
        if expected_char == "\n":
            line_number += 1
            column_number = 1
        else:
            column_number += 1
    if len(expected) != len(actual):
        return DiffResult(line=line_number, column=column_number)
    raise SnapstoreInternalError(
        "diff_strings was called with equal strings; compare before diffing."
    )


def describe_mismatch(expected: Snapshot, actual: Snapshot) -> tuple[str, DiffResult | None]:
    """Describe how two unequal snapshots differ.

    The subject is checked first, then facets in expected order followed by
    facets only present in ``actual``.

    Returns:
        Rendered message and the text diff of the first differing payload,
        when that payload is text on both sides.

    Raises:
        SnapstoreInternalError: If the snapshots are equal.
    """
    if expected == actual:
        raise SnapstoreInternalError(
            "describe_mismatch was called with equal snapshots; compare before diffing."
        )
    facet_names = list(expected.facet_names)
    facet_names.extend(name for name in actual.facet_names if name not in expected.facets)
    messages: list[str] = []
    first_diff: DiffResult | None = None
    for name in [""] + facet_names:
        expected_value = expected.subject if not name else expected.facet(name)
        actual_value = actual.subject if not name else actual.facet(name)
        if expected_value == actual_value:
            continue
        label = "subject" if not name else f"facet '{name}'"
        message, diff = _describe_payloads(label, expected_value, actual_value)
        messages.append(message)
        if first_diff is None:
            first_diff = diff
    return "\n".join(messages), first_diff


def mismatch_error(key: str, expected: Snapshot, actual: Snapshot) -> SnapshotMismatchError:
    """Build the user-facing error for an unequal snapshot pair."""
    message, diff = describe_mismatch(expected, actual)
    return SnapshotMismatchError(key, message, diff)


def _describe_payloads(
    label: str,
    expected: SnapshotValue | None,
    actual: SnapshotValue | None,
) -> tuple[str, DiffResult | None]:
    """Describe one differing payload pair under its label."""
    if expected is None:
        return f"{label}: not present in the stored snapshot", None
    if actual is None:
        return f"{label}: stored in the snapshot but missing from the actual value", None
    if isinstance(expected, str) and isinstance(actual, str):
        diff = diff_strings(expected, actual)
        return f"{label}: {diff.message}", diff
    return (
        f"{label}: binary content differs "
        f"(expected {_describe_value(expected)}, actual {_describe_value(actual)})",
        None,
    )


def _describe_value(value: SnapshotValue) -> str:
    """Summarize a payload by its size."""
    if isinstance(value, bytes):
        return f"{len(value)} bytes"
    return f"{len(value)} characters of text"


def _line_end(text: str, index: int) -> int:
    end = text.find("\n", index)
    return len(text) if end == -1 else end
