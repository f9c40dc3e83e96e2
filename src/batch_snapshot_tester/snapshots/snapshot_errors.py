"""Snapshot assertion failures."""

from __future__ import annotations

from typing import Any


class ComparisonFailure(AssertionError):
    """Assertion failure carrying the compared actual and expected payloads."""

    snapshot_error = False

    def __init__(self, message: str, *, actual: Any, expected: Any) -> None:
        super().__init__(message)
        self.actual = actual
        self.expected = expected


class SnapshotMismatchError(ComparisonFailure):
    """Raised when a stored snapshot differs from the serialized actual value."""

    snapshot_error = True


class MissingSnapshotError(AssertionError):
    """Raised when a test's snapshot is not present in the loaded cache."""

    snapshot_error = True

    def __init__(self, *, batch_key: str, snapshot_hash: str, directory: str) -> None:
        self.batch_key = batch_key
        self.snapshot_hash = snapshot_hash
        self.path = f"{directory}/{snapshot_hash}.snap.txt"
        super().__init__(f"Snapshot not found: {self.path}")
