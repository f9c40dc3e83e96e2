"""Assertion helpers handed to batch registration functions."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .serializer import serialize
from .snapshot_errors import ComparisonFailure, MissingSnapshotError, SnapshotMismatchError
from .snapshot_store import SnapshotStore

TRUNCATE_LENGTH = 500


@dataclass(frozen=True)
class SnapshotLocation:
    """Batch and slugified full title identifying the running test's snapshot."""

    batch_key: str
    full_title: str


class AssertionContext:
    """Equality and snapshot assertions bound to one run."""

    def __init__(
        self,
        snapshots: SnapshotStore,
        locate: Callable[[], SnapshotLocation],
        *,
        update_mode: bool,
    ) -> None:
        self._snapshots = snapshots
        self._locate = locate
        self._update_mode = update_mode

    @property
    def update_mode(self) -> bool:
        return self._update_mode

    def ok(self, value: Any, message: str | None = None) -> None:
        if not value:
            raise ComparisonFailure(
                message or f"expected {value!r} to be truthy", actual=value, expected=True
            )

    def equal(self, actual: Any, expected: Any, message: str | None = None) -> None:
        if actual != expected:
            raise ComparisonFailure(
                message or f"expected {actual!r} to equal {expected!r}",
                actual=actual,
                expected=expected,
            )

    def fail(self, message: str = "assert.fail()") -> None:
        raise ComparisonFailure(message, actual=None, expected=None)

    def match_snapshot(self, value: Any) -> None:
        """Compare the serialized value with the stored snapshot of the running test.

        A missing snapshot fails the test unless update mode is on. A differing
        snapshot raises `SnapshotMismatchError` unless update mode is on. In both
        cases the actual value is queued so a later flush can store it.
        """
        actual = serialize(value)
        location = self._locate()
        try:
            expected = self._snapshots.read(location.batch_key, location.full_title)
        except MissingSnapshotError:
            self._snapshots.queue_update(location.batch_key, location.full_title, actual)
            if self._update_mode:
                return
            raise
        if expected == actual:
            return
        self._snapshots.queue_update(location.batch_key, location.full_title, actual)
        if self._update_mode:
            return
        raise SnapshotMismatchError(
            f"expected\n{_truncate(actual)}\nto equal\n{_truncate(expected)}",
            actual=actual,
            expected=expected,
        )


def _truncate(text: str, length: int = TRUNCATE_LENGTH) -> str:
    if len(text) <= length:
        return text
    return f"{text[:length]}..."
