"""Contract between the reporter and the results view."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from batch_snapshot_tester.execution_engine import RunnableState, RunStats


@dataclass(frozen=True)
class RunnableEvent:  # pylint: disable=too-many-instance-attributes
    """Identity and state of one suite, test or hook at the time of an event."""

    id: str
    parent_id: str | None
    title: str
    kind: str
    batch_key: str | None
    is_batch_root: bool = False
    display_name: str | None = None
    state: RunnableState | None = None
    duration_ms: float | None = None
    error_message: str | None = None


class RunListener(Protocol):
    """Receives run lifecycle events to build a results tree incrementally."""

    def clear(self) -> None: ...

    def handle_run_begin(self) -> None: ...

    def handle_suite_begin(self, suite: RunnableEvent) -> None: ...

    def handle_suite_end(self, suite: RunnableEvent) -> None: ...

    def handle_test_begin(self, test: RunnableEvent) -> None: ...

    def handle_test_end(self, test: RunnableEvent) -> None: ...

    def handle_test_fail(self, test: RunnableEvent, error: BaseException) -> None: ...

    def handle_batch_fail(self, hook: RunnableEvent, error: BaseException) -> None: ...

    def handle_run_end(self, stats: RunStats) -> None: ...


class NullRunListener:
    """Listener that ignores every event."""

    def clear(self) -> None:
        return None

    def handle_run_begin(self) -> None:
        return None

    def handle_suite_begin(self, suite: RunnableEvent) -> None:
        return None

    def handle_suite_end(self, suite: RunnableEvent) -> None:
        return None

    def handle_test_begin(self, test: RunnableEvent) -> None:
        return None

    def handle_test_end(self, test: RunnableEvent) -> None:
        return None

    def handle_test_fail(self, test: RunnableEvent, error: BaseException) -> None:
        return None

    def handle_batch_fail(self, hook: RunnableEvent, error: BaseException) -> None:
        return None

    def handle_run_end(self, stats: RunStats) -> None:
        return None
