"""Reporter forwarding runner lifecycle events to the results view and the log."""

from __future__ import annotations

import json
import logging
from typing import Any

from batch_snapshot_tester.batch_registration import BatchRegistry
from batch_snapshot_tester.execution_engine import (
    Hook,
    Runner,
    RunnerEvent,
    RunnableState,
    RunStats,
    Suite,
    Test,
    get_suite_state,
    get_test_state,
)

from .run_listener import NullRunListener, RunListener, RunnableEvent
from .runnable_ownership import RunnableOwnership

LOGGER = logging.getLogger(__name__)

REPORT_SECTIONS = ("tests", "pending", "failures", "passes")


class BatchReporter:
    """Subscribes to one runner and translates its events for the results view."""

    def __init__(
        self,
        runner: Runner,
        listener: RunListener,
        *,
        ownership: RunnableOwnership,
        registry: BatchRegistry,
        log_test_details: bool = True,
    ) -> None:
        self._listener = listener
        self._ownership = ownership
        self._registry = registry
        self._log_details = log_test_details
        self._sections: dict[str, list[Test]] = {name: [] for name in REPORT_SECTIONS}
        self.stats: RunStats | None = None
        self.json_report: str | None = None

        runner.once(RunnerEvent.RUN_BEGIN, self._on_run_begin)
        runner.on(RunnerEvent.SUITE_BEGIN, self._on_suite_begin)
        runner.on(RunnerEvent.SUITE_END, self._on_suite_end)
        runner.on(RunnerEvent.TEST_BEGIN, self._on_test_begin)
        runner.on(RunnerEvent.TEST_PENDING, self._sections["pending"].append)
        runner.on(RunnerEvent.TEST_PASS, self._sections["passes"].append)
        runner.on(RunnerEvent.TEST_END, self._on_test_end)
        runner.on(RunnerEvent.TEST_FAIL, self._on_test_fail)
        runner.once(RunnerEvent.RUN_END, self._on_run_end)

    def detach(self) -> None:
        """Stop forwarding events to the results view; the log and report still see them."""
        self._listener = NullRunListener()

    def describe(self, runnable: Suite | Test | Hook) -> RunnableEvent:
        """Build the event payload identifying one runnable."""
        batch_key = self._ownership.batch_of(runnable)
        is_batch_root = self._ownership.is_batch_root(runnable)
        record = self._registry.get(batch_key) if batch_key else None
        parent = runnable.parent
        if isinstance(runnable, Suite):
            kind, state, duration, error = "suite", None, None, None
        elif isinstance(runnable, Test):
            kind, state = "test", get_test_state(runnable)
            duration, error = runnable.duration_ms, runnable.error
        else:
            kind, state, duration, error = "hook", RunnableState.FAILURE, None, runnable.error
        return RunnableEvent(
            id=runnable.id,
            parent_id=parent.id if parent is not None else None,
            title=runnable.title,
            kind=kind,
            batch_key=batch_key,
            is_batch_root=is_batch_root,
            display_name=record.display_name if record and is_batch_root else None,
            state=state,
            duration_ms=duration,
            error_message=str(error) if error is not None else None,
        )

    def _on_run_begin(self) -> None:
        self._listener.handle_run_begin()
        if self._log_details:
            LOGGER.info("DETAILED TEST RESULTS")

    def _on_suite_begin(self, suite: Suite) -> None:
        event = self.describe(suite)
        self._listener.handle_suite_begin(event)
        if self._log_details and not suite.root:
            if self._ownership.is_batch_root(suite):
                LOGGER.info("Batch: %s", event.display_name or event.batch_key)
            else:
                LOGGER.info("Suite: %s", suite.title)

    def _on_suite_end(self, suite: Suite) -> None:
        self._listener.handle_suite_end(self.describe(suite))
        if self._log_details and not suite.root:
            LOGGER.debug("Suite complete: %s (%s)", suite.title, get_suite_state(suite).value)

    def _on_test_begin(self, test: Test) -> None:
        self._listener.handle_test_begin(self.describe(test))

    def _on_test_end(self, test: Test) -> None:
        self._sections["tests"].append(test)
        state = get_test_state(test)
        if state == RunnableState.FAILURE:
            return
        self._listener.handle_test_end(self.describe(test))
        if self._log_details:
            label = "PENDING" if state == RunnableState.PENDING else "PASS"
            LOGGER.info("(%s) Test Complete: %s", label, test.title)

    def _on_test_fail(self, runnable: Test | Hook, error: BaseException) -> None:
        event = self.describe(runnable)
        if isinstance(runnable, Hook):
            if runnable.kind in ("before", "before_each"):
                if self._ownership.is_batch_root(runnable.parent):
                    self._listener.handle_batch_fail(event, error)
                else:
                    self._listener.handle_test_fail(event, error)
        else:
            self._sections["failures"].append(runnable)
            self._listener.handle_test_fail(event, error)
        if self._log_details:
            LOGGER.error("(FAIL) Test Complete: %s", runnable.title, exc_info=error)

    def _on_run_end(self, stats: RunStats) -> None:
        self.stats = stats
        self._listener.handle_run_end(stats)
        if self._log_details:
            LOGGER.info(
                "TEST RUN COMPLETE: %d passed, %d failed, %d pending",
                stats.passes,
                stats.failures,
                stats.pending,
            )
        self.json_report = json.dumps(self.report_data(), indent=2)

    def report_data(self) -> dict[str, Any]:
        """Return stats plus cleaned test data for every report section."""
        data: dict[str, Any] = {"stats": self.stats.to_dict() if self.stats else None}
        for name in REPORT_SECTIONS:
            data[name] = [self._clean(test) for test in self._sections[name]]
        return data

    def _clean(self, test: Test) -> dict[str, Any]:
        error = test.error
        return {
            "title": test.title,
            "fullTitle": test.full_title(),
            "batch": self._ownership.batch_of(test),
            "state": get_test_state(test).value,
            "duration": test.duration_ms,
            "currentRetry": test.current_retry,
            "err": (
                {"type": type(error).__name__, "message": str(error)} if error is not None else {}
            ),
        }
