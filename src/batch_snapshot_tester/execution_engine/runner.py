"""Asynchronous runner executing one suite tree and emitting lifecycle events."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .runnables import Hook, RunnableBody, Suite, Test, TestOutcome

LOGGER = logging.getLogger(__name__)

EventHandler = Callable[..., Any]


class RunnerEvent(str, Enum):
    """Lifecycle events emitted by a runner."""

    RUN_BEGIN = "start"
    RUN_END = "end"
    SUITE_BEGIN = "suite"
    SUITE_END = "suite end"
    TEST_BEGIN = "test"
    TEST_END = "test end"
    TEST_PASS = "pass"
    TEST_FAIL = "fail"
    TEST_PENDING = "pending"


class TestTimeoutError(Exception):
    """Raised when an asynchronous test body exceeds its timeout."""

    __test__ = False


@dataclass
class RunStats:  # pylint: disable=too-many-instance-attributes
    """Counters collected while a run progresses."""

    suites: int = 0
    tests: int = 0
    passes: int = 0
    pending: int = 0
    failures: int = 0
    start: datetime | None = None
    end: datetime | None = None
    duration_ms: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["start"] = self.start.isoformat() if self.start else None
        data["end"] = self.end.isoformat() if self.end else None
        return data


class Runner:
    """Executes a suite tree once.

    A runner is started with `start()`, which schedules the run on the running
    event loop, and can be awaited with `wait()`. `abort()` stops the run after
    the currently executing runnable finishes.
    """

    def __init__(self, root: Suite) -> None:
        self._root = root
        self._handlers: dict[RunnerEvent, list[tuple[EventHandler, bool]]] = {}
        self._aborted = False
        self._task: asyncio.Task[RunStats] | None = None
        self._selected_test_ids: set[str] | None = None
        self.current_runnable: Suite | Test | Hook | None = None
        self.stats = RunStats()

    @property
    def root(self) -> Suite:
        return self._root

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def finished(self) -> bool:
        return self._task is not None and self._task.done()

    def on(self, event: RunnerEvent, handler: EventHandler) -> Runner:
        self._handlers.setdefault(event, []).append((handler, False))
        return self

    def once(self, event: RunnerEvent, handler: EventHandler) -> Runner:
        self._handlers.setdefault(event, []).append((handler, True))
        return self

    def start(self) -> Runner:
        """Schedule the run on the running event loop."""
        if self._task is not None:
            raise RuntimeError("Runner has already been started.")
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self

    async def wait(self) -> RunStats:
        if self._task is None:
            raise RuntimeError("Runner has not been started.")
        return await self._task

    def abort(self) -> None:
        """Stop the run once the current runnable completes."""
        self._aborted = True

    async def run(self) -> RunStats:
        self._selected_test_ids = _collect_selected_test_ids(self._root)
        self.stats.start = datetime.now(UTC)
        started = time.perf_counter()
        self._emit(RunnerEvent.RUN_BEGIN)
        try:
            await self._run_suite(self._root)
        finally:
            self.current_runnable = None
            self.stats.end = datetime.now(UTC)
            self.stats.duration_ms = (time.perf_counter() - started) * 1000
            self._emit(RunnerEvent.RUN_END, self.stats)
        return self.stats

    def _emit(self, event: RunnerEvent, *args: Any) -> None:
        handlers = self._handlers.get(event, [])
        self._handlers[event] = [entry for entry in handlers if not entry[1]]
        for handler, _ in handlers:
            try:
                handler(*args)
            except Exception:  # pylint: disable=broad-exception-caught
                LOGGER.exception("Runner event handler for '%s' failed", event.value)

    def _is_selected(self, test: Test) -> bool:
        return self._selected_test_ids is None or test.id in self._selected_test_ids

    def _suite_selected(self, suite: Suite) -> bool:
        if self._selected_test_ids is None:
            return True
        return any(
            isinstance(runnable, Test) and runnable.id in self._selected_test_ids
            for runnable in suite.walk()
        )

    async def _run_suite(self, suite: Suite) -> None:
        if not self._suite_selected(suite):
            return
        if not suite.root:
            self.stats.suites += 1
        self._emit(RunnerEvent.SUITE_BEGIN, suite)
        pending = suite.is_pending()
        if pending or await self._run_hooks(suite, "before"):
            for test in suite.tests:
                if self._aborted:
                    break
                if self._is_selected(test):
                    await self._run_test(test)
            for child in suite.suites:
                if self._aborted:
                    break
                await self._run_suite(child)
        if not pending:
            await self._run_hooks(suite, "after")
        self._emit(RunnerEvent.SUITE_END, suite)

    async def _run_test(self, test: Test) -> None:
        self.stats.tests += 1
        if test.pending:
            self.stats.pending += 1
            self._emit(RunnerEvent.TEST_PENDING, test)
            self._emit(RunnerEvent.TEST_END, test)
            return

        self.current_runnable = test
        self._emit(RunnerEvent.TEST_BEGIN, test)
        started = time.perf_counter()
        error: BaseException | None = None
        for attempt in range(test.effective_retries() + 1):
            test.current_retry = attempt
            error = await self._run_each_hooks(test, "before_each")
            if error is None:
                self.current_runnable = test
                error = await _invoke(test.fn, test.effective_timeout_ms())
            after_error = await self._run_each_hooks(test, "after_each")
            error = error or after_error
            if error is None:
                break
        self.current_runnable = test
        test.duration_ms = (time.perf_counter() - started) * 1000

        if error is None:
            test.outcome = TestOutcome.PASSED
            self.stats.passes += 1
            self._emit(RunnerEvent.TEST_PASS, test)
        else:
            test.outcome = TestOutcome.FAILED
            test.error = error
            self.stats.failures += 1
            self._emit(RunnerEvent.TEST_FAIL, test, error)
        self._emit(RunnerEvent.TEST_END, test)

    async def _run_hooks(self, suite: Suite, kind: str) -> bool:
        for hook in suite.hooks[kind]:
            self.current_runnable = hook
            error = await _invoke(hook.fn, suite.effective_timeout_ms())
            if error is not None:
                hook.error = error
                self.stats.failures += 1
                self._emit(RunnerEvent.TEST_FAIL, hook, error)
                return False
        return True

    async def _run_each_hooks(self, test: Test, kind: str) -> BaseException | None:
        chain: list[Suite] = []
        suite: Suite | None = test.parent
        while suite is not None:
            chain.append(suite)
            suite = suite.parent
        if kind == "before_each":
            chain.reverse()
        for owner in chain:
            for hook in owner.hooks[kind]:
                self.current_runnable = hook
                error = await _invoke(hook.fn, owner.effective_timeout_ms())
                if error is not None:
                    return error
        return None


async def _invoke(fn: RunnableBody | None, timeout_ms: int) -> BaseException | None:
    if fn is None:
        return None
    try:
        result = fn()
        if inspect.isawaitable(result):
            await _await_with_timeout(result, timeout_ms)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        return exc
    return None


async def _await_with_timeout(awaitable: Any, timeout_ms: int) -> None:
    if timeout_ms <= 0:
        await awaitable
        return
    task = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000)
    if task in done:
        task.result()
        return
    task.cancel()
    raise TestTimeoutError(
        f"Timeout of {timeout_ms}ms exceeded. "
        "For async tests, ensure the coroutine completes in time."
    )


def _collect_selected_test_ids(root: Suite) -> set[str] | None:
    if not any(
        getattr(runnable, "exclusive", False) for runnable in root.walk() if runnable is not root
    ):
        return None
    selected: set[str] = set()
    _select_exclusive(root, inherited=False, selected=selected)
    return selected


def _select_exclusive(suite: Suite, *, inherited: bool, selected: set[str]) -> None:
    inside = inherited or suite.exclusive
    for test in suite.tests:
        if inside or test.exclusive:
            selected.add(test.id)
    for child in suite.suites:
        _select_exclusive(child, inherited=inside, selected=selected)
