"""Suite, test and hook entities produced during registration."""

from __future__ import annotations

import itertools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

RunnableBody = Callable[[], "Awaitable[object] | object"]

DEFAULT_TIMEOUT_MS = 2000

_ids = itertools.count(1)

_HOOK_TITLES = {
    "before": "before all",
    "after": "after all",
    "before_each": "before each",
    "after_each": "after each",
}


def _next_id(prefix: str) -> str:
    return f"{prefix}-{next(_ids)}"


class RunnableState(str, Enum):
    """Rendered state of a suite or test."""

    IN_PROGRESS = "progress"
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


class TestOutcome(str, Enum):
    """Raw result recorded by the runner for one test."""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"


@dataclass(eq=False)
class Hook:
    """A `before`/`after`/`before_each`/`after_each` callback bound to one suite."""

    kind: str
    fn: RunnableBody
    parent: Suite
    id: str = field(default_factory=lambda: _next_id("hook"))
    error: BaseException | None = None

    @property
    def title(self) -> str:
        return f'"{_HOOK_TITLES[self.kind]}" hook'

    def title_path(self) -> list[str]:
        return [*self.parent.title_path(), self.title]

    def full_title(self) -> str:
        return " ".join(self.title_path())


@dataclass(eq=False)
class Test:  # pylint: disable=too-many-instance-attributes
    """One test case registered through `it`."""

    __test__ = False

    title: str
    fn: RunnableBody | None
    parent: Suite
    id: str = field(default_factory=lambda: _next_id("test"))
    exclusive: bool = False
    skipped: bool = False
    retries: int | None = None
    timeout_ms: int | None = None
    outcome: TestOutcome | None = None
    error: BaseException | None = None
    duration_ms: float | None = None
    current_retry: int = 0

    @property
    def pending(self) -> bool:
        return self.fn is None or self.skipped or self.parent.is_pending()

    def title_path(self) -> list[str]:
        return [*self.parent.title_path(), self.title]

    def full_title(self) -> str:
        return " ".join(self.title_path())

    def effective_retries(self) -> int:
        if self.retries is not None:
            return self.retries
        return self.parent.effective_retries()

    def effective_timeout_ms(self) -> int:
        if self.timeout_ms is not None:
            return self.timeout_ms
        return self.parent.effective_timeout_ms()


@dataclass(eq=False)
class Suite:  # pylint: disable=too-many-instance-attributes
    """A group of tests, hooks and nested suites."""

    title: str
    parent: Suite | None = None
    root: bool = False
    id: str = field(default_factory=lambda: _next_id("suite"))
    exclusive: bool = False
    skipped: bool = False
    retries: int | None = None
    timeout_ms: int | None = None
    tests: list[Test] = field(default_factory=list)
    suites: list[Suite] = field(default_factory=list)
    hooks: dict[str, list[Hook]] = field(
        default_factory=lambda: {"before": [], "after": [], "before_each": [], "after_each": []}
    )

    @classmethod
    def create_root(cls, title: str = "__root", *, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> Suite:
        return cls(title=title, root=True, timeout_ms=timeout_ms)

    def add_suite(self, title: str) -> Suite:
        suite = Suite(title=title, parent=self)
        self.suites.append(suite)
        return suite

    def add_test(self, title: str, fn: RunnableBody | None) -> Test:
        test = Test(title=title, fn=fn, parent=self)
        self.tests.append(test)
        return test

    def add_hook(self, kind: str, fn: RunnableBody) -> Hook:
        if kind not in self.hooks:
            raise ValueError(f"Unknown hook kind: {kind}")
        hook = Hook(kind=kind, fn=fn, parent=self)
        self.hooks[kind].append(hook)
        return hook

    def is_pending(self) -> bool:
        if self.skipped:
            return True
        return self.parent.is_pending() if self.parent else False

    def title_path(self) -> list[str]:
        if self.parent is None:
            return [] if self.root else [self.title]
        path = self.parent.title_path()
        return path if self.root else [*path, self.title]

    def full_title(self) -> str:
        return " ".join(self.title_path())

    def effective_retries(self) -> int:
        if self.retries is not None:
            return self.retries
        return self.parent.effective_retries() if self.parent else 0

    def effective_timeout_ms(self) -> int:
        if self.timeout_ms is not None:
            return self.timeout_ms
        return self.parent.effective_timeout_ms() if self.parent else DEFAULT_TIMEOUT_MS

    def walk(self):
        """Yield this suite and every nested suite and test, depth first."""
        yield self
        yield from self.tests
        for child in self.suites:
            yield from child.walk()

    def total_tests(self) -> int:
        return len(self.tests) + sum(child.total_tests() for child in self.suites)


Runnable = Suite | Test | Hook


def get_test_state(test: Test) -> RunnableState:
    """Return the rendered state of one test."""
    if test.pending:
        return RunnableState.PENDING
    if test.outcome is None:
        return RunnableState.IN_PROGRESS
    if test.outcome == TestOutcome.PASSED:
        return RunnableState.SUCCESS
    return RunnableState.FAILURE


def get_suite_state(suite: Suite) -> RunnableState:
    """Aggregate the state of a suite from its tests and nested suites."""
    if suite.is_pending():
        return RunnableState.PENDING
    if any(get_test_state(test) == RunnableState.FAILURE for test in suite.tests):
        return RunnableState.FAILURE
    if any(get_suite_state(child) == RunnableState.FAILURE for child in suite.suites):
        return RunnableState.FAILURE
    return RunnableState.SUCCESS
