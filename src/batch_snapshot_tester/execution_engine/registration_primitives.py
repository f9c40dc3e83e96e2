"""Grouping and registration primitives (`describe`, `it`, hooks)."""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from .runnables import RunnableBody, Suite, Test


class RegistrationError(Exception):
    """Raised when a registration primitive is used incorrectly."""


class SuiteRegistrar:
    """Builds a suite tree below one root suite.

    The registrar keeps a single "current suite" cursor. `describe` pushes a new
    suite, runs its body synchronously and pops it again, so nested calls land in
    the right place. Asynchronous bodies are not awaited by `describe`; callers
    that need to await registration use `open_suite` instead.
    """

    def __init__(self, root: Suite) -> None:
        self._root = root
        self._stack: list[Suite] = [root]
        self.describe = _Describe(self)
        self.it = _It(self)

    @property
    def root(self) -> Suite:
        return self._root

    @property
    def current_suite(self) -> Suite:
        return self._stack[-1]

    @contextmanager
    def open_suite(self, title: str) -> Iterator[Suite]:
        """Create a suite below the current one and make it current while the block runs."""
        suite = self.current_suite.add_suite(title)
        self._stack.append(suite)
        try:
            yield suite
        finally:
            self._stack.pop()

    def before(self, fn: RunnableBody) -> None:
        self.current_suite.add_hook("before", fn)

    def after(self, fn: RunnableBody) -> None:
        self.current_suite.add_hook("after", fn)

    def before_each(self, fn: RunnableBody) -> None:
        self.current_suite.add_hook("before_each", fn)

    def after_each(self, fn: RunnableBody) -> None:
        self.current_suite.add_hook("after_each", fn)

    def _describe(self, title: str, fn: Callable[[], object]) -> Suite:
        with self.open_suite(title) as suite:
            result = fn()
            if inspect.isawaitable(result):
                _close_awaitable(result)
                raise RegistrationError(
                    f"describe('{title}') body must be synchronous; "
                    "await setup inside the batch registration function instead."
                )
        return suite

    def _it(self, title: str, fn: RunnableBody | None = None) -> Test:
        return self.current_suite.add_test(title, fn)


class _Describe:
    """Callable `describe` primitive with `only`/`skip` modifiers."""

    def __init__(self, registrar: SuiteRegistrar) -> None:
        self._registrar = registrar

    def __call__(self, title: str, fn: Callable[[], object]) -> Suite:
        return self._registrar._describe(title, fn)  # pylint: disable=protected-access

    def only(self, title: str, fn: Callable[[], object]) -> Suite:
        suite = self(title, fn)
        suite.exclusive = True
        return suite

    def skip(self, title: str, fn: Callable[[], object]) -> Suite:
        suite = self(title, fn)
        suite.skipped = True
        return suite


class _It:
    """Callable `it` primitive with `only`/`skip`/`retries` modifiers."""

    def __init__(self, registrar: SuiteRegistrar) -> None:
        self._registrar = registrar

    def __call__(self, title: str, fn: RunnableBody | None = None) -> Test:
        return self._registrar._it(title, fn)  # pylint: disable=protected-access

    def only(self, title: str, fn: RunnableBody | None = None) -> Test:
        test = self(title, fn)
        test.exclusive = True
        return test

    def skip(self, title: str, fn: RunnableBody | None = None) -> Test:
        test = self(title, fn)
        test.skipped = True
        return test

    def retries(self, count: int) -> None:
        """Set the retry count for tests of the current suite."""
        if count < 0:
            raise RegistrationError("retries must not be negative.")
        self._registrar.current_suite.retries = count


def _close_awaitable(result: object) -> None:
    close = getattr(result, "close", None)
    if callable(close):
        close()
