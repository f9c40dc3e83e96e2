"""Capabilities handed to a batch registration function."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

from batch_snapshot_tester.batch_registration import get_batch_name_parts
from batch_snapshot_tester.execution_engine import (
    Suite,
    SuiteRegistrar,
    Test,
    get_suite_state,
    get_test_state,
)
from batch_snapshot_tester.execution_engine.runnables import RunnableBody
from batch_snapshot_tester.snapshots import AssertionContext

from .runnable_ownership import RunnableOwnership


class BatchUtils:
    """Helpers available to batch code through `context.utils`."""

    get_batch_name_parts = staticmethod(get_batch_name_parts)
    get_test_state = staticmethod(get_test_state)
    get_suite_state = staticmethod(get_suite_state)

    @staticmethod
    async def pause(millis: float) -> None:
        """Sleep for the given number of milliseconds."""
        await asyncio.sleep(millis / 1000)


class OwnedDescribe:
    """`describe` that tags the suites it creates with the owning batch.

    The `only` and `skip` modifiers are forwarded to the underlying primitive;
    the orchestrator claims the suites they create once registration finishes.
    """

    def __init__(self, describe, ownership: RunnableOwnership, batch_key: str) -> None:
        self._describe = describe
        self._ownership = ownership
        self._batch_key = batch_key

    def __call__(self, title: str, fn: Callable[[], object]) -> Suite:
        suite = self._describe(title, fn)
        self._ownership.tag(suite, self._batch_key)
        return suite

    @property
    def only(self):
        return self._describe.only

    @property
    def skip(self):
        return self._describe.skip


class OwnedIt:
    """`it` that tags the tests it creates with the owning batch."""

    def __init__(self, it, ownership: RunnableOwnership, batch_key: str) -> None:
        self._it = it
        self._ownership = ownership
        self._batch_key = batch_key

    def __call__(self, title: str, fn: RunnableBody | None = None) -> Test:
        test = self._it(title, fn)
        self._ownership.tag(test, self._batch_key)
        return test

    @property
    def only(self):
        return self._it.only

    @property
    def skip(self):
        return self._it.skip

    @property
    def retries(self):
        return self._it.retries


@dataclass(frozen=True)
class BatchContext:  # pylint: disable=too-many-instance-attributes
    """Registration primitives and assertions for one batch of one run."""

    batch_key: str
    describe: OwnedDescribe
    it: OwnedIt
    before: Callable[[RunnableBody], None]
    after: Callable[[RunnableBody], None]
    before_each: Callable[[RunnableBody], None]
    after_each: Callable[[RunnableBody], None]
    assertions: AssertionContext
    utils: type[BatchUtils] = BatchUtils


def build_batch_context(
    registrar: SuiteRegistrar,
    ownership: RunnableOwnership,
    batch_key: str,
    assertions: AssertionContext,
) -> BatchContext:
    """Wrap the registrar's primitives so everything they create belongs to `batch_key`."""
    return BatchContext(
        batch_key=batch_key,
        describe=OwnedDescribe(registrar.describe, ownership, batch_key),
        it=OwnedIt(registrar.it, ownership, batch_key),
        before=registrar.before,
        after=registrar.after,
        before_each=registrar.before_each,
        after_each=registrar.after_each,
        assertions=assertions,
    )
