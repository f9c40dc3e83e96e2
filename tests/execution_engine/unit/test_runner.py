"""Runner behavior tests."""

from __future__ import annotations

import asyncio

import pytest
from batch_snapshot_tester.execution_engine import (
    Runner,
    RunnerEvent,
    RunnableState,
    Suite,
    SuiteRegistrar,
    TestTimeoutError,
    get_suite_state,
    get_test_state,
)


def _record_events(runner: Runner) -> list[tuple[str, str]]:
    events: list[tuple[str, str]] = []
    for event in (
        RunnerEvent.SUITE_BEGIN,
        RunnerEvent.SUITE_END,
        RunnerEvent.TEST_BEGIN,
        RunnerEvent.TEST_PASS,
        RunnerEvent.TEST_FAIL,
        RunnerEvent.TEST_PENDING,
        RunnerEvent.TEST_END,
    ):
        runner.on(
            event,
            lambda runnable, *_, name=event.value: events.append((name, runnable.title)),
        )
    return events


@pytest.mark.asyncio
async def test_runs_hooks_and_tests_in_declaration_order() -> None:
    root = Suite.create_root()
    registrar = SuiteRegistrar(root)
    calls: list[str] = []

    def body() -> None:
        registrar.before(lambda: calls.append("before"))
        registrar.before_each(lambda: calls.append("before_each"))
        registrar.after_each(lambda: calls.append("after_each"))
        registrar.after(lambda: calls.append("after"))
        registrar.it("first", lambda: calls.append("first"))
        registrar.it("second", lambda: calls.append("second"))

    registrar.describe("group", body)
    stats = await Runner(root).run()

    assert calls == [
        "before",
        "before_each",
        "first",
        "after_each",
        "before_each",
        "second",
        "after_each",
        "after",
    ]
    assert stats.passes == 2
    assert stats.failures == 0
    assert stats.suites == 1


@pytest.mark.asyncio
async def test_failing_test_emits_fail_before_test_end() -> None:
    root = Suite.create_root()
    registrar = SuiteRegistrar(root)

    def broken() -> None:
        raise AssertionError("boom")

    registrar.describe("group", lambda: registrar.it("breaks", broken))
    runner = Runner(root)
    events = _record_events(runner)
    stats = await runner.run()

    assert ("fail", "breaks") in events
    assert events.index(("fail", "breaks")) < events.index(("test end", "breaks"))
    assert stats.failures == 1
    test = root.suites[0].tests[0]
    assert get_test_state(test) == RunnableState.FAILURE
    assert get_suite_state(root.suites[0]) == RunnableState.FAILURE
    assert str(test.error) == "boom"


@pytest.mark.asyncio
async def test_pending_and_skipped_tests_are_reported_as_pending() -> None:
    root = Suite.create_root()
    registrar = SuiteRegistrar(root)

    def body() -> None:
        registrar.it("no body")
        registrar.it.skip("skipped", lambda: None)

    registrar.describe("group", body)
    runner = Runner(root)
    events = _record_events(runner)
    stats = await runner.run()

    assert stats.pending == 2
    assert stats.tests == 2
    assert ("pending", "no body") in events
    assert ("test", "skipped") not in events


@pytest.mark.asyncio
async def test_only_restricts_the_run_to_exclusive_tests() -> None:
    root = Suite.create_root()
    registrar = SuiteRegistrar(root)
    ran: list[str] = []

    def body() -> None:
        registrar.it("ignored", lambda: ran.append("ignored"))
        registrar.it.only("chosen", lambda: ran.append("chosen"))

    registrar.describe("group", body)
    registrar.describe("other", lambda: registrar.it("also ignored", lambda: ran.append("x")))
    await Runner(root).run()

    assert ran == ["chosen"]


@pytest.mark.asyncio
async def test_retries_rerun_a_failing_test() -> None:
    root = Suite.create_root()
    registrar = SuiteRegistrar(root)
    attempts: list[int] = []

    def flaky() -> None:
        attempts.append(1)
        if len(attempts) < 3:
            raise AssertionError("not yet")

    def body() -> None:
        registrar.it.retries(2)
        registrar.it("flaky", flaky)

    registrar.describe("group", body)
    stats = await Runner(root).run()

    assert len(attempts) == 3
    assert stats.passes == 1
    assert root.suites[0].tests[0].current_retry == 2


@pytest.mark.asyncio
async def test_async_test_exceeding_timeout_fails() -> None:
    root = Suite.create_root(timeout_ms=20)
    registrar = SuiteRegistrar(root)

    async def slow() -> None:
        await asyncio.sleep(1)

    registrar.describe("group", lambda: registrar.it("slow", slow))
    stats = await Runner(root).run()

    assert stats.failures == 1
    assert isinstance(root.suites[0].tests[0].error, TestTimeoutError)


@pytest.mark.asyncio
async def test_failing_before_hook_skips_the_suite() -> None:
    root = Suite.create_root()
    registrar = SuiteRegistrar(root)
    ran: list[str] = []

    def broken_setup() -> None:
        raise RuntimeError("setup failed")

    def body() -> None:
        registrar.before(broken_setup)
        registrar.it("never runs", lambda: ran.append("test"))

    registrar.describe("group", body)
    failures: list[str] = []
    runner = Runner(root).on(
        RunnerEvent.TEST_FAIL, lambda runnable, _: failures.append(runnable.title)
    )
    stats = await runner.run()

    assert ran == []
    assert failures == ['"before all" hook']
    assert stats.failures == 1


@pytest.mark.asyncio
async def test_abort_stops_after_the_current_test() -> None:
    root = Suite.create_root()
    registrar = SuiteRegistrar(root)
    ran: list[str] = []
    runner = Runner(root)

    def first() -> None:
        ran.append("first")
        runner.abort()

    def body() -> None:
        registrar.it("first", first)
        registrar.it("second", lambda: ran.append("second"))

    registrar.describe("group", body)
    ended: list[object] = []
    runner.once(RunnerEvent.RUN_END, ended.append)
    await runner.start().wait()

    assert ran == ["first"]
    assert runner.aborted is True
    assert runner.finished is True
    assert len(ended) == 1


@pytest.mark.asyncio
async def test_handler_errors_do_not_break_the_run() -> None:
    root = Suite.create_root()
    registrar = SuiteRegistrar(root)
    registrar.describe("group", lambda: registrar.it("passes", lambda: None))

    def broken_handler(_test) -> None:
        raise RuntimeError("listener failed")

    runner = Runner(root).on(RunnerEvent.TEST_BEGIN, broken_handler)
    stats = await runner.run()

    assert stats.passes == 1
