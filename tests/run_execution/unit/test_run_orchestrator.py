"""Run orchestrator tests."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from batch_snapshot_tester.batch_registration import BatchRegistry
from batch_snapshot_tester.execution_engine import Suite, Test
from batch_snapshot_tester.remote_storage import LocalDirectoryStore
from batch_snapshot_tester.run_execution import (
    NoActiveRunError,
    NullRunListener,
    RunOrchestrator,
)
from batch_snapshot_tester.snapshots import SnapshotStore


class _RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def warn(self, message: str) -> None:
        self.messages.append(("warn", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def info(self, message: str) -> None:
        self.messages.append(("info", message))


class _BatchFailListener(NullRunListener):
    def __init__(self) -> None:
        self.batch_failures: list[tuple[str, str]] = []

    def handle_batch_fail(self, hook, error) -> None:
        self.batch_failures.append((hook.batch_key, str(error)))


class _EventListener(NullRunListener):
    def __init__(self) -> None:
        self.events: list[str] = []

    def clear(self) -> None:
        self.events.append("clear")

    def handle_test_end(self, test) -> None:
        self.events.append(f"test_end:{test.title}")

    def handle_test_fail(self, test, error) -> None:
        self.events.append(f"test_fail:{test.title}")

    def handle_run_end(self, stats) -> None:
        self.events.append("run_end")


def _orchestrator(
    tmp_path: Path,
    registry: BatchRegistry,
    *,
    notifier: _RecordingNotifier | None = None,
    listener=None,
    report_filename: str | None = None,
) -> RunOrchestrator:
    store = LocalDirectoryStore(tmp_path)
    snapshots = SnapshotStore(store, registry.snapshot_directory, notifier=notifier)
    return RunOrchestrator(
        registry,
        snapshots,
        listener=listener,
        notifier=notifier,
        report_store=store,
        report_filename=report_filename,
    )


def _two_test_batch(context) -> None:
    def group() -> None:
        context.it("first", lambda: None)
        context.it.skip("second", lambda: None)

    context.describe("group", group)


@pytest.mark.asyncio
async def test_every_runnable_is_owned_by_its_batch(tmp_path: Path) -> None:
    registry = BatchRegistry()
    registry.register("pkg.a", _two_test_batch)
    registry.register("pkg.b", _two_test_batch)
    orchestrator = _orchestrator(tmp_path, registry)

    runner = await orchestrator.run_selected(["pkg.a", "pkg.b"])
    await runner.wait()

    root = orchestrator.root_suite
    assert root is not None
    batch_roots = [suite.title for suite in root.suites]
    assert batch_roots == ["pkg.a_root", "pkg.b_root"]
    assert len(orchestrator.ownership.batch_roots()) == 2
    for batch_root, key in zip(root.suites, ["pkg.a", "pkg.b"]):
        for runnable in batch_root.walk():
            assert isinstance(runnable, (Suite, Test))
            assert orchestrator.ownership.batch_of(runnable) == key


@pytest.mark.asyncio
async def test_asynchronous_registration_is_awaited_in_order(tmp_path: Path) -> None:
    registry = BatchRegistry()
    order: list[str] = []

    async def slow(context) -> None:
        await asyncio.sleep(0.01)
        order.append("slow")
        context.it("slow test", lambda: None)

    def fast(context) -> None:
        order.append("fast")
        context.it("fast test", lambda: None)

    registry.register("pkg.slow", slow)
    registry.register("pkg.fast", fast)
    orchestrator = _orchestrator(tmp_path, registry)

    stats = await (await orchestrator.run_selected(["pkg.slow", "pkg.fast"])).wait()

    assert order == ["slow", "fast"]
    assert stats.passes == 2


@pytest.mark.asyncio
async def test_failing_registration_becomes_a_batch_failure(tmp_path: Path) -> None:
    registry = BatchRegistry()

    def broken(context) -> None:
        raise RuntimeError("cannot declare")

    registry.register("pkg.broken", broken)
    registry.register("pkg.ok", _two_test_batch)
    notifier = _RecordingNotifier()
    listener = _BatchFailListener()
    orchestrator = _orchestrator(tmp_path, registry, notifier=notifier, listener=listener)

    stats = await (await orchestrator.run_selected(["pkg.broken", "pkg.ok"])).wait()

    assert listener.batch_failures == [("pkg.broken", "cannot declare")]
    assert stats.passes == 1
    assert stats.failures == 1
    assert ("error", "Registration of batch 'pkg.broken' failed: cannot declare") in (
        notifier.messages
    )


@pytest.mark.asyncio
async def test_unknown_batch_keys_are_skipped_with_warning(tmp_path: Path) -> None:
    registry = BatchRegistry()
    registry.register("pkg.a", _two_test_batch)
    notifier = _RecordingNotifier()
    orchestrator = _orchestrator(tmp_path, registry, notifier=notifier)

    stats = await (await orchestrator.run_selected(["pkg.a", "pkg.missing"])).wait()

    assert stats.passes == 1
    assert ("warn", "Batch 'pkg.missing' is not registered and was skipped.") in notifier.messages


@pytest.mark.asyncio
async def test_run_all_honours_pre_selection(tmp_path: Path) -> None:
    registry = BatchRegistry()
    registry.register("pkg.a", _two_test_batch)
    registry.register("pkg.b", _two_test_batch, pre_selected=False)
    orchestrator = _orchestrator(tmp_path, registry)

    await (await orchestrator.run_all(pre_selected_only=True)).wait()

    assert [suite.title for suite in orchestrator.root_suite.suites] == ["pkg.a_root"]


@pytest.mark.asyncio
async def test_starting_a_new_run_discards_the_active_one(tmp_path: Path) -> None:
    registry = BatchRegistry()
    started = asyncio.Event()
    gate = asyncio.Event()

    async def blocking(context) -> None:
        async def waits() -> None:
            started.set()
            await gate.wait()

        context.it("waits", waits)
        context.it("never reached", lambda: None)

    registry.register("pkg.blocking", blocking)
    registry.register("pkg.a", _two_test_batch)
    listener = _EventListener()
    orchestrator = _orchestrator(tmp_path, registry, listener=listener)

    first = await orchestrator.run_selected(["pkg.blocking"])
    await started.wait()
    second = await orchestrator.run_selected(["pkg.a"])
    gate.set()
    first_stats = await first.wait()
    await second.wait()

    assert first.aborted is True
    assert first_stats.passes == 1
    assert orchestrator.current_runner is None
    assert [suite.title for suite in orchestrator.root_suite.suites] == ["pkg.a_root"]
    assert listener.events == [
        "clear",
        "clear",
        "test_end:first",
        "test_end:second",
        "run_end",
    ]
    report = json.loads(orchestrator.reports["json"])
    assert [test["title"] for test in report["tests"]] == ["first", "second"]


@pytest.mark.asyncio
async def test_discarded_update_run_leaves_the_new_run_state_alone(tmp_path: Path) -> None:
    registry = BatchRegistry()
    started = asyncio.Event()
    release_first = asyncio.Event()
    release_second = asyncio.Event()

    def updating(context) -> None:
        async def waits() -> None:
            started.set()
            await release_first.wait()
            context.assertions.match_snapshot("late value")

        context.it("waits", waits)

    def checking(context) -> None:
        async def holds() -> None:
            await release_second.wait()

        context.it("holds", holds)
        context.it("matches", lambda: context.assertions.match_snapshot({"foo": "bar"}))

    registry.register("pkg.a", updating)
    registry.register("pkg.b", checking)
    listener = _EventListener()
    orchestrator = _orchestrator(tmp_path, registry, listener=listener)

    first = await orchestrator.run_selected(["pkg.a"], update_snapshots=True)
    await started.wait()
    second = await orchestrator.run_selected(["pkg.b"], update_snapshots=False)
    orchestrator.snapshots.enable_updates = True
    release_first.set()
    first_stats = await first.wait()
    await orchestrator.wait_for_background_tasks()

    assert first_stats.failures == 1
    assert orchestrator.snapshots.enable_updates is True
    assert "json" not in orchestrator.reports
    assert orchestrator.current_runner is second

    release_second.set()
    second_stats = await second.wait()
    await orchestrator.wait_for_background_tasks()

    assert second_stats.failures == 1
    assert [update.batch_key for update in orchestrator.snapshots.pending_updates] == ["pkg.b"]
    assert not (tmp_path / "__snapshots__").exists()
    assert listener.events == ["clear", "clear", "test_end:holds", "test_fail:matches", "run_end"]


@pytest.mark.asyncio
async def test_snapshot_location_requires_an_active_run(tmp_path: Path) -> None:
    orchestrator = _orchestrator(tmp_path, BatchRegistry())

    with pytest.raises(NoActiveRunError):
        orchestrator.current_snapshot_location()


@pytest.mark.asyncio
async def test_json_report_is_kept_and_uploaded(tmp_path: Path) -> None:
    registry = BatchRegistry()
    registry.register("pkg.a", _two_test_batch)
    orchestrator = _orchestrator(tmp_path, registry, report_filename="reports/run.json")

    await (await orchestrator.run_selected(["pkg.a"])).wait()
    await orchestrator.wait_for_background_tasks()

    report = json.loads(orchestrator.reports["json"])
    assert report["stats"]["passes"] == 1
    assert [test["title"] for test in report["tests"]] == ["first", "second"]
    assert [test["title"] for test in report["pending"]] == ["second"]
    assert report["tests"][0]["batch"] == "pkg.a"
    uploaded = json.loads((tmp_path / "reports" / "run.json").read_text(encoding="utf-8"))
    assert uploaded == report


@pytest.mark.asyncio
async def test_failed_run_keeps_queue_until_explicit_flush(tmp_path: Path) -> None:
    registry = BatchRegistry()

    def snapshot_batch(context) -> None:
        context.it("value", lambda: context.assertions.match_snapshot([1, 2]))

    registry.register("pkg.snap", snapshot_batch)
    orchestrator = _orchestrator(tmp_path, registry)

    stats = await (await orchestrator.run_selected(["pkg.snap"])).wait()
    report = await orchestrator.flush_snapshots()

    assert stats.failures == 1
    assert [entry.status for entry in report] == ["success"]
    assert list((tmp_path / "__snapshots__" / "pkg" / "pkg.snap").iterdir())


class _SuiteListener(NullRunListener):
    def __init__(self) -> None:
        self.suites = []

    def handle_suite_begin(self, suite) -> None:
        self.suites.append(suite)


@pytest.mark.asyncio
async def test_only_batch_wrapper_suites_are_reported_as_batch_roots(tmp_path: Path) -> None:
    registry = BatchRegistry()
    registry.register("pkg.a", _two_test_batch)
    registry.register("pkg.b", _two_test_batch)
    listener = _SuiteListener()
    orchestrator = _orchestrator(tmp_path, registry, listener=listener)

    await (await orchestrator.run_selected(["pkg.a", "pkg.b"])).wait()

    root_event = listener.suites[0]
    assert root_event.parent_id is None
    assert root_event.is_batch_root is False
    batch_roots = [suite.title for suite in listener.suites if suite.is_batch_root]
    assert batch_roots == ["pkg.a_root", "pkg.b_root"]
