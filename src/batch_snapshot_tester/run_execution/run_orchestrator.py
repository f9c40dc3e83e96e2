"""Materializes selected batches and drives one run at a time."""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from collections.abc import Coroutine, Iterable
from typing import Any

from batch_snapshot_tester.batch_registration import BatchRegistry
from batch_snapshot_tester.execution_engine import (
    Runner,
    RunnerEvent,
    RunStats,
    Suite,
    SuiteRegistrar,
)
from batch_snapshot_tester.execution_engine.runnables import DEFAULT_TIMEOUT_MS
from batch_snapshot_tester.notifications import LoggingNotifier, Notifier
from batch_snapshot_tester.remote_storage import RemoteStore, StorageError
from batch_snapshot_tester.snapshots import (
    AssertionContext,
    SnapshotLocation,
    SnapshotStore,
    UploadReportEntry,
    ensure_directory,
    slugify_title,
)

from .batch_context import build_batch_context
from .batch_reporter import BatchReporter
from .run_listener import NullRunListener, RunListener
from .runnable_ownership import RunnableOwnership

LOGGER = logging.getLogger(__name__)


class NoActiveRunError(RuntimeError):
    """Raised when run introspection is used while no run is active."""


class RunOrchestrator:  # pylint: disable=too-many-instance-attributes
    """Owns the single active run.

    `run_selected` builds a fresh root suite, preloads snapshots, registers the
    selected batches one after another and starts the runner. The runner is
    available as `current_runner` until it signals completion. Snapshot flushes
    and report uploads triggered at run end are scheduled in the background and
    can be awaited with `wait_for_background_tasks`.
    """

    def __init__(
        self,
        registry: BatchRegistry,
        snapshots: SnapshotStore,
        *,
        listener: RunListener | None = None,
        notifier: Notifier | None = None,
        report_store: RemoteStore | None = None,
        report_filename: str | None = None,
        log_test_details: bool = True,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        self._registry = registry
        self._snapshots = snapshots
        self._listener = listener or NullRunListener()
        self._notifier = notifier or LoggingNotifier()
        self._report_store = report_store
        self._report_filename = report_filename
        self._log_test_details = log_test_details
        self._timeout_ms = timeout_ms
        self._ownership = RunnableOwnership()
        self._root: Suite | None = None
        self._current_runner: Runner | None = None
        self._current_reporter: BatchReporter | None = None
        self._background: set[asyncio.Task[Any]] = set()
        self.reports: dict[str, str] = {}

    @property
    def current_runner(self) -> Runner | None:
        return self._current_runner

    @property
    def root_suite(self) -> Suite | None:
        return self._root

    @property
    def ownership(self) -> RunnableOwnership:
        return self._ownership

    @property
    def snapshots(self) -> SnapshotStore:
        return self._snapshots

    async def run_all(
        self, *, pre_selected_only: bool = False, update_snapshots: bool | None = None
    ) -> Runner:
        keys = self._registry.list_keys(pre_selected_only=pre_selected_only)
        return await self.run_selected(keys, update_snapshots=update_snapshots)

    async def run_selected(
        self, batch_keys: Iterable[str], *, update_snapshots: bool | None = None
    ) -> Runner:
        """Register the given batches and start running them.

        Returns as soon as the run has started; await `runner.wait()` for the
        stats. `update_snapshots` overrides the store's session flag for this run.
        """
        keys = list(dict.fromkeys(batch_keys))
        self._discard_previous_run()
        root = Suite.create_root(timeout_ms=self._timeout_ms)
        self._root = root
        self._ownership = RunnableOwnership()
        self._listener.clear()
        registrar = SuiteRegistrar(root)

        await self._snapshots.load_batches(keys)
        if update_snapshots is None:
            update_snapshots = bool(self._snapshots.enable_updates)
        assertions = AssertionContext(
            self._snapshots,
            functools.partial(self._snapshot_location_in, root),
            update_mode=update_snapshots,
        )

        for key in keys:
            await self._register_batch(registrar, key, assertions)

        runner = Runner(root)
        reporter = BatchReporter(
            runner,
            self._listener,
            ownership=self._ownership,
            registry=self._registry,
            log_test_details=self._log_test_details,
        )
        update_mode = update_snapshots
        runner.once(
            RunnerEvent.RUN_END,
            lambda stats: self._on_run_end(runner, reporter, stats, update_mode=update_mode),
        )
        self._current_runner = runner
        self._current_reporter = reporter
        LOGGER.info("Starting run of %d batches", len(keys))
        return runner.start()

    def abort(self) -> None:
        """Stop the active run after its current test. Does nothing without an active run."""
        if self._current_runner is not None:
            self._current_runner.abort()

    def current_snapshot_location(self) -> SnapshotLocation:
        """Resolve the batch and snapshot title of the runnable that is executing now."""
        runner = self._current_runner
        runnable = runner.current_runnable if runner else None
        if runnable is None:
            raise NoActiveRunError("No active run found for snapshot assertion.")
        batch_key = self._ownership.batch_of(runnable)
        if batch_key is None:
            raise NoActiveRunError(f"'{runnable.title}' does not belong to a registered batch.")
        # The first title segment is the batch root suite.
        title_parts = runnable.title_path()[1:]
        return SnapshotLocation(batch_key=batch_key, full_title=slugify_title(title_parts))

    def _snapshot_location_in(self, root: Suite) -> SnapshotLocation:
        # Tests of a discarded run must not read or queue the live run's snapshots.
        if self._root is not root:
            raise NoActiveRunError("This run was discarded by a newer run.")
        return self.current_snapshot_location()

    async def wait_for_background_tasks(self) -> list[Any]:
        """Wait for scheduled flushes and report uploads; failures are returned, not raised."""
        if not self._background:
            return []
        return await asyncio.gather(*list(self._background), return_exceptions=True)

    async def flush_snapshots(self) -> list[UploadReportEntry]:
        """Write snapshot updates queued by the latest run, e.g. after a failed run."""
        return await self._snapshots.flush()

    def _discard_previous_run(self) -> None:
        previous = self._current_runner
        if previous is None:
            return
        LOGGER.warning("Discarding the active run before starting a new one")
        previous.abort()
        if self._current_reporter is not None:
            self._current_reporter.detach()
        self._current_runner = None
        self._current_reporter = None

    async def _register_batch(
        self, registrar: SuiteRegistrar, key: str, assertions: AssertionContext
    ) -> None:
        record = self._registry.get(key)
        if record is None:
            self._notifier.warn(f"Batch '{key}' is not registered and was skipped.")
            return
        context = build_batch_context(registrar, self._ownership, key, assertions)
        with registrar.open_suite(f"{key}_root") as batch_root:
            self._ownership.tag(batch_root, key, batch_root=True)
            try:
                result = record.registration_fn(context)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:  # pylint: disable=broad-exception-caught
                LOGGER.exception("Registration of batch %s failed", key)
                self._notifier.error(f"Registration of batch '{key}' failed: {exc}")
                batch_root.add_hook("before", _raise_registration_error(exc))
        self._ownership.claim_subtree(batch_root, key)

    def _on_run_end(
        self, runner: Runner, reporter: BatchReporter, stats: RunStats, *, update_mode: bool
    ) -> None:
        if self._current_runner is not runner:
            LOGGER.info("Discarded run finished; its results are ignored")
            return
        self._current_runner = None
        self._current_reporter = None
        LOGGER.info("Run finished with %d failures", stats.failures)
        if reporter.json_report is not None:
            self.reports["json"] = reporter.json_report
            if self._report_filename and self._report_store is not None:
                self._schedule(self._upload_report(reporter.json_report))
        if update_mode:
            self._schedule(self._snapshots.flush())
        self._snapshots.enable_updates = None

    def _schedule(self, coroutine: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.get_running_loop().create_task(coroutine)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            LOGGER.error("Background task failed", exc_info=error)
            self._notifier.error(f"Saving run results failed: {error}")

    async def _upload_report(self, report: str) -> None:
        if self._report_store is None or not self._report_filename:
            return
        directory, _, filename = self._report_filename.rpartition("/")
        if directory and not await ensure_directory(self._report_store, directory):
            raise StorageError(f"Could not create report directory {directory}")
        await self._report_store.upload(directory, filename, report)


def _raise_registration_error(error: Exception):
    def before_all() -> None:
        raise error

    return before_all
