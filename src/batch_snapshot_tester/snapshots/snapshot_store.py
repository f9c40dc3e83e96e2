"""Snapshot cache with deferred, batched persistence."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass

from batch_snapshot_tester.notifications import LoggingNotifier, Notifier, suppress_info
from batch_snapshot_tester.remote_storage import (
    DirectoryNotFoundError,
    RemoteStore,
    StorageError,
)

from .directory_provisioning import build_directory_tree, ensure_tree
from .snapshot_errors import MissingSnapshotError
from .title_hashing import SNAPSHOT_SUFFIX, hash_title

LOGGER = logging.getLogger(__name__)

UPLOAD_SUCCESS = "success"
UPLOAD_SKIPPED = "skipped"


@dataclass(frozen=True)
class SnapshotUpdate:
    """A serialized value waiting to be written for one test."""

    batch_key: str
    full_title: str
    hash: str
    data: str


@dataclass(frozen=True)
class UploadReportEntry:
    """Outcome of writing one snapshot file."""

    batch: str
    file: str
    status: str

    @property
    def ok(self) -> bool:
        return self.status == UPLOAD_SUCCESS


class SnapshotStore:
    """Cache of the snapshots belonging to the most recent run.

    `load_batches` replaces the cache and clears the update queue, `read` is the
    synchronous lookup used by assertions, `queue_update` records candidate
    values and `flush` writes queued values to the remote store.
    """

    def __init__(
        self,
        store: RemoteStore,
        directory_for: Callable[[str], str],
        *,
        notifier: Notifier | None = None,
    ) -> None:
        self._store = store
        self._directory_for = directory_for
        self._notifier = notifier or LoggingNotifier()
        self._cache: dict[str, dict[str, str]] = {}
        self._queue: list[SnapshotUpdate] = []
        self._queue_lock = asyncio.Lock()
        # Session flag for the next run; None means "not set".
        self.enable_updates: bool | None = None

    @property
    def cache(self) -> Mapping[str, Mapping[str, str]]:
        return self._cache

    @property
    def pending_updates(self) -> tuple[SnapshotUpdate, ...]:
        return tuple(self._queue)

    def snapshot_directory(self, batch_key: str) -> str:
        return self._directory_for(batch_key)

    async def load_batches(self, batch_keys: Iterable[str]) -> Mapping[str, Mapping[str, str]]:
        """Reset cache and queue, then fetch every stored snapshot of the given batches."""
        async with self._queue_lock:
            self._cache = {}
            self._queue.clear()
            await asyncio.gather(*(self._load_batch(batch_key) for batch_key in batch_keys))
        return self._cache

    def read(self, batch_key: str, full_title: str) -> str:
        snapshot_hash = hash_title(full_title)
        batch_cache = self._cache.get(batch_key, {})
        if snapshot_hash not in batch_cache:
            raise MissingSnapshotError(
                batch_key=batch_key,
                snapshot_hash=snapshot_hash,
                directory=self.snapshot_directory(batch_key),
            )
        return batch_cache[snapshot_hash]

    def queue_update(self, batch_key: str, full_title: str, data: str) -> None:
        self._queue.append(
            SnapshotUpdate(
                batch_key=batch_key,
                full_title=full_title,
                hash=hash_title(full_title),
                data=data,
            )
        )

    async def flush(self) -> list[UploadReportEntry]:
        """Write all queued snapshot updates and return one report entry per file.

        Later updates for the same snapshot replace earlier ones. Entries that
        were written are removed from the queue; failed entries stay queued so
        the flush can be retried. Flushes never overlap each other or a reload.
        """
        async with self._queue_lock:
            return await self._flush_queued()

    async def _flush_queued(self) -> list[UploadReportEntry]:
        queued = list(self._queue)
        if not queued:
            LOGGER.info("No snapshot updates queued")
            return []
        updates = _latest_updates(queued)

        directories = sorted({self.snapshot_directory(update.batch_key) for update in updates})
        failed_directories = set(await ensure_tree(self._store, build_directory_tree(directories)))

        with suppress_info(self._notifier, _is_upload_message):
            report = list(
                await asyncio.gather(
                    *(self._upload(update, failed_directories) for update in updates)
                )
            )

        written = {
            (update.batch_key, update.hash)
            for update, entry in zip(updates, report)
            if entry.ok
        }
        for update in updates:
            if (update.batch_key, update.hash) in written:
                self._cache.setdefault(update.batch_key, {})[update.hash] = update.data
        flushed = self._queue[: len(queued)]
        self._queue[: len(queued)] = [
            entry for entry in flushed if (entry.batch_key, entry.hash) not in written
        ]

        self._log_report(report)
        self._notify_summary(report)
        return report

    async def _load_batch(self, batch_key: str) -> None:
        directory = self.snapshot_directory(batch_key)
        try:
            listing = await self._store.browse(directory)
        except DirectoryNotFoundError:
            LOGGER.debug("No snapshots stored for %s in %s", batch_key, directory)
            return
        files = [path for path in listing.files if path.endswith(SNAPSHOT_SUFFIX)]
        responses = await asyncio.gather(*(self._store.fetch(path) for path in files))
        for path, response in zip(files, responses):
            if not response.ok:
                LOGGER.warning("Failed to fetch snapshot %s: HTTP %s", path, response.status)
                continue
            snapshot_hash = path.rsplit("/", 1)[-1][: -len(SNAPSHOT_SUFFIX)]
            self._cache.setdefault(batch_key, {})[snapshot_hash] = response.text

    async def _upload(
        self, update: SnapshotUpdate, failed_directories: set[str]
    ) -> UploadReportEntry:
        directory = self.snapshot_directory(update.batch_key)
        filename = f"{update.hash}{SNAPSHOT_SUFFIX}"
        if directory in failed_directories:
            return UploadReportEntry(batch=update.batch_key, file=filename, status=UPLOAD_SKIPPED)
        try:
            result = await self._store.upload(directory, filename, update.data)
        except StorageError as exc:
            LOGGER.error("Failed to upload snapshot %s/%s: %s", directory, filename, exc)
            return UploadReportEntry(batch=update.batch_key, file=filename, status=f"error: {exc}")
        return UploadReportEntry(batch=update.batch_key, file=filename, status=result.status)

    def _log_report(self, report: Sequence[UploadReportEntry]) -> None:
        by_batch: dict[str, list[UploadReportEntry]] = {}
        for entry in report:
            by_batch.setdefault(entry.batch, []).append(entry)
        LOGGER.info(
            "Uploaded snapshots (%d batches, %d files)",
            len(by_batch),
            sum(1 for entry in report if entry.ok),
        )
        for batch, entries in by_batch.items():
            LOGGER.info("Batch: %s, directory: %s", batch, self.snapshot_directory(batch))
            for entry in entries:
                LOGGER.info("  %s  %s", entry.file, entry.status)

    def _notify_summary(self, report: Sequence[UploadReportEntry]) -> None:
        batches = len({entry.batch for entry in report})
        written = sum(1 for entry in report if entry.ok)
        failed = len(report) - written
        if failed:
            self._notifier.warn(
                f"Uploaded {written} snapshot files for {batches} batches; "
                f"{failed} files could not be written and remain queued."
            )
            return
        self._notifier.info(f"Uploaded {written} snapshot files for {batches} batches.")


def _latest_updates(queued: Sequence[SnapshotUpdate]) -> list[SnapshotUpdate]:
    latest: dict[tuple[str, str], SnapshotUpdate] = {}
    for update in queued:
        latest.pop((update.batch_key, update.hash), None)
        latest[(update.batch_key, update.hash)] = update
    return list(latest.values())


def _is_upload_message(message: str) -> bool:
    return f"{SNAPSHOT_SUFFIX} saved to" in message
