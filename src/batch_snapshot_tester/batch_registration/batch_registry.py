"""Registry of deferred test batches."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from batch_snapshot_tester.notifications import LoggingNotifier, Notifier

from .batch_models import (
    BatchRecord,
    RegistrationFunction,
    default_snapshot_base_directory,
    get_batch_name_parts,
)

LOGGER = logging.getLogger(__name__)


class ResultsView(Protocol):  # pylint: disable=too-few-public-methods
    """Subset of the results view the registry resets after each registration."""

    def clear(self) -> None: ...


class BatchRegistry:
    """Maps batch keys to registration closures without executing them."""

    def __init__(
        self,
        *,
        known_owners: Iterable[str] | None = None,
        notifier: Notifier | None = None,
        results_view: ResultsView | None = None,
    ) -> None:
        self._records: dict[str, BatchRecord] = {}
        self._known_owners = frozenset(known_owners) if known_owners else None
        self._notifier = notifier or LoggingNotifier()
        self.results_view = results_view

    def __contains__(self, batch_key: object) -> bool:
        return batch_key in self._records

    def __len__(self) -> int:
        return len(self._records)

    def register(
        self,
        key: str,
        fn: RegistrationFunction,
        *,
        display_name: str | None = None,
        snapshot_base_directory: str | None = None,
        pre_selected: bool = True,
    ) -> BatchRecord:
        """Store `fn` under `key`, replacing any batch registered with the same key."""
        owner, _ = get_batch_name_parts(key)
        if self._known_owners is not None and owner not in self._known_owners:
            self._notifier.warn(
                f"Batch '{key}' uses owner namespace '{owner}', "
                "which does not match any installed package."
            )
        if key in self._records:
            self._notifier.warn(f"Batch '{key}' is already registered and will be replaced.")
        record = BatchRecord(
            key=key,
            registration_fn=fn,
            display_name=display_name or key,
            snapshot_base_directory=snapshot_base_directory
            or default_snapshot_base_directory(key),
            pre_selected=pre_selected,
        )
        self._records[key] = record
        LOGGER.debug("Registered batch %s", key)
        if self.results_view is not None:
            self.results_view.clear()
        return record

    def get(self, key: str) -> BatchRecord | None:
        return self._records.get(key)

    def list_keys(self, *, pre_selected_only: bool = False) -> list[str]:
        return [
            key
            for key, record in self._records.items()
            if record.pre_selected or not pre_selected_only
        ]

    def records(self) -> list[BatchRecord]:
        return list(self._records.values())

    def snapshot_directory(self, key: str) -> str:
        """Return the directory holding the snapshots of one batch."""
        record = self._records.get(key)
        if record is not None:
            return record.snapshot_directory
        return f"{default_snapshot_base_directory(key)}/{key}"
