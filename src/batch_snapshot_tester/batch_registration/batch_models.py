"""Batch registration entities."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from batch_snapshot_tester.run_execution.batch_context import BatchContext

RegistrationFunction = Callable[["BatchContext"], "Awaitable[None] | None"]

DEFAULT_SNAPSHOT_ROOT = "__snapshots__"


def get_batch_name_parts(batch_key: str) -> tuple[str, str]:
    """Split a batch key into its owner namespace and batch identifier."""
    owner, separator, identifier = batch_key.partition(".")
    if not separator:
        return "", batch_key
    return owner, identifier


def default_snapshot_base_directory(batch_key: str) -> str:
    owner, _ = get_batch_name_parts(batch_key)
    return f"{DEFAULT_SNAPSHOT_ROOT}/{owner}" if owner else DEFAULT_SNAPSHOT_ROOT


@dataclass(frozen=True)
class BatchRecord:
    """A registered batch and the closure that declares its suites and tests."""

    key: str
    registration_fn: RegistrationFunction
    display_name: str
    snapshot_base_directory: str
    pre_selected: bool = True

    @property
    def owner(self) -> str:
        return get_batch_name_parts(self.key)[0]

    @property
    def snapshot_directory(self) -> str:
        return f"{self.snapshot_base_directory.rstrip('/')}/{self.key}"
