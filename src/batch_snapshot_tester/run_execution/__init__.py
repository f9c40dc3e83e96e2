"""Run execution domain exports."""

from .batch_context import BatchContext, BatchUtils, build_batch_context
from .batch_reporter import BatchReporter
from .batch_run_use_case import (
    RunExecutionError,
    build_registry,
    build_store,
    execute_batch_run,
)
from .run_contracts import RunArtifacts, RunOutcome, RunRequest
from .run_listener import NullRunListener, RunListener, RunnableEvent
from .run_orchestrator import NoActiveRunError, RunOrchestrator
from .runnable_ownership import OwnershipTag, RunnableOwnership

__all__ = [
    "BatchContext",
    "BatchReporter",
    "BatchUtils",
    "NoActiveRunError",
    "NullRunListener",
    "OwnershipTag",
    "RunArtifacts",
    "RunExecutionError",
    "RunListener",
    "RunOrchestrator",
    "RunOutcome",
    "RunRequest",
    "RunnableEvent",
    "RunnableOwnership",
    "build_batch_context",
    "build_registry",
    "build_store",
    "execute_batch_run",
]
