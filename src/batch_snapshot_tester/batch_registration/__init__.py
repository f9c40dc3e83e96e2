"""Batch registration exports."""

from .batch_discovery import BatchDiscoveryError, discover_batches
from .batch_models import (
    BatchRecord,
    RegistrationFunction,
    default_snapshot_base_directory,
    get_batch_name_parts,
)
from .batch_registry import BatchRegistry

__all__ = [
    "BatchDiscoveryError",
    "BatchRecord",
    "BatchRegistry",
    "RegistrationFunction",
    "default_snapshot_base_directory",
    "discover_batches",
    "get_batch_name_parts",
]
