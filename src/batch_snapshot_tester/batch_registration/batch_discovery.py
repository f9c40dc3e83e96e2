"""Discovery of batch modules declared in the configuration."""

from __future__ import annotations

import importlib
from collections.abc import Sequence

from .batch_registry import BatchRegistry

REGISTRATION_HOOK = "register_batches"


class BatchDiscoveryError(Exception):
    """Raised when a configured batch module cannot be loaded."""


def discover_batches(registry: BatchRegistry, module_names: Sequence[str]) -> list[str]:
    """Import each module and let its `register_batches(registry)` hook register batches.

    Returns the keys registered by the discovered modules, in discovery order.
    """
    before = set(registry.list_keys())
    for module_name in module_names:
        try:
            module = importlib.import_module(module_name)
        except ImportError as exc:
            raise BatchDiscoveryError(f"Cannot import batch module '{module_name}': {exc}") from exc
        hook = getattr(module, REGISTRATION_HOOK, None)
        if not callable(hook):
            raise BatchDiscoveryError(
                f"Batch module '{module_name}' does not define {REGISTRATION_HOOK}(registry)."
            )
        hook(registry)
    return [key for key in registry.list_keys() if key not in before]
