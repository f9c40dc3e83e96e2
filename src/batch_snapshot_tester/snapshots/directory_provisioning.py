"""Idempotent creation of directory trees on a remote store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from batch_snapshot_tester.remote_storage import (
    DirectoryExistsError,
    RemoteStore,
    StorageError,
    join_store_path,
)

LOGGER = logging.getLogger(__name__)


@dataclass
class DirectoryNode:
    """One path segment and the directories nested below it."""

    name: str
    children: list[DirectoryNode] = field(default_factory=list)

    def child(self, name: str) -> DirectoryNode:
        for existing in self.children:
            if existing.name == name:
                return existing
        node = DirectoryNode(name)
        self.children.append(node)
        return node


def build_directory_tree(paths: Iterable[str]) -> list[DirectoryNode]:
    """Merge `/`-separated paths into a list of top-level directory nodes."""
    root = DirectoryNode("")
    for path in paths:
        current = root
        for segment in join_store_path(path).split("/"):
            if segment:
                current = current.child(segment)
    return root.children


async def ensure_directory(store: RemoteStore, path: str, *, recursive: bool = True) -> bool:
    """Make sure `path` exists on the store.

    With `recursive`, every prefix of the path is created in order. A directory
    that already exists counts as success. The first storage failure stops the
    walk and the function returns False; the remaining segments are not tried.
    """
    normalized = join_store_path(path)
    if not recursive:
        return await _create_single(store, normalized)
    segments = normalized.split("/") if normalized else []
    for index in range(len(segments)):
        if not await _create_single(store, "/".join(segments[: index + 1])):
            return False
    return True


async def ensure_tree(
    store: RemoteStore, nodes: Sequence[DirectoryNode], *, parent: str = ""
) -> list[str]:
    """Create a directory tree breadth first and return the paths that could not be created.

    All directories of one depth are created concurrently. A node's children are
    only requested once that node's own creation has resolved successfully;
    children of a failed directory are skipped and reported.
    """
    paths = [join_store_path(parent, node.name) for node in nodes]
    results = await asyncio.gather(
        *(ensure_directory(store, path, recursive=False) for path in paths)
    )

    failed: list[str] = []
    descend: list[tuple[DirectoryNode, str]] = []
    for node, path, created in zip(nodes, paths, results):
        if created:
            if node.children:
                descend.append((node, path))
            continue
        skipped = _descendant_paths(node, path)
        if skipped:
            LOGGER.warning(
                "Skipping %d directories below %s because it could not be created",
                len(skipped),
                path,
            )
        failed.append(path)
        failed.extend(skipped)

    nested = await asyncio.gather(
        *(ensure_tree(store, node.children, parent=path) for node, path in descend)
    )
    for nested_failures in nested:
        failed.extend(nested_failures)
    return failed


async def _create_single(store: RemoteStore, path: str) -> bool:
    try:
        await store.create_directory(path)
    except DirectoryExistsError:
        return True
    except StorageError as exc:
        LOGGER.warning("Could not create directory %s: %s", path, exc)
        return False
    LOGGER.debug("Created directory %s", path)
    return True


def _descendant_paths(node: DirectoryNode, path: str) -> list[str]:
    collected: list[str] = []
    for child in node.children:
        child_path = join_store_path(path, child.name)
        collected.append(child_path)
        collected.extend(_descendant_paths(child, child_path))
    return collected
