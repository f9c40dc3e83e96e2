"""Snapshot domain exports."""

from .directory_provisioning import (
    DirectoryNode,
    build_directory_tree,
    ensure_directory,
    ensure_tree,
)
from .serializer import serialize
from .snapshot_assertions import AssertionContext, SnapshotLocation
from .snapshot_errors import ComparisonFailure, MissingSnapshotError, SnapshotMismatchError
from .snapshot_store import SnapshotStore, SnapshotUpdate, UploadReportEntry
from .title_hashing import SNAPSHOT_SUFFIX, hash_title, slugify_title, snapshot_filename

__all__ = [
    "AssertionContext",
    "ComparisonFailure",
    "DirectoryNode",
    "MissingSnapshotError",
    "SNAPSHOT_SUFFIX",
    "SnapshotLocation",
    "SnapshotMismatchError",
    "SnapshotStore",
    "SnapshotUpdate",
    "UploadReportEntry",
    "build_directory_tree",
    "ensure_directory",
    "ensure_tree",
    "hash_title",
    "serialize",
    "slugify_title",
    "snapshot_filename",
]
