"""Remote storage exports."""

from .http_file_store import HttpFileStore
from .local_directory_store import LocalDirectoryStore
from .store_protocol import (
    BrowseResult,
    DirectoryExistsError,
    DirectoryNotFoundError,
    FetchedFile,
    RemoteStore,
    StorageError,
    UploadResult,
    join_store_path,
)

__all__ = [
    "BrowseResult",
    "DirectoryExistsError",
    "DirectoryNotFoundError",
    "FetchedFile",
    "HttpFileStore",
    "LocalDirectoryStore",
    "RemoteStore",
    "StorageError",
    "UploadResult",
    "join_store_path",
]
