"""Remote hierarchical file store contract."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class StorageError(Exception):
    """Raised when a remote store operation fails."""


class DirectoryNotFoundError(StorageError):
    """Raised when browsing a directory that does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Directory {path} does not exist or is not accessible.")
        self.path = path


class DirectoryExistsError(StorageError):
    """Raised when creating a directory that already exists."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Directory {path} already exists.")
        self.path = path


@dataclass(frozen=True)
class BrowseResult:
    """Entries found directly inside one directory."""

    files: tuple[str, ...]
    directories: tuple[str, ...] = ()


@dataclass(frozen=True)
class FetchedFile:
    """Response of a file fetch."""

    status: int
    text: str = ""

    @property
    def ok(self) -> bool:
        return self.status == 200


@dataclass(frozen=True)
class UploadResult:
    """Response of a file upload."""

    status: str

    @property
    def ok(self) -> bool:
        return self.status == "success"


class RemoteStore(Protocol):
    """Protocol implemented by local and remote file stores."""

    async def browse(self, path: str) -> BrowseResult: ...

    async def fetch(self, file_path: str) -> FetchedFile: ...

    async def create_directory(self, path: str) -> None: ...

    async def upload(self, directory: str, filename: str, content: str) -> UploadResult: ...


def join_store_path(*parts: str) -> str:
    """Join path segments with `/`, ignoring empty segments."""
    segments = [segment.strip("/") for segment in parts if segment and segment.strip("/")]
    return "/".join(segments)


def saved_message(filename: str, directory: str) -> str:
    return f"{filename} saved to {directory}"
