"""Filesystem-backed implementation of the remote store contract."""

from __future__ import annotations

import asyncio
from pathlib import Path

from batch_snapshot_tester.notifications import Notifier

from .store_protocol import (
    BrowseResult,
    DirectoryExistsError,
    DirectoryNotFoundError,
    FetchedFile,
    StorageError,
    UploadResult,
    join_store_path,
    saved_message,
)


class LocalDirectoryStore:
    """Store files below a local root directory.

    Paths handed to and returned from the store are relative to the root and use
    `/` as separator. Like a remote file service, `create_directory` does not
    create missing parents.
    """

    def __init__(self, root: Path | str, *, notifier: Notifier | None = None) -> None:
        self._root = Path(root)
        self._notifier = notifier

    @property
    def root(self) -> Path:
        return self._root

    async def browse(self, path: str) -> BrowseResult:
        return await asyncio.to_thread(self._browse, path)

    async def fetch(self, file_path: str) -> FetchedFile:
        return await asyncio.to_thread(self._fetch, file_path)

    async def create_directory(self, path: str) -> None:
        await asyncio.to_thread(self._create_directory, path)

    async def upload(self, directory: str, filename: str, content: str) -> UploadResult:
        result = await asyncio.to_thread(self._upload, directory, filename, content)
        if self._notifier is not None:
            self._notifier.info(saved_message(filename, directory))
        return result

    def _resolve(self, path: str) -> Path:
        relative = join_store_path(path)
        candidate = (self._root / relative).resolve()
        root = self._root.resolve()
        if candidate != root and root not in candidate.parents:
            raise StorageError(f"Path escapes the store root: {path}")
        return candidate

    def _browse(self, path: str) -> BrowseResult:
        directory = self._resolve(path)
        if not directory.is_dir():
            raise DirectoryNotFoundError(path)
        files: list[str] = []
        directories: list[str] = []
        for entry in sorted(directory.iterdir()):
            relative = join_store_path(path, entry.name)
            if entry.is_dir():
                directories.append(relative)
            else:
                files.append(relative)
        return BrowseResult(files=tuple(files), directories=tuple(directories))

    def _fetch(self, file_path: str) -> FetchedFile:
        target = self._resolve(file_path)
        if not target.is_file():
            return FetchedFile(status=404)
        try:
            return FetchedFile(status=200, text=target.read_text(encoding="utf-8"))
        except OSError as exc:
            raise StorageError(f"Failed to read {file_path}: {exc}") from exc

    def _create_directory(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.mkdir()
        except FileExistsError as exc:
            if target.is_dir():
                raise DirectoryExistsError(path) from exc
            raise StorageError(f"A file already exists at {path}") from exc
        except FileNotFoundError as exc:
            raise StorageError(f"Parent directory of {path} does not exist.") from exc
        except OSError as exc:
            raise StorageError(f"Failed to create directory {path}: {exc}") from exc

    def _upload(self, directory: str, filename: str, content: str) -> UploadResult:
        target_directory = self._resolve(directory)
        if not target_directory.is_dir():
            raise StorageError(f"Upload directory {directory} does not exist.")
        try:
            (target_directory / filename).write_text(content, encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Failed to upload {filename} to {directory}: {exc}") from exc
        return UploadResult(status="success")
