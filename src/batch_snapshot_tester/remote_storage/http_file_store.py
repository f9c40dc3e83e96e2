"""HTTP implementation of the remote store contract."""

from __future__ import annotations

from typing import Any

import httpx

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


class HttpFileStore:
    """Client for a file service exposing browse, fetch, mkdir and upload endpoints.

    Endpoints, relative to `base_url`:
      GET  /browse?path=<dir>        -> {"files": [...], "dirs": [...]}, 404 if missing
      GET  /files/<path>             -> raw file content
      POST /directories {"path": p}  -> 201, 409 if it already exists
      POST /upload (multipart)       -> {"status": "success"}
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
        )
        self._notifier = notifier

    async def aclose(self) -> None:
        await self._client.aclose()

    async def browse(self, path: str) -> BrowseResult:
        response = await self._request("GET", "/browse", params={"path": join_store_path(path)})
        if response.status_code == 404:
            raise DirectoryNotFoundError(path)
        _raise_for_status(response, f"browse {path}")
        payload = _json_mapping(response, f"browse {path}")
        return BrowseResult(
            files=tuple(str(item) for item in payload.get("files", ())),
            directories=tuple(str(item) for item in payload.get("dirs", ())),
        )

    async def fetch(self, file_path: str) -> FetchedFile:
        response = await self._request("GET", f"/files/{join_store_path(file_path)}")
        if response.status_code != 200:
            return FetchedFile(status=response.status_code)
        return FetchedFile(status=200, text=response.text)

    async def create_directory(self, path: str) -> None:
        response = await self._request(
            "POST", "/directories", json={"path": join_store_path(path)}
        )
        if response.status_code == 409:
            raise DirectoryExistsError(path)
        _raise_for_status(response, f"create directory {path}")

    async def upload(self, directory: str, filename: str, content: str) -> UploadResult:
        response = await self._request(
            "POST",
            "/upload",
            data={"path": join_store_path(directory)},
            files={"file": (filename, content.encode("utf-8"), "text/plain")},
        )
        _raise_for_status(response, f"upload {filename}")
        payload = _json_mapping(response, f"upload {filename}")
        status = str(payload.get("status", "error"))
        if self._notifier is not None and status == "success":
            self._notifier.info(saved_message(filename, directory))
        return UploadResult(status=status)

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise StorageError(f"{method} {url} failed: {exc}") from exc


def _raise_for_status(response: httpx.Response, action: str) -> None:
    if response.is_success:
        return
    raise StorageError(f"Failed to {action}: HTTP {response.status_code}")


def _json_mapping(response: httpx.Response, action: str) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise StorageError(f"Failed to {action}: response is not JSON.") from exc
    if not isinstance(payload, dict):
        raise StorageError(f"Failed to {action}: response must be a JSON object.")
    return payload
