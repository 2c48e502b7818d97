"""Shared test helpers for drive_uploader tests."""

from __future__ import annotations

import itertools
import threading
from pathlib import Path
from typing import BinaryIO

import httpx
from google.oauth2 import credentials as oauth2_credentials

from drive_uploader.auth import Credentials
from drive_uploader.exceptions import CompressionError, RemoteFolderResolutionError
from drive_uploader.models import DownloadResult, FileInfo, FolderInfo, UploadResult

MB = 1024 * 1024


def make_sized_file(path: Path, size: int) -> Path:
    """Create a sparse file of exactly size bytes."""
    with open(path, "wb") as f:
        f.truncate(size)
    return path


class StaticCredentials(Credentials):
    """Credentials that hand out numbered tokens without any HTTP."""

    def __init__(self, token: str = "token-1") -> None:
        super().__init__(oauth2_credentials.Credentials(token=token))
        self.refresh_count = 0

    def refresh(self, http: httpx.Client) -> str:
        self.refresh_count += 1
        self._credentials.token = f"token-{self.refresh_count + 1}"
        return self._credentials.token


class FakeDrive:
    """In-memory remote store recording every call."""

    def __init__(self) -> None:
        self.folders: dict[str, tuple[str, str]] = {}  # id -> (name, parent)
        self.files: dict[str, dict] = {}
        self.list_calls: list[tuple[str, str]] = []
        self.create_calls: list[tuple[str, str]] = []
        self.upload_calls: list[tuple[str, str, str, int]] = []
        self.deleted: list[str] = []
        self.initialized = True
        self.upload_error: Exception | None = None
        self.delete_error: Exception | None = None
        self.create_error_on: str | None = None
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self.initialized

    def add_folder(self, name: str, parent_id: str, folder_id: str | None = None) -> str:
        folder_id = folder_id or f"existing-{next(self._ids)}"
        self.folders[folder_id] = (name, parent_id)
        return folder_id

    def list_folders(self, name: str, parent_id: str) -> list[FolderInfo]:
        with self._lock:
            self.list_calls.append((name, parent_id))
            return [
                FolderInfo(id=fid, name=n)
                for fid, (n, p) in self.folders.items()
                if n == name and p == parent_id
            ]

    def create_folder(self, name: str, parent_id: str) -> FolderInfo:
        with self._lock:
            self.create_calls.append((name, parent_id))
            if name == self.create_error_on:
                raise RemoteFolderResolutionError(f"cannot create {name}")
            folder_id = f"folder-{next(self._ids)}"
            self.folders[folder_id] = (name, parent_id)
            return FolderInfo(id=folder_id, name=name)

    def upload(
        self, parent_id: str, file_name: str, mime_type: str, content: BinaryIO, size: int
    ) -> UploadResult:
        self.upload_calls.append((parent_id, file_name, mime_type, size))
        if self.upload_error is not None:
            raise self.upload_error
        data = content.read()
        file_id = f"file-{next(self._ids)}"
        self.files[file_id] = {
            "name": file_name,
            "parent": parent_id,
            "mime_type": mime_type,
            "data": data,
        }
        return UploadResult(
            remote_id=file_id,
            remote_view_link=f"https://drive.example/{file_id}/view",
            download_link=f"https://drive.example/{file_id}/download",
            size=len(data),
            mime_type=mime_type,
            created_time="2024-01-01T00:00:00Z",
        )

    def download(self, file_id: str) -> DownloadResult:
        entry = self.files[file_id]
        return DownloadResult(
            stream=iter([entry["data"]]),
            file_name=entry["name"],
            mime_type=entry["mime_type"],
            size=len(entry["data"]),
        )

    def delete(self, file_id: str) -> bool:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(file_id)
        self.files.pop(file_id, None)
        return True

    def list_files_in_folder(self, folder_id: str) -> list[FileInfo]:
        return [
            FileInfo(id=fid, name=f["name"], mime_type=f["mime_type"], size=len(f["data"]))
            for fid, f in self.files.items()
            if f["parent"] == folder_id
        ]


class FakeGhostscript:
    """Stands in for Ghostscript, writing outputs of preset sizes.

    sizes maps a PDFSETTINGS token to the output size to produce, or to an
    exception to raise.
    """

    def __init__(self, sizes: dict[str, int | Exception], available: bool = True) -> None:
        self.sizes = sizes
        self.is_available = available
        self.calls: list[str] = []
        self.outputs: list[Path] = []

    def available(self) -> bool:
        return self.is_available

    def compress(self, input_path: Path, output_path: Path, setting: str) -> Path:
        self.calls.append(setting)
        outcome = self.sizes[setting]
        if isinstance(outcome, CompressionError):
            output_path.unlink(missing_ok=True)
            raise outcome
        self.outputs.append(output_path)
        return make_sized_file(output_path, outcome)


def respond(status: int = 200, json: object = None, headers: dict | None = None):  # type: ignore[no-untyped-def]
    """Build a response factory for DriveRouter."""

    def factory(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=json, headers=headers)

    return factory


class DriveRouter:
    """httpx.MockTransport handler keyed by (method, path).

    Each route holds a queue of factories (or exceptions to raise); the last
    one keeps answering once the queue is drained.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list] = {}
        self.requests: list[httpx.Request] = []
        self.bodies: list[bytes] = []

    def add(self, method: str, path: str, *responses) -> None:  # type: ignore[no-untyped-def]
        self.routes[(method, path)] = list(responses)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.bodies.append(request.read())
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": {"message": "no route"}})
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome(request)
