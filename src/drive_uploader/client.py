"""DriveClient: the remote store client for Google Drive."""

from __future__ import annotations

import logging
from typing import Any, BinaryIO, Protocol

import httpx

from drive_uploader._internal.drive_api import UPLOAD_URL, DriveAPI
from drive_uploader.auth import Credentials, credentials_from_settings
from drive_uploader.config import Settings
from drive_uploader.exceptions import (
    DriveUploaderError,
    RemoteFolderResolutionError,
    RemoteStoreError,
    RemoteUploadError,
    SessionError,
)
from drive_uploader.models import DownloadResult, FileInfo, FolderInfo, UploadResult

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
UPLOAD_FIELDS = "id, name, size, mimeType, createdTime, webViewLink, webContentLink"
FILE_LIST_FIELDS = (
    "nextPageToken, files(id, name, mimeType, size, modifiedTime, webViewLink, webContentLink)"
)


class RemoteStore(Protocol):
    """The operations the orchestration layer needs from a remote store."""

    @property
    def is_initialized(self) -> bool: ...

    def list_folders(self, name: str, parent_id: str) -> list[FolderInfo]: ...

    def create_folder(self, name: str, parent_id: str) -> FolderInfo: ...

    def upload(
        self, parent_id: str, file_name: str, mime_type: str, content: BinaryIO, size: int
    ) -> UploadResult: ...

    def download(self, file_id: str) -> DownloadResult: ...

    def delete(self, file_id: str) -> bool: ...

    def list_files_in_folder(self, folder_id: str) -> list[FileInfo]: ...


def escape_query_value(value: str) -> str:
    """Escape a literal for use inside a quoted Drive search query."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _to_int(value: Any) -> int | None:
    # Drive reports sizes as decimal strings
    if value is None:
        return None
    return int(value)


def _file_info(item: dict[str, Any]) -> FileInfo:
    return FileInfo(
        id=item["id"],
        name=item["name"],
        mime_type=item.get("mimeType", "application/octet-stream"),
        size=_to_int(item.get("size")),
        modified_time=item.get("modifiedTime"),
        view_link=item.get("webViewLink"),
        download_link=item.get("webContentLink"),
    )


class DriveClient:
    """Client for Google Drive folders and files.

    Supports both context manager and manual session patterns.

    Example (context manager - recommended):
        with DriveClient.from_settings(settings) as client:
            client.initialize()
            folder = client.create_folder("Reports", settings.root_folder_id)

    Every operation except initialize() raises SessionError until
    initialize() has succeeded.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        timeout: float = 60.0,
        max_retries: int = 3,
        backoff: float = 1.0,
        http: httpx.Client | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            credentials: Credential strategy used to obtain access tokens
            timeout: Per-request timeout in seconds
            max_retries: Retries for idempotent reads on transient errors
            backoff: Base delay in seconds for exponential backoff
            http: Optional preconfigured httpx.Client
        """
        self._api = DriveAPI(
            credentials, timeout=timeout, max_retries=max_retries, backoff=backoff, http=http
        )
        self._initialized = False

    @classmethod
    def from_settings(cls, settings: Settings) -> DriveClient:
        return cls(
            credentials_from_settings(settings),
            timeout=settings.http_timeout_seconds,
            max_retries=settings.max_retries,
        )

    def __enter__(self) -> DriveClient:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit context manager."""
        self.close()

    @property
    def is_initialized(self) -> bool:
        """Check if the client has verified its credentials."""
        return self._initialized

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise SessionError("Drive client not initialized. Call initialize() first.")

    def initialize(self) -> bool:
        """Verify credentials against the remote store.

        Returns:
            True when the connection works; False otherwise (the error is logged)
        """
        try:
            about = self._api.get_json("/about", {"fields": "user"})
        except DriveUploaderError as e:
            logger.error(f"Failed to initialize Google Drive client: {e}")
            self._initialized = False
            return False

        email = about.get("user", {}).get("emailAddress", "unknown")
        logger.info(f"Connected to Google Drive as: {email}")
        self._initialized = True
        return True

    def list_folders(self, name: str, parent_id: str) -> list[FolderInfo]:
        """Find non-trashed folders named exactly name directly under parent_id.

        Raises:
            SessionError: If not initialized
            RemoteFolderResolutionError: If the lookup fails
        """
        self._ensure_initialized()
        query = (
            f"name='{escape_query_value(name)}' and '{escape_query_value(parent_id)}' in parents "
            f"and mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
        )
        try:
            data = self._api.get_json(
                "/files",
                {
                    "q": query,
                    "fields": "files(id, name)",
                    "spaces": "drive",
                    "supportsAllDrives": "true",
                    "includeItemsFromAllDrives": "true",
                },
            )
        except RemoteStoreError as e:
            raise RemoteFolderResolutionError(
                f"Failed to look up folder '{name}': {e}", status_code=e.status_code
            ) from e

        # The query is exact, but guard against servers that match loosely
        return [
            FolderInfo(id=item["id"], name=item["name"])
            for item in data.get("files", [])
            if item.get("name") == name
        ]

    def create_folder(self, name: str, parent_id: str) -> FolderInfo:
        """Create a folder under parent_id.

        Raises:
            SessionError: If not initialized
            RemoteFolderResolutionError: If creation fails
        """
        self._ensure_initialized()
        try:
            data = self._api.post_json(
                "/files",
                {"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
                {"fields": "id, name", "supportsAllDrives": "true"},
            )
        except RemoteStoreError as e:
            raise RemoteFolderResolutionError(
                f"Failed to create folder '{name}': {e}", status_code=e.status_code
            ) from e

        logger.debug(f"Created folder: {name} ({data['id']})")
        return FolderInfo(id=data["id"], name=data.get("name", name))

    def upload(
        self,
        parent_id: str,
        file_name: str,
        mime_type: str,
        content: BinaryIO,
        size: int,
    ) -> UploadResult:
        """Stream content into a new file under parent_id.

        Uses a resumable upload session so the body is never held in memory.
        The file is then shared as anyone-with-link reader and its size
        verified; a remote file that reports zero bytes is treated as failed.

        Raises:
            SessionError: If not initialized
            RemoteUploadError: If the upload fails
        """
        self._ensure_initialized()
        try:
            session = self._api.request(
                "POST",
                UPLOAD_URL,
                params={"uploadType": "resumable", "supportsAllDrives": "true"},
                json={"name": file_name, "parents": [parent_id]},
                headers={
                    "X-Upload-Content-Type": mime_type,
                    "X-Upload-Content-Length": str(size),
                },
            )
            location = session.headers.get("location")
            if not location:
                raise RemoteUploadError("Upload session response has no Location header")

            response = self._api.request(
                "PUT",
                location,
                params={"fields": UPLOAD_FIELDS},
                content=content,
                headers={"Content-Type": mime_type, "Content-Length": str(size)},
            )
            data = response.json()
        except RemoteUploadError:
            raise
        except RemoteStoreError as e:
            raise RemoteUploadError(
                f"Upload of {file_name} failed: {e}", status_code=e.status_code
            ) from e

        file_id = data["id"]
        logger.info(f"File uploaded: {data.get('name', file_name)} ({file_id})")

        try:
            self.make_public(file_id)
        except RemoteStoreError as e:
            logger.warning(f"Could not make {file_id} public: {e}")

        self._verify_upload(file_id)

        return UploadResult(
            remote_id=file_id,
            remote_view_link=data.get("webViewLink"),
            download_link=data.get("webContentLink"),
            size=_to_int(data.get("size")) or size,
            mime_type=data.get("mimeType", mime_type),
            created_time=data.get("createdTime"),
        )

    def _verify_upload(self, file_id: str) -> None:
        try:
            info = self.get_file(file_id)
        except RemoteStoreError as e:
            logger.warning(f"Could not verify uploaded file {file_id}: {e}")
            return
        if info.size == 0:
            raise RemoteUploadError(f"File {file_id} was created but has 0 bytes")

    def get_file(self, file_id: str) -> FileInfo:
        """Fetch file metadata."""
        self._ensure_initialized()
        data = self._api.get_json(
            f"/files/{file_id}",
            {
                "fields": "id, name, mimeType, size, modifiedTime, webViewLink, webContentLink",
                "supportsAllDrives": "true",
            },
        )
        return _file_info(data)

    def make_public(self, file_id: str) -> None:
        """Grant anyone-with-link read access to a file."""
        self._ensure_initialized()
        self._api.post_json(
            f"/files/{file_id}/permissions",
            {"role": "reader", "type": "anyone"},
            {"supportsAllDrives": "true"},
        )

    def download(self, file_id: str) -> DownloadResult:
        """Open a remote file for streaming.

        Raises:
            SessionError: If not initialized
            RemoteStoreError: If the file cannot be read
        """
        info = self.get_file(file_id)
        stream = self._api.iter_download(
            f"/files/{file_id}", {"alt": "media", "supportsAllDrives": "true"}
        )
        return DownloadResult(
            stream=stream, file_name=info.name, mime_type=info.mime_type, size=info.size
        )

    def delete(self, file_id: str) -> bool:
        """Delete a file permanently.

        Raises:
            SessionError: If not initialized
            RemoteStoreError: If deletion fails
        """
        self._ensure_initialized()
        self._api.request(
            "DELETE", f"/files/{file_id}", params={"supportsAllDrives": "true"}
        )
        logger.info(f"Deleted file from Google Drive: {file_id}")
        return True

    def list_files_in_folder(self, folder_id: str) -> list[FileInfo]:
        """List non-trashed items directly under folder_id, ordered by name."""
        self._ensure_initialized()
        files: list[FileInfo] = []
        page_token: str | None = None
        while True:
            params = {
                "q": f"'{escape_query_value(folder_id)}' in parents and trashed=false",
                "fields": FILE_LIST_FIELDS,
                "orderBy": "name",
                "supportsAllDrives": "true",
                "includeItemsFromAllDrives": "true",
            }
            if page_token:
                params["pageToken"] = page_token
            data = self._api.get_json("/files", params)
            files.extend(_file_info(item) for item in data.get("files", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                break
        logger.debug(f"Found {len(files)} files in folder {folder_id}")
        return files

    def storage_info(self) -> dict[str, int | None]:
        """Report quota usage in bytes."""
        self._ensure_initialized()
        quota = self._api.get_json("/about", {"fields": "storageQuota"}).get("storageQuota", {})
        return {
            "used": _to_int(quota.get("usage")),
            "total": _to_int(quota.get("limit")),
            "usage_in_drive": _to_int(quota.get("usageInDrive")),
            "usage_in_trash": _to_int(quota.get("usageInTrash")),
        }

    def close(self) -> None:
        """Close the client and clean up resources."""
        self._api.close()
        self._initialized = False
