"""UploadOrchestrator: compress, resolve the target folder, upload, clean up."""

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Sequence
from pathlib import Path

from drive_uploader.client import RemoteStore
from drive_uploader.compression import CompressionPipeline
from drive_uploader.exceptions import DriveUploaderError, SessionError
from drive_uploader.folders import FolderCache, FolderPathResolver, validate_segments
from drive_uploader.models import CompressionResult, DownloadResult, FileInfo, UploadResult
from drive_uploader.paths import hierarchical_label

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


def _with_suffix(file_name: str, suffix: str) -> str:
    stem, _ = os.path.splitext(file_name)
    return f"{stem}{suffix}"


class UploadOrchestrator:
    """Single entry point for storing and removing documents.

    Example:
        orchestrator = UploadOrchestrator(client)
        result = orchestrator.upload(
            "contract.pdf", "application/pdf", root_id, ["CityA", "Servidores J", "João Silva"]
        )

    The caller owns the local file and is responsible for writing document
    metadata once upload() returns.
    """

    def __init__(
        self,
        store: RemoteStore,
        *,
        pipeline: CompressionPipeline | None = None,
        resolver: FolderPathResolver | None = None,
        cache: FolderCache | None = None,
    ) -> None:
        self.store = store
        self.pipeline = pipeline or CompressionPipeline()
        self.resolver = resolver or FolderPathResolver(store, cache)

    def _ensure_ready(self) -> None:
        if not self.store.is_initialized:
            raise SessionError("Remote store client is not initialized")

    def upload(
        self,
        local_file: Path | str,
        mime_type: str | None,
        root_folder_id: str,
        path_segments: Sequence[str],
        *,
        file_name: str | None = None,
    ) -> UploadResult:
        """Upload local_file into the folder named by path_segments.

        Args:
            local_file: File to upload; it is read but never modified or deleted
            mime_type: Declared media type, used to pick a compression strategy
            root_folder_id: Remote folder the path is resolved under
            path_segments: Ordered folder names from the root to the target folder
            file_name: Remote file name (defaults to the local file's name)

        An image re-encoded into another format is uploaded under the new media
        type, with the file name's extension changed to match.

        Returns:
            UploadResult describing the stored file

        Raises:
            SessionError: If the remote store client is not initialized
            FileNotFoundError: If local_file does not exist
            RemoteFolderResolutionError: If the target folder cannot be resolved
            RemoteUploadError: If the upload fails
        """
        self._ensure_ready()
        local_file = Path(local_file)
        segments = validate_segments(path_segments)
        if not local_file.is_file():
            raise FileNotFoundError(f"File not found: {local_file}")

        mime_type = mime_type or DEFAULT_MIME_TYPE
        file_name = file_name or local_file.name
        logger.info(f"Starting upload of {file_name} to {hierarchical_label(segments)}")

        compression: CompressionResult | None = None
        try:
            compression = self.pipeline.maybe_compress(local_file, mime_type)
            folder_id = self.resolver.resolve(root_folder_id, segments)
            if compression.mime_type and compression.mime_type != mime_type:
                mime_type = compression.mime_type
                file_name = _with_suffix(file_name, compression.final_path.suffix)
                logger.info(f"Re-encoded as {mime_type}, uploading as {file_name}")

            with open(compression.final_path, "rb") as content:
                result = self.store.upload(
                    folder_id, file_name, mime_type, content, compression.final_size
                )
        except DriveUploaderError as e:
            logger.error(f"Upload of {file_name} failed: {e}")
            raise
        finally:
            self.pipeline.cleanup(compression, local_file)

        logger.info(f"Uploaded {file_name} as {result.remote_id}")
        return dataclasses.replace(result, compression=compression)

    def delete(self, remote_id: str) -> bool:
        """Delete a remote file. Failures are logged and reported as False."""
        try:
            self._ensure_ready()
            return bool(self.store.delete(remote_id))
        except Exception as e:
            logger.error(f"Failed to delete {remote_id} from the remote store: {e}")
            return False

    def download(self, remote_id: str) -> DownloadResult:
        self._ensure_ready()
        return self.store.download(remote_id)

    def list_folder(self, folder_id: str) -> list[FileInfo]:
        self._ensure_ready()
        return self.store.list_files_in_folder(folder_id)
