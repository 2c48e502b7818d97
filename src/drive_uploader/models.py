"""Data models for the drive_uploader library."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

FolderPath = tuple[str, ...]


@dataclass(frozen=True)
class FolderInfo:
    """A folder in the remote store."""

    id: str
    name: str


@dataclass(frozen=True)
class FileInfo:
    """A file in the remote store."""

    id: str
    name: str
    mime_type: str
    size: int | None = None
    modified_time: str | None = None
    view_link: str | None = None
    download_link: str | None = None


@dataclass(frozen=True)
class QualityLevel:
    """One preset of the external compression tool."""

    name: str
    setting: str
    dpi: int


@dataclass(frozen=True)
class CompressionAttempt:
    """A single measured compression trial."""

    level: int
    target_setting: str
    output_path: Path
    result_size: int


@dataclass(frozen=True)
class CompressionResult:
    """Outcome of CompressionPipeline.maybe_compress().

    mime_type is set when final_path was re-encoded into a different media
    type than the input (a TIFF or WebP image saved as JPEG, say) and is None
    otherwise.
    """

    final_path: Path
    compressed: bool
    original_size: int
    final_size: int
    attempts: tuple[CompressionAttempt, ...] = ()
    mime_type: str | None = None

    @property
    def saved_bytes(self) -> int:
        return self.original_size - self.final_size

    @property
    def ratio(self) -> float:
        """Fraction of the original size that was removed."""
        if not self.original_size:
            return 0.0
        return 1 - self.final_size / self.original_size


@dataclass(frozen=True)
class UploadResult:
    """Result of an upload operation."""

    remote_id: str
    remote_view_link: str | None
    download_link: str | None
    size: int
    mime_type: str
    created_time: str | None
    compression: CompressionResult | None = None


@dataclass(frozen=True)
class DownloadResult:
    """A remote file opened for reading.

    stream yields the file bytes in chunks and must be consumed before the
    owning client is closed.
    """

    stream: Iterator[bytes]
    file_name: str
    mime_type: str
    size: int | None
