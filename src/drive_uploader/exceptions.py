"""Exception hierarchy for the drive_uploader library."""

from __future__ import annotations


class DriveUploaderError(Exception):
    """Base exception for all drive_uploader errors."""

    pass


class ConfigError(DriveUploaderError):
    """Raised when required configuration is missing or invalid."""

    pass


class AuthenticationError(DriveUploaderError):
    """Raised when an access token cannot be obtained."""

    pass


class SessionError(DriveUploaderError):
    """Raised when the client is used before it has been initialized."""

    pass


class RemoteStoreError(DriveUploaderError):
    """Raised when a call against the remote store fails.

    The status_code attribute holds the HTTP status of the failed response,
    or None when the request never produced one (timeouts, network errors).
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteFolderResolutionError(RemoteStoreError):
    """Raised when a folder cannot be looked up or created."""

    pass


class RemoteUploadError(RemoteStoreError):
    """Raised when a file upload fails."""

    pass


class CompressionError(DriveUploaderError):
    """Base class for compression tool failures."""

    pass


class ExternalToolUnavailable(CompressionError):
    """Raised when the compression tool is not installed."""

    pass


class ExternalToolTimeout(CompressionError):
    """Raised when a compression attempt exceeds its time limit."""

    pass


class ExternalToolFailure(CompressionError):
    """Raised when the compression tool exits with an error or writes no output."""

    pass
