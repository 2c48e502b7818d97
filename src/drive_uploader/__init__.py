"""Drive Uploader - document storage orchestration for Google Drive.

Example usage:
    from drive_uploader import DriveClient, Settings, UploadOrchestrator, server_folder_path

    settings = Settings.from_env()
    with DriveClient.from_settings(settings) as client:
        client.initialize()
        orchestrator = UploadOrchestrator(client)
        result = orchestrator.upload(
            "holerite.pdf",
            "application/pdf",
            settings.root_folder_id,
            server_folder_path("CityA", "João Silva"),
        )
        print(result.remote_id, result.remote_view_link)
"""

from drive_uploader.auth import RefreshTokenCredentials, ServiceAccountCredentials
from drive_uploader.client import DriveClient, RemoteStore
from drive_uploader.compression import CompressionPipeline, Ghostscript, progressive_search
from drive_uploader.config import CompressionSettings, Settings
from drive_uploader.exceptions import (
    AuthenticationError,
    CompressionError,
    ConfigError,
    DriveUploaderError,
    ExternalToolFailure,
    ExternalToolTimeout,
    ExternalToolUnavailable,
    RemoteFolderResolutionError,
    RemoteStoreError,
    RemoteUploadError,
    SessionError,
)
from drive_uploader.folders import FolderCache, FolderPathResolver
from drive_uploader.models import (
    CompressionAttempt,
    CompressionResult,
    DownloadResult,
    FileInfo,
    FolderInfo,
    QualityLevel,
    UploadResult,
)
from drive_uploader.orchestrator import UploadOrchestrator
from drive_uploader.paths import (
    financial_folder_path,
    hierarchical_label,
    server_folder_path,
    timestamped_file_name,
)

__version__ = "0.1.0"

__all__ = [
    # Orchestration
    "UploadOrchestrator",
    "FolderCache",
    "FolderPathResolver",
    "CompressionPipeline",
    "Ghostscript",
    "progressive_search",
    # Remote store
    "DriveClient",
    "RemoteStore",
    "RefreshTokenCredentials",
    "ServiceAccountCredentials",
    # Configuration
    "Settings",
    "CompressionSettings",
    # Paths
    "server_folder_path",
    "financial_folder_path",
    "hierarchical_label",
    "timestamped_file_name",
    # Models
    "CompressionAttempt",
    "CompressionResult",
    "DownloadResult",
    "FileInfo",
    "FolderInfo",
    "QualityLevel",
    "UploadResult",
    # Exceptions
    "DriveUploaderError",
    "ConfigError",
    "AuthenticationError",
    "SessionError",
    "RemoteStoreError",
    "RemoteFolderResolutionError",
    "RemoteUploadError",
    "CompressionError",
    "ExternalToolUnavailable",
    "ExternalToolTimeout",
    "ExternalToolFailure",
]
