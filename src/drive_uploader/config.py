"""
Configuration management for drive_uploader.
Loads environment variables (and an optional .env file) into Settings.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from drive_uploader.exceptions import ConfigError

MB = 1024 * 1024


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class CompressionSettings:
    """Tuning values for the compression pipeline."""

    threshold_bytes: int = 25 * MB
    target_bytes: int = 100 * MB
    timeout_seconds: float = 300.0
    min_output_bytes: int = 1024
    image_max_dimension: int = 4096
    image_quality: int = 80
    image_max_pixels: int = 16383 * 16383
    ghostscript_binary: str = "gs"

    @classmethod
    def from_env(cls) -> CompressionSettings:
        return cls(
            threshold_bytes=_get_int("COMPRESSION_THRESHOLD_MB", 25) * MB,
            target_bytes=_get_int("COMPRESSION_TARGET_MB", 100) * MB,
            timeout_seconds=_get_float("COMPRESSION_TIMEOUT_SECONDS", 300.0),
            min_output_bytes=_get_int("COMPRESSION_MIN_OUTPUT_BYTES", 1024),
            image_max_dimension=_get_int("IMAGE_MAX_DIMENSION", 4096),
            image_quality=_get_int("IMAGE_QUALITY", 80),
            image_max_pixels=_get_int("IMAGE_MAX_PIXELS", 16383 * 16383),
            ghostscript_binary=os.getenv("GHOSTSCRIPT_BINARY", "gs"),
        )


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the uploader."""

    root_folder_id: str
    client_id: str | None = None
    client_secret: str | None = None
    refresh_token: str | None = None
    credentials_path: Path | None = None
    http_timeout_seconds: float = 60.0
    max_retries: int = 3
    compression: CompressionSettings = field(default_factory=CompressionSettings)

    @property
    def uses_refresh_token(self) -> bool:
        return bool(self.client_id and self.client_secret and self.refresh_token)

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> Settings:
        """
        Load and validate configuration from environment variables.
        Raises ConfigError if required variables are missing.
        """
        if dotenv:
            load_dotenv()

        root_folder_id = os.getenv("GOOGLE_DRIVE_ROOT_FOLDER_ID")
        client_id = os.getenv("GOOGLE_CLIENT_ID")
        client_secret = os.getenv("GOOGLE_CLIENT_SECRET")
        refresh_token = os.getenv("GOOGLE_REFRESH_TOKEN")
        credentials_path = os.getenv("GOOGLE_CREDENTIALS_PATH")

        missing = []
        if not root_folder_id:
            missing.append("GOOGLE_DRIVE_ROOT_FOLDER_ID")
        if not (client_id and client_secret and refresh_token) and not credentials_path:
            missing.append(
                "GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET/GOOGLE_REFRESH_TOKEN "
                "or GOOGLE_CREDENTIALS_PATH"
            )
        if missing:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

        compression = CompressionSettings.from_env()

        return cls(
            root_folder_id=root_folder_id,  # type: ignore[arg-type]
            client_id=client_id,
            client_secret=client_secret,
            refresh_token=refresh_token,
            credentials_path=Path(credentials_path) if credentials_path else None,
            http_timeout_seconds=_get_float("DRIVE_HTTP_TIMEOUT_SECONDS", 60.0),
            max_retries=_get_int("DRIVE_MAX_RETRIES", 3),
            compression=compression,
        )
