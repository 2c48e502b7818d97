"""Pytest fixtures for drive_uploader tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from helpers import MB, FakeDrive, make_sized_file

from drive_uploader.config import CompressionSettings
from drive_uploader.folders import FolderCache


@pytest.fixture
def fake_drive() -> FakeDrive:
    """Create an empty in-memory remote store."""
    return FakeDrive()


@pytest.fixture
def folder_cache() -> FolderCache:
    return FolderCache()


@pytest.fixture
def compression_settings() -> CompressionSettings:
    """Reference thresholds: compress above 25 MB, aim for 100 MB."""
    return CompressionSettings(threshold_bytes=25 * MB, target_bytes=100 * MB)


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    """Directory that receives compressed outputs."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def small_pdf(tmp_path: Path) -> Path:
    """Create a small PDF file for testing."""
    pdf_path = tmp_path / "small.pdf"
    pdf_path.write_bytes(b"%PDF-1.4 test content")
    return pdf_path


@pytest.fixture
def large_pdf(tmp_path: Path) -> Path:
    """Create a 30 MB (sparse) PDF file."""
    return make_sized_file(tmp_path / "large.pdf", 30 * MB)
