"""Tests for CLI functionality."""

from __future__ import annotations

import re
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from drive_uploader.cli import main
from drive_uploader.config import Settings
from drive_uploader.exceptions import ConfigError, RemoteStoreError, RemoteUploadError
from drive_uploader.models import DownloadResult, FileInfo, UploadResult


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def settings() -> Settings:
    return Settings(root_folder_id="root-123", client_id="cid", client_secret="s", refresh_token="r")


@pytest.fixture
def mock_client() -> MagicMock:
    """Create a mock DriveClient usable as a context manager."""
    client = MagicMock()
    client.__enter__.return_value = client
    return client


@pytest.fixture
def patched(settings: Settings, mock_client: MagicMock):
    with patch("drive_uploader.cli.get_settings", return_value=settings), patch(
        "drive_uploader.cli.get_client", return_value=mock_client
    ):
        yield mock_client


class TestUploadCommand:
    """Tests for the upload command."""

    def test_upload_success(self, runner: CliRunner, patched: MagicMock, tmp_path: Path) -> None:
        """Test uploading into a folder path under a timestamped remote name."""
        doc = tmp_path / "holerite.pdf"
        doc.write_bytes(b"%PDF-1.4")

        with patch("drive_uploader.cli.UploadOrchestrator") as orchestrator_cls:
            orchestrator = orchestrator_cls.return_value
            orchestrator.upload.return_value = UploadResult(
                remote_id="file-9",
                remote_view_link="https://drive.google.com/file/d/file-9/view",
                download_link=None,
                size=8,
                mime_type="application/pdf",
                created_time=None,
            )

            result = runner.invoke(
                main, ["upload", str(doc), "-p", "CityA", "-p", "Servidores J", "-p", "João Silva"]
            )

        assert result.exit_code == 0, result.output
        assert "file-9" in result.output
        assert "CityA > Servidores J > João Silva" in result.output
        args, kwargs = orchestrator.upload.call_args
        assert args == (doc, "application/pdf", "root-123", ("CityA", "Servidores J", "João Silva"))
        assert re.fullmatch(r"\d{13}_holerite\.pdf", kwargs["file_name"])

    def test_upload_with_root_and_name(
        self, runner: CliRunner, patched: MagicMock, tmp_path: Path
    ) -> None:
        """Test overriding the root folder, name and media type."""
        doc = tmp_path / "scan.bin"
        doc.write_bytes(b"data")

        with patch("drive_uploader.cli.UploadOrchestrator") as orchestrator_cls:
            orchestrator = orchestrator_cls.return_value
            orchestrator.upload.return_value = UploadResult(
                remote_id="f", remote_view_link=None, download_link=None,
                size=4, mime_type="image/png", created_time=None,
            )

            result = runner.invoke(
                main,
                ["upload", str(doc), "-p", "X", "-r", "other-root", "-n", "1_scan.png", "-m", "image/png"],
            )

        assert result.exit_code == 0, result.output
        orchestrator.upload.assert_called_once_with(
            doc, "image/png", "other-root", ("X",), file_name="1_scan.png"
        )

    def test_upload_failure(self, runner: CliRunner, patched: MagicMock, tmp_path: Path) -> None:
        """Test that store errors exit non-zero."""
        doc = tmp_path / "a.pdf"
        doc.write_bytes(b"x")

        with patch("drive_uploader.cli.UploadOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.upload.side_effect = RemoteUploadError("quota exceeded")

            result = runner.invoke(main, ["upload", str(doc), "-p", "CityA"])

        assert result.exit_code == 1
        assert "Upload failed" in result.output
        assert "quota exceeded" in result.output

    def test_upload_requires_path(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test that at least one --path is required."""
        doc = tmp_path / "a.pdf"
        doc.write_bytes(b"x")

        result = runner.invoke(main, ["upload", str(doc)])

        assert result.exit_code != 0
        assert "--path" in result.output


class TestDeleteCommand:
    """Tests for the delete command."""

    def test_delete_success(self, runner: CliRunner, patched: MagicMock) -> None:
        result = runner.invoke(main, ["delete", "file-1"])

        assert result.exit_code == 0
        assert "Deleted file-1" in result.output
        patched.delete.assert_called_once_with("file-1")

    def test_delete_failure(self, runner: CliRunner, patched: MagicMock) -> None:
        """Test that a failed delete is reported, not raised."""
        patched.delete.side_effect = RemoteStoreError("not found", status_code=404)

        result = runner.invoke(main, ["delete", "file-1"])

        assert result.exit_code == 1
        assert "Could not delete file-1" in result.output


class TestListCommand:
    """Tests for the ls command."""

    def test_list_root(self, runner: CliRunner, patched: MagicMock) -> None:
        patched.list_files_in_folder.return_value = [
            FileInfo(id="d1", name="CityA", mime_type="application/vnd.google-apps.folder"),
            FileInfo(id="f1", name="doc.pdf", mime_type="application/pdf", size=2048),
        ]

        result = runner.invoke(main, ["ls"])

        assert result.exit_code == 0
        assert "CityA/" in result.output
        assert "doc.pdf" in result.output
        assert "2.0 KB" in result.output
        patched.list_files_in_folder.assert_called_once_with("root-123")

    def test_list_empty(self, runner: CliRunner, patched: MagicMock) -> None:
        patched.list_files_in_folder.return_value = []

        result = runner.invoke(main, ["ls", "folder-7"])

        assert "(empty folder)" in result.output
        patched.list_files_in_folder.assert_called_once_with("folder-7")


class TestDownloadCommand:
    """Tests for the download command."""

    def test_download_to_output(self, runner: CliRunner, patched: MagicMock, tmp_path: Path) -> None:
        patched.download.return_value = DownloadResult(
            stream=iter([b"abc", b"def"]),
            file_name="doc.pdf",
            mime_type="application/pdf",
            size=6,
        )
        target = tmp_path / "out.pdf"

        result = runner.invoke(main, ["download", "file-1", "-o", str(target)])

        assert result.exit_code == 0, result.output
        assert target.read_bytes() == b"abcdef"


class TestCompressCommand:
    """Tests for the compress command."""

    def test_small_file_unchanged(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test that files under the threshold are left alone."""
        doc = tmp_path / "notes.txt"
        doc.write_text("hello")

        result = runner.invoke(main, ["compress", str(doc)])

        assert result.exit_code == 0
        assert "left unchanged" in result.output


class TestCheckToolsCommand:
    """Tests for the check-tools command."""

    def test_available(self, runner: CliRunner) -> None:
        with patch("drive_uploader.cli.Ghostscript") as gs_cls:
            gs_cls.return_value.available.return_value = True
            result = runner.invoke(main, ["check-tools"])

        assert result.exit_code == 0
        assert "available" in result.output

    def test_missing(self, runner: CliRunner) -> None:
        with patch("drive_uploader.cli.Ghostscript") as gs_cls:
            gs_cls.return_value.available.return_value = False
            result = runner.invoke(main, ["check-tools"])

        assert result.exit_code == 1
        assert "not found" in result.output


def test_missing_configuration_exits(runner: CliRunner) -> None:
    """Test that configuration errors exit with status 2."""
    with patch(
        "drive_uploader.cli.Settings.from_env",
        side_effect=ConfigError("Missing required environment variables: GOOGLE_DRIVE_ROOT_FOLDER_ID"),
    ):
        result = runner.invoke(main, ["ls"])

    assert result.exit_code == 2
    assert "Configuration error" in result.output
