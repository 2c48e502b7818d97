"""Command-line interface for drive_uploader."""

from __future__ import annotations

import logging
import mimetypes
import shutil
import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from drive_uploader import (
    CompressionPipeline,
    CompressionSettings,
    ConfigError,
    DriveClient,
    DriveUploaderError,
    Ghostscript,
    Settings,
    UploadOrchestrator,
    hierarchical_label,
    timestamped_file_name,
)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_settings() -> Settings:
    """Load settings, exiting with a readable message when incomplete."""
    try:
        return Settings.from_env()
    except ConfigError as e:
        click.echo(click.style(f"Configuration error: {e}", fg="red"), err=True)
        sys.exit(2)


def get_compression_settings() -> CompressionSettings:
    """Load only the compression tuning, which needs no Drive credentials."""
    try:
        return CompressionSettings.from_env()
    except ConfigError as e:
        click.echo(click.style(f"Configuration error: {e}", fg="red"), err=True)
        sys.exit(2)


def get_client(settings: Settings) -> DriveClient:
    """Create and initialize a DriveClient, exiting if it cannot connect."""
    client = DriveClient.from_settings(settings)
    if not client.initialize():
        client.close()
        click.echo(click.style("Could not connect to Google Drive", fg="red"), err=True)
        sys.exit(1)
    return client


def _guess_mime(path: Path, mime: str | None) -> str:
    if mime:
        return mime
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or "application/octet-stream"


@click.group()
@click.version_option(package_name="drive-uploader")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """Drive Uploader CLI - store municipal documents in Google Drive."""
    load_dotenv()
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--path",
    "-p",
    "segments",
    multiple=True,
    required=True,
    help="Folder name below the root; repeat for each level",
)
@click.option("--mime", "-m", default=None, help="Media type (guessed from the name if omitted)")
@click.option("--root", "-r", default=None, help="Root folder id (default: from environment)")
@click.option(
    "--name", "-n", default=None, help="Remote file name (default: <epoch-ms>_<local name>)"
)
def upload(
    file: Path,
    segments: tuple[str, ...],
    mime: str | None,
    root: str | None,
    name: str | None,
) -> None:
    """Upload FILE into the folder path given by --path options.

    Examples:

        drive-uploader upload holerite.pdf -p CityA -p "Servidores J" -p "João Silva"

        drive-uploader upload balanco.pdf -p CityA -p "Documentações Financeiras" -p "Outros" -p 2024
    """
    settings = get_settings()
    try:
        with get_client(settings) as client:
            orchestrator = UploadOrchestrator(
                client, pipeline=CompressionPipeline(settings.compression)
            )
            result = orchestrator.upload(
                file,
                _guess_mime(file, mime),
                root or settings.root_folder_id,
                segments,
                file_name=name or timestamped_file_name(file.name),
            )
    except (DriveUploaderError, ValueError) as e:
        click.echo(click.style(f"Upload failed: {e}", fg="red"), err=True)
        sys.exit(1)

    click.echo(click.style("✓ ", fg="green") + f"{file.name} -> {hierarchical_label(segments)}")
    click.echo(f"  id:       {result.remote_id}")
    if result.remote_view_link:
        click.echo(f"  view:     {result.remote_view_link}")
    if result.download_link:
        click.echo(f"  download: {result.download_link}")
    if result.compression and result.compression.compressed:
        c = result.compression
        click.echo(
            f"  compressed {_format_size(c.original_size)} -> {_format_size(c.final_size)}"
            f" ({c.ratio * 100:.1f}% smaller)"
        )


@main.command()
@click.argument("remote_id")
def delete(remote_id: str) -> None:
    """Delete a file from Google Drive."""
    settings = get_settings()
    with get_client(settings) as client:
        ok = UploadOrchestrator(client).delete(remote_id)
    if not ok:
        click.echo(click.style(f"Could not delete {remote_id}", fg="red"), err=True)
        sys.exit(1)
    click.echo(click.style(f"Deleted {remote_id}", fg="green"))


@main.command("ls")
@click.argument("folder_id", required=False)
def list_folder(folder_id: str | None) -> None:
    """List files in a folder (default: the root folder)."""
    settings = get_settings()
    try:
        with get_client(settings) as client:
            items = client.list_files_in_folder(folder_id or settings.root_folder_id)
    except DriveUploaderError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    if not items:
        click.echo("(empty folder)")
        return
    for item in items:
        if item.mime_type == "application/vnd.google-apps.folder":
            click.echo(click.style(f"  {item.name}/", fg="blue") + f"  [{item.id}]")
        else:
            size_str = _format_size(item.size) if item.size is not None else "?"
            click.echo(f"  {item.name}  ({size_str})  [{item.id}]")


@main.command()
@click.argument("remote_id")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Destination file (default: remote name in the current directory)",
)
def download(remote_id: str, output: Path | None) -> None:
    """Download a file from Google Drive."""
    settings = get_settings()
    try:
        with get_client(settings) as client:
            result = client.download(remote_id)
            target = output or Path(result.file_name)
            with open(target, "wb") as f:
                for chunk in result.stream:
                    f.write(chunk)
    except DriveUploaderError as e:
        click.echo(click.style(f"Download failed: {e}", fg="red"), err=True)
        sys.exit(1)
    click.echo(click.style(f"Saved {target}", fg="green"))


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--mime", "-m", default=None, help="Media type (guessed from the name if omitted)")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Where to move the compressed file",
)
def compress(file: Path, mime: str | None, output: Path | None) -> None:
    """Run only the compression step on FILE and keep the result."""
    pipeline = CompressionPipeline(get_compression_settings())
    result = pipeline.maybe_compress(file, _guess_mime(file, mime))
    if not result.compressed:
        click.echo(f"{file.name} left unchanged ({_format_size(result.original_size)})")
        return

    final_path = result.final_path
    if output:
        final_path = Path(shutil.move(str(result.final_path), output))
    click.echo(
        click.style("✓ ", fg="green")
        + f"{_format_size(result.original_size)} -> {_format_size(result.final_size)}"
        + f" ({result.ratio * 100:.1f}% smaller): {final_path}"
    )


@main.command("check-tools")
def check_tools() -> None:
    """Report whether the PDF compression tool is installed."""
    binary = get_compression_settings().ghostscript_binary
    if Ghostscript(binary).available():
        click.echo(click.style(f"{binary}: available", fg="green"))
    else:
        click.echo(click.style(f"{binary}: not found, PDFs will not be compressed", fg="yellow"))
        sys.exit(1)


def _format_size(size_bytes: int) -> str:
    """Format file size in human-readable form."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}" if unit != "B" else f"{size_bytes} {unit}"
        size_bytes /= 1024  # type: ignore[assignment]
    return f"{size_bytes:.1f} TB"


if __name__ == "__main__":
    main()
