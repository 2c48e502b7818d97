"""Shrinking large files before upload.

The remote store renders previews only up to a size ceiling, so files over a
threshold are compressed just enough to get under a budget. PDFs go through
Ghostscript one quality level at a time, most faithful first, stopping at the
first result that fits. Images get a single resize-and-re-encode pass with
Pillow. Anything else is uploaded as is.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
import threading
from collections.abc import Callable, Sequence
from pathlib import Path

from PIL import Image

from drive_uploader.config import CompressionSettings
from drive_uploader.exceptions import (
    CompressionError,
    ExternalToolFailure,
    ExternalToolTimeout,
    ExternalToolUnavailable,
)
from drive_uploader.models import CompressionAttempt, CompressionResult, QualityLevel

logger = logging.getLogger(__name__)

DEFAULT_QUALITY_LEVELS: tuple[QualityLevel, ...] = (
    QualityLevel(name="ebook", setting="/ebook", dpi=150),
    QualityLevel(name="screen", setting="/screen", dpi=72),
)

# An attempt runs one quality level and returns the path it wrote, or raises
# CompressionError.
Attempt = Callable[[], Path]


def _mb(size: int) -> str:
    return f"{size / 1024 / 1024:.2f} MB"


def discard(path: Path) -> None:
    """Delete a temporary file, logging rather than raising on failure."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not remove temporary file {path}: {e}")


def unchanged(path: Path, size: int) -> CompressionResult:
    return CompressionResult(final_path=path, compressed=False, original_size=size, final_size=size)


def progressive_search(
    original_path: Path,
    original_size: int,
    attempts: Sequence[tuple[QualityLevel, Attempt]],
    *,
    target_bytes: int,
    min_output_bytes: int = 1024,
) -> CompressionResult:
    """Run attempts in order and keep the best output.

    A candidate replaces the current best only when it is smaller than it
    (the original counts as the initial best) and larger than
    min_output_bytes. Outputs that are not kept are deleted straight away,
    including a previous best that gets superseded. The search stops as soon
    as the best size is within target_bytes.
    """
    best_path: Path | None = None
    best_size = original_size
    history: list[CompressionAttempt] = []

    for index, (level, run) in enumerate(attempts, start=1):
        logger.info(f"Trying compression level '{level.name}' ({level.dpi}dpi)")
        try:
            output = run()
        except CompressionError as e:
            logger.warning(f"Compression level '{level.name}' failed: {e}")
            continue

        try:
            size = output.stat().st_size
        except OSError as e:
            logger.warning(f"Compression level '{level.name}' produced no readable output: {e}")
            continue

        history.append(
            CompressionAttempt(
                level=index, target_setting=level.setting, output_path=output, result_size=size
            )
        )
        logger.info(
            f"Level '{level.name}' result: {_mb(size)} "
            f"({(1 - size / original_size) * 100:.1f}% smaller)"
        )

        if min_output_bytes < size < best_size:
            if best_path is not None:
                discard(best_path)
            best_path, best_size = output, size
        else:
            discard(output)

        if best_path is not None and best_size <= target_bytes:
            logger.info(f"Compressed {_mb(original_size)} -> {_mb(best_size)}")
            break
    else:
        if best_path is not None:
            logger.warning(
                f"File still over budget after all levels, using best result: "
                f"{_mb(original_size)} -> {_mb(best_size)}"
            )

    if best_path is None:
        logger.warning(f"Could not compress {original_path.name}")
        return CompressionResult(
            final_path=original_path,
            compressed=False,
            original_size=original_size,
            final_size=original_size,
            attempts=tuple(history),
        )

    return CompressionResult(
        final_path=best_path,
        compressed=True,
        original_size=original_size,
        final_size=best_size,
        attempts=tuple(history),
    )


class Ghostscript:
    """Runs the gs binary, checking once whether it is installed."""

    def __init__(self, binary: str = "gs", timeout: float = 300.0) -> None:
        self.binary = binary
        self.timeout = timeout
        self._available: bool | None = None
        self._lock = threading.Lock()

    def available(self) -> bool:
        with self._lock:
            if self._available is None:
                self._available = self._probe()
            return self._available

    def _probe(self) -> bool:
        try:
            result = subprocess.run(
                [self.binary, "--version"], capture_output=True, text=True, timeout=30
            )
        except (OSError, subprocess.SubprocessError):
            result = None

        if result is not None and result.returncode == 0:
            logger.info(f"Ghostscript {result.stdout.strip()} available for PDF compression")
            return True
        logger.warning("Ghostscript not available; PDFs will be uploaded uncompressed")
        return False

    def command(self, input_path: Path, output_path: Path, setting: str) -> list[str]:
        return [
            self.binary,
            "-sDEVICE=pdfwrite",
            "-dCompatibilityLevel=1.4",
            f"-dPDFSETTINGS={setting}",
            "-dNOPAUSE",
            "-dQUIET",
            "-dBATCH",
            "-dColorImageDownsampleType=/Bicubic",
            "-dGrayImageDownsampleType=/Bicubic",
            "-dMonoImageDownsampleType=/Subsample",
            "-dOptimize=true",
            "-dDetectDuplicateImages=true",
            "-dCompressFonts=true",
            "-dSubsetFonts=true",
            f"-sOutputFile={output_path}",
            str(input_path),
        ]

    def compress(self, input_path: Path, output_path: Path, setting: str) -> Path:
        """Rewrite input_path to output_path with the given PDFSETTINGS preset.

        Raises:
            ExternalToolUnavailable: If the binary cannot be executed
            ExternalToolTimeout: If gs runs longer than the timeout
            ExternalToolFailure: On a non-zero exit or missing output
        """
        try:
            result = subprocess.run(
                self.command(input_path, output_path, setting),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            discard(output_path)
            raise ExternalToolTimeout(f"Ghostscript timed out after {self.timeout:.0f}s") from e
        except OSError as e:
            discard(output_path)
            raise ExternalToolUnavailable(f"Could not run {self.binary}: {e}") from e

        if result.returncode != 0:
            discard(output_path)
            raise ExternalToolFailure(
                f"Ghostscript exited with {result.returncode}: {result.stderr.strip()[:500]}"
            )
        if not output_path.exists() or output_path.stat().st_size == 0:
            discard(output_path)
            raise ExternalToolFailure("Ghostscript produced no output")
        return output_path


class CompressionPipeline:
    """Decides whether a file needs shrinking and shrinks it.

    Outputs are written to fresh temporary files in work_dir (the system
    temp directory by default); the input file is never modified. Use
    cleanup() to remove the output once it has been uploaded.
    """

    def __init__(
        self,
        settings: CompressionSettings | None = None,
        *,
        levels: Sequence[QualityLevel] = DEFAULT_QUALITY_LEVELS,
        tool: Ghostscript | None = None,
        work_dir: Path | str | None = None,
    ) -> None:
        self.settings = settings or CompressionSettings()
        self.levels = tuple(levels)
        self.tool = tool or Ghostscript(
            self.settings.ghostscript_binary, self.settings.timeout_seconds
        )
        self.work_dir = Path(work_dir) if work_dir else None

    def needs_compression(self, size: int) -> bool:
        return size > self.settings.threshold_bytes

    def _temp_path(self, source: Path, suffix: str) -> Path:
        fd, name = tempfile.mkstemp(
            prefix=f"{source.stem}_", suffix=suffix, dir=self.work_dir
        )
        os.close(fd)
        return Path(name)

    def maybe_compress(self, file_path: Path | str, mime_type: str | None) -> CompressionResult:
        """Compress file_path if it is over the threshold and of a supported type."""
        file_path = Path(file_path)
        size = file_path.stat().st_size
        logger.info(f"Checking {file_path.name} ({_mb(size)}) for compression")

        if not self.needs_compression(size):
            logger.debug(f"{file_path.name} is under the threshold, leaving as is")
            return unchanged(file_path, size)

        mime = (mime_type or "").lower()
        if "pdf" in mime:
            return self.compress_pdf(file_path, size)
        if "image" in mime:
            return self.compress_image(file_path, mime, size)

        logger.info(f"Type {mime_type} does not support compression")
        return unchanged(file_path, size)

    def compress_pdf(self, file_path: Path, size: int) -> CompressionResult:
        if not self.tool.available():
            logger.debug(f"Skipping compression of {file_path.name}: Ghostscript unavailable")
            return unchanged(file_path, size)

        def make_attempt(level: QualityLevel) -> Attempt:
            def run() -> Path:
                output = self._temp_path(file_path, f"_compressed_{level.name}.pdf")
                return self.tool.compress(file_path, output, level.setting)

            return run

        return progressive_search(
            file_path,
            size,
            [(level, make_attempt(level)) for level in self.levels],
            target_bytes=self.settings.target_bytes,
            min_output_bytes=self.settings.min_output_bytes,
        )

    def compress_image(self, file_path: Path, mime_type: str, size: int) -> CompressionResult:
        """Downscale to the maximum dimension and re-encode once.

        PNG stays PNG; every other format is written as JPEG, in which case the
        result carries mime_type="image/jpeg".
        """
        is_png = "png" in mime_type
        output_mime = "image/png" if is_png else "image/jpeg"
        output = self._temp_path(file_path, "_compressed.png" if is_png else "_compressed.jpg")
        limit = self.settings.image_max_dimension
        max_pixels = self.settings.image_max_pixels

        # Pillow's decompression-bomb guard is process-wide and only raises
        # above twice this value, so the bound is also checked below.
        Image.MAX_IMAGE_PIXELS = max_pixels

        try:
            with Image.open(file_path) as img:
                logger.info(f"Image {file_path.name}: {img.width}x{img.height}, {img.format}")
                if img.width * img.height > max_pixels:
                    discard(output)
                    logger.warning(
                        f"Image {file_path.name} exceeds {max_pixels} pixels, uploading as is"
                    )
                    return unchanged(file_path, size)
                if img.width > limit or img.height > limit:
                    img.thumbnail((limit, limit), Image.LANCZOS)
                if is_png:
                    img.save(output, format="PNG", optimize=True, compress_level=9)
                else:
                    if img.mode not in ("RGB", "L"):
                        img = img.convert("RGB")
                    img.save(
                        output,
                        format="JPEG",
                        quality=self.settings.image_quality,
                        optimize=True,
                        progressive=True,
                    )
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            discard(output)
            logger.info(f"Image compression not possible for {file_path.name}: {e}")
            return unchanged(file_path, size)

        final_size = output.stat().st_size
        if 0 < final_size < size:
            logger.info(f"Image compressed: {_mb(size)} -> {_mb(final_size)}")
            return CompressionResult(
                final_path=output,
                compressed=True,
                original_size=size,
                final_size=final_size,
                mime_type=output_mime if output_mime != mime_type else None,
            )

        discard(output)
        logger.info(f"Image {file_path.name} was already optimized")
        return unchanged(file_path, size)

    def cleanup(self, result: CompressionResult | None, original_path: Path | str) -> None:
        """Remove a compressed output. The original file is never touched."""
        if result is None or not result.compressed:
            return
        if Path(result.final_path) == Path(original_path):
            return
        discard(result.final_path)
        logger.debug(f"Removed temporary compressed file {result.final_path}")
