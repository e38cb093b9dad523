"""ZIP extraction into flat file items."""

from __future__ import annotations

import io
import logging
import zipfile
import zlib

from .errors import CorruptArchive
from .models import ExtractedFile, ExtractionResult, ItemFailure
from .naming import guess_mime_type
from .utils import format_bytes

logger = logging.getLogger(__name__)


def is_skipped_entry(info: zipfile.ZipInfo) -> bool:
    """Directories, dotfiles and macOS resource-fork folders are never extracted."""
    if info.is_dir():
        return True
    segments = [segment for segment in info.filename.split("/") if segment]
    if not segments:
        return True
    if info.filename.startswith(".") or segments[-1].startswith("."):
        return True
    return "__MACOSX" in segments


def extract(data: bytes) -> ExtractionResult:
    """Read every eligible member of a ZIP archive held in memory.

    Members that cannot be read (bad CRC, unsupported compression, encryption)
    are reported in ``failed`` rather than aborting the whole archive.
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as exc:
        raise CorruptArchive(f"Failed to extract ZIP file: {exc}") from exc

    result = ExtractionResult()
    with archive:
        for info in archive.infolist():
            if is_skipped_entry(info):
                continue
            try:
                content = archive.read(info)
            except (zipfile.BadZipFile, NotImplementedError, RuntimeError, zlib.error, OSError) as exc:
                logger.warning("Could not read archive member %s: %s", info.filename, exc)
                result.failed.append(ItemFailure(name=info.filename, reason=str(exc)))
                continue

            # Members are uploaded under their full path so nested files with
            # the same base name stay distinguishable.
            result.files.append(
                ExtractedFile(
                    name=info.filename,
                    path=info.filename,
                    mime_type=guess_mime_type(info.filename),
                    content=content,
                )
            )

    logger.info(
        "Extracted %s files, total size: %s",
        result.total_files,
        format_bytes(result.total_size),
    )
    return result
