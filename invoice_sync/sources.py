"""Source strategies feeding the shared distribute pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Protocol, Sequence, Union

from .archive import extract
from .models import EmailContext, ExtractedFile, ExtractionResult, ItemFailure, SourceAttachment

if TYPE_CHECKING:
    from .downloader import ArchiveDownloader, ProgressCallback
    from .models import SourceMessage

logger = logging.getLogger(__name__)

FileItem = Union[SourceAttachment, ExtractedFile]


@dataclass
class SourceUnit:
    """One logical unit of work: a message's attachments, or one archive's members."""

    label: str
    files: Sequence[FileItem]
    context: Optional[EmailContext] = None
    message: Optional["SourceMessage"] = None
    failures: list[ItemFailure] = field(default_factory=list)

    @property
    def total_size(self) -> int:
        return sum(item.size for item in self.files)


class Source(Protocol):
    def units(self) -> list[SourceUnit]:
        ...


class ArchiveSource:
    """Remote ZIP archive: download it, then flatten its members into one unit."""

    def __init__(
        self,
        url: str,
        downloader: "ArchiveDownloader",
        on_progress: "ProgressCallback | None" = None,
    ) -> None:
        self.url = url
        self.downloader = downloader
        self.on_progress = on_progress
        self.extraction: ExtractionResult | None = None

    def units(self) -> list[SourceUnit]:
        logger.info("Downloading ZIP file from %s", self.url)
        data = self.downloader.download(self.url, on_progress=self.on_progress)
        logger.info("Extracting ZIP contents...")
        self.extraction = extract(data)
        return [
            SourceUnit(
                label=self.url,
                files=list(self.extraction.files),
                failures=list(self.extraction.failed),
            )
        ]
