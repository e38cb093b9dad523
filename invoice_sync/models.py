"""Typed containers shared across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class EmailContext:
    """Message fields that drive structured file naming."""

    sender: str
    date: str
    subject: str


@dataclass(frozen=True)
class SourceAttachment:
    """Attachment bytes pulled from a mailbox message."""

    name: str
    mime_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class SourceMessage:
    """An unread invoice-like message together with its attachments."""

    id: str
    thread_id: str
    sender: str
    date: str
    subject: str
    attachments: tuple[SourceAttachment, ...] = ()

    @property
    def context(self) -> EmailContext:
        return EmailContext(sender=self.sender, date=self.date, subject=self.subject)


@dataclass(frozen=True)
class ExtractedFile:
    """A member file pulled out of an archive."""

    name: str
    path: str
    mime_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class ItemFailure:
    """One item that was skipped inside a batch."""

    name: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "reason": self.reason}


@dataclass
class BatchOutcome(Generic[T]):
    """Partial result of a batch: what went through and what was skipped."""

    succeeded: list[T] = field(default_factory=list)
    failed: list[ItemFailure] = field(default_factory=list)

    @property
    def failure_count(self) -> int:
        return len(self.failed)


@dataclass
class ExtractionResult:
    files: list[ExtractedFile] = field(default_factory=list)
    failed: list[ItemFailure] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def total_size(self) -> int:
        return sum(item.size for item in self.files)


@dataclass
class DownloadProgress:
    downloaded: int
    total: Optional[int]

    @property
    def percentage(self) -> Optional[int]:
        if not self.total:
            return None
        return round(self.downloaded * 100 / self.total)


@dataclass
class DistributionResult:
    """A file that landed in Drive."""

    original_name: str
    remote_id: str
    mime_type: str
    uploaded_name: str
    size: int
    uploaded_at: str
    remote_link: Optional[str] = None
    path: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "fileName": self.original_name,
            "driveFileId": self.remote_id,
            "uploadedName": self.uploaded_name,
            "size": self.size,
            "mimeType": self.mime_type,
            "uploadedAt": self.uploaded_at,
        }
        if self.remote_link:
            payload["webViewLink"] = self.remote_link
        if self.path:
            payload["path"] = self.path
        return payload


@dataclass
class AuditEntry:
    """One audit row per processed message."""

    sender: str
    date: str
    subject: str
    invoice_number: Optional[str]
    remote_ids: list[str]
    processed_at: str

    def as_row(self) -> list[str]:
        """Column order: sender, date, subject, invoice number, ids, processed at."""
        return [
            self.sender,
            self.date,
            self.subject,
            self.invoice_number or "",
            ", ".join(self.remote_ids),
            self.processed_at,
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.sender,
            "date": self.date,
            "subject": self.subject,
            "invoiceNumber": self.invoice_number,
            "driveFileIds": list(self.remote_ids),
            "processedAt": self.processed_at,
        }


@dataclass
class RecordOutcome:
    spreadsheet_id: str
    updated_range: Optional[str]
    updated_rows: int


@dataclass
class RunSummary:
    """Result of one mailbox scan."""

    processed: int
    entries: list[AuditEntry]
    failures: list[ItemFailure] = field(default_factory=list)


@dataclass
class ArchiveReport:
    """Result of one remote-archive run."""

    folder_id: str
    results: list[DistributionResult]
    total_files: int
    total_size: int
    failures: list[ItemFailure] = field(default_factory=list)
