"""Run orchestration: source → name → distribute → audit."""

from __future__ import annotations

import logging
from functools import partial
from typing import Optional

from .downloader import ArchiveDownloader, ProgressLogger, validate_source_url
from .drive_client import DriveClient
from .folder_link import extract_folder_id
from .models import (
    ArchiveReport,
    AuditEntry,
    BatchOutcome,
    DistributionResult,
    EmailContext,
    ItemFailure,
    RunSummary,
)
from .naming import derive_name, extract_invoice_number
from .sheets_client import SheetsClient
from .sources import ArchiveSource, FileItem, Source, SourceUnit
from .utils import isoformat_utc, utcnow

logger = logging.getLogger(__name__)


def _context_name(item: FileItem, context: EmailContext) -> str:
    return derive_name(item.name, context)


def distribute_unit(
    drive: DriveClient, unit: SourceUnit, folder_id: Optional[str]
) -> BatchOutcome[DistributionResult]:
    """Upload one unit's files, naming them from the unit's message context."""
    name_for = None
    if unit.context is not None:
        name_for = partial(_context_name, context=unit.context)
    return drive.distribute_batch(unit.files, folder_id, name_for=name_for)


def build_audit_entry(unit: SourceUnit, results: list[DistributionResult]) -> AuditEntry:
    context = unit.context
    sender = context.sender if context else ""
    date = context.date if context else ""
    subject = context.subject if context else unit.label
    return AuditEntry(
        sender=sender,
        date=date,
        subject=subject,
        invoice_number=extract_invoice_number(subject),
        remote_ids=[result.remote_id for result in results],
        processed_at=isoformat_utc(utcnow()),
    )


class ScanPipeline:
    """One mailbox scan: fetch, distribute per message, then log all rows at once.

    Known gaps, both accepted:
    messages are marked read while being fetched, so a message whose upload
    fails is not retried; and if the final audit append fails the uploaded
    files have no audit row.
    """

    def __init__(self, source: Source, drive: DriveClient, sheets: SheetsClient) -> None:
        self.source = source
        self.drive = drive
        self.sheets = sheets

    def run(self) -> RunSummary:
        folder_id = self.drive.ensure_destination(self.drive.settings.google_drive_folder_id)
        self.sheets.ensure_destination()

        units = self.source.units()
        logger.info("Processing %s emails", len(units))

        entries: list[AuditEntry] = []
        failures: list[ItemFailure] = []
        for unit in units:
            outcome = distribute_unit(self.drive, unit, folder_id)
            failures.extend(outcome.failed)
            entries.append(build_audit_entry(unit, outcome.succeeded))

        if entries:
            self.sheets.record(entries)

        return RunSummary(processed=len(entries), entries=entries, failures=failures)


class ArchivePipeline:
    """Download a ZIP, flatten it, and upload every member into a Drive folder."""

    def __init__(self, downloader: ArchiveDownloader, drive: DriveClient) -> None:
        self.downloader = downloader
        self.drive = drive

    def process(self, source_url: str, folder_link: str) -> ArchiveReport:
        source_url = validate_source_url(source_url)
        folder_id = extract_folder_id(folder_link)

        logger.info("Starting file processing for URL: %s", source_url)
        source = ArchiveSource(source_url, self.downloader, on_progress=ProgressLogger())
        results: list[DistributionResult] = []
        failures: list[ItemFailure] = []
        total_files = 0
        total_size = 0
        for unit in source.units():
            logger.info("Uploading %s files to Google Drive...", len(unit.files))
            outcome = distribute_unit(self.drive, unit, folder_id)
            results.extend(outcome.succeeded)
            failures.extend(unit.failures)
            failures.extend(outcome.failed)
            total_files += len(unit.files)
            total_size += unit.total_size

        logger.info("File processing completed: %s of %s files uploaded", len(results), total_files)
        return ArchiveReport(
            folder_id=folder_id,
            results=results,
            total_files=total_files,
            total_size=total_size,
            failures=failures,
        )
