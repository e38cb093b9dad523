"""Entry points: authorization, mailbox scan and remote-archive processing."""

from __future__ import annotations

import logging
from typing import Any

import requests

from .config import Settings
from .credential_store import CredentialStore
from .downloader import ArchiveDownloader
from .drive_client import DriveClient
from .errors import AuthError, InvalidRequest, InvoiceSyncError
from .gmail_client import GmailClient
from .pipeline import ArchivePipeline, ScanPipeline
from .sheets_client import SheetsClient

logger = logging.getLogger(__name__)

VALIDATION = "validation"
EXECUTION = "execution"


class InvoiceSyncApp:
    """Wires the collaborators for one process around a single credential store."""

    def __init__(
        self,
        settings: Settings,
        credentials: CredentialStore,
        gmail: GmailClient,
        drive: DriveClient,
        sheets: SheetsClient,
        downloader: ArchiveDownloader,
    ) -> None:
        self.settings = settings
        self.credentials = credentials
        self.gmail = gmail
        self.drive = drive
        self.sheets = sheets
        self.downloader = downloader

    @classmethod
    def from_settings(cls, settings: Settings) -> "InvoiceSyncApp":
        credentials = CredentialStore(settings)
        return cls(
            settings=settings,
            credentials=credentials,
            gmail=GmailClient(settings, credentials),
            drive=DriveClient(settings, credentials),
            sheets=SheetsClient(settings, credentials),
            downloader=ArchiveDownloader(
                max_bytes=settings.download_max_bytes,
                timeout=settings.download_timeout_seconds,
            ),
        )

    def start_authorization(self) -> dict[str, Any]:
        return {"url": self.credentials.authorize_url()}

    def complete_authorization(self, code: str) -> dict[str, Any]:
        try:
            self.credentials.exchange_and_save(code)
        except AuthError as exc:
            logger.error("Authorization failed: %s", exc)
            return {
                "success": False,
                "message": f"Authorization failed: {exc}. Start the authorization flow again.",
            }
        return {"success": True, "message": "Authorization successful. Tokens saved."}

    def run_scan(self) -> dict[str, Any]:
        """Process pending invoice mail; stage-level errors propagate to the caller."""
        pipeline = ScanPipeline(source=self.gmail, drive=self.drive, sheets=self.sheets)
        summary = pipeline.run()
        message = f"Processed {summary.processed} email(s)."
        if summary.failures:
            message += f" {len(summary.failures)} file(s) could not be uploaded."
        return {
            "processed": summary.processed,
            "message": message,
            "entries": [entry.to_dict() for entry in summary.entries],
            "failures": [failure.to_dict() for failure in summary.failures],
        }

    def process_remote_archive(self, source_url: str, folder_link: str) -> dict[str, Any]:
        """Download, extract and upload a ZIP; failures come back as a structured response."""
        pipeline = ArchivePipeline(downloader=self.downloader, drive=self.drive)
        try:
            report = pipeline.process(source_url, folder_link)
        except InvalidRequest as exc:
            logger.warning("Rejected archive request: %s", exc)
            return {"success": False, "message": str(exc), "errorType": VALIDATION}
        except (InvoiceSyncError, requests.RequestException) as exc:
            logger.error("File processing failed: %s", exc)
            return {
                "success": False,
                "message": f"File processing failed: {exc}",
                "errorType": EXECUTION,
            }

        uploaded = len(report.results)
        message = f"Successfully processed and uploaded {uploaded} files"
        if report.failures:
            message = (
                f"Uploaded {uploaded} files; {len(report.failures)} file(s) failed: "
                + ", ".join(failure.name for failure in report.failures)
            )
        return {
            "success": True,
            "message": message,
            "partial": bool(report.failures),
            "processedFiles": [result.to_dict() for result in report.results],
            "driveFolder": report.folder_id,
            "totalFiles": report.total_files,
            "totalSize": report.total_size,
            "failedFiles": [failure.to_dict() for failure in report.failures],
        }
