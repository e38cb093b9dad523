"""Google Drive uploader."""

from __future__ import annotations

import io
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Sequence

import httplib2
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from .config import Settings
from .credential_store import CredentialStore
from .errors import MissingDestination, UploadFailed
from .models import BatchOutcome, DistributionResult, ExtractedFile, ItemFailure
from .sources import FileItem
from .utils import format_bytes, isoformat_utc, utcnow

logger = logging.getLogger(__name__)

NameFor = Callable[[FileItem], str]


class DriveClient:
    """Upload file items into a Drive folder, skipping the ones that fail."""

    FIELDS = "id, webViewLink"

    def __init__(self, settings: Settings, credentials: CredentialStore) -> None:
        self.settings = settings
        self.credentials = credentials
        self.max_workers = settings.upload_max_workers

    @staticmethod
    def ensure_destination(folder_id: Optional[str]) -> str:
        if not folder_id or not folder_id.strip():
            raise MissingDestination("GOOGLE_DRIVE_FOLDER_ID not configured")
        return folder_id.strip()

    def distribute(
        self,
        files: Sequence[FileItem],
        folder_id: Optional[str],
        name_for: NameFor | None = None,
    ) -> list[DistributionResult]:
        return self.distribute_batch(files, folder_id, name_for).succeeded

    def distribute_batch(
        self,
        files: Sequence[FileItem],
        folder_id: Optional[str],
        name_for: NameFor | None = None,
    ) -> BatchOutcome[DistributionResult]:
        """Upload every file; results come back in attempt order.

        A file that Drive rejects is logged and reported in ``failed``; it never
        aborts the rest of the batch and is not retried.
        """
        folder_id = self.ensure_destination(folder_id)
        outcome: BatchOutcome[DistributionResult] = BatchOutcome()
        if not files:
            return outcome

        credentials = self.credentials.get_credentials()
        workers = min(self.max_workers, len(files))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self._upload_one, credentials, item, folder_id, name_for)
                for item in files
            ]
            for item, future in zip(files, futures):
                try:
                    outcome.succeeded.append(future.result())
                except (HttpError, httplib2.HttpLib2Error, OSError, UploadFailed) as exc:
                    logger.error("Failed to upload %s: %s", item.name, exc)
                    outcome.failed.append(ItemFailure(name=item.name, reason=str(exc)))

        if outcome.failed:
            logger.warning(
                "Uploaded %s of %s files to folder %s",
                len(outcome.succeeded),
                len(files),
                folder_id,
            )
        return outcome

    @staticmethod
    def _service(credentials: Credentials):
        # httplib2 connections are not thread-safe, so every upload gets its own service.
        return build("drive", "v3", credentials=credentials, cache_discovery=False)

    def _upload_one(
        self,
        credentials: Credentials,
        item: FileItem,
        folder_id: str,
        name_for: NameFor | None,
    ) -> DistributionResult:
        uploaded_name = name_for(item) if name_for else item.name
        metadata = {"name": uploaded_name, "mimeType": item.mime_type, "parents": [folder_id]}
        media = MediaIoBaseUpload(io.BytesIO(item.content), mimetype=item.mime_type, resumable=False)

        logger.info("Uploading file: %s (%s)", uploaded_name, format_bytes(item.size))
        created = (
            self._service(credentials)
            .files()
            .create(body=metadata, media_body=media, fields=self.FIELDS)
            .execute()
        )
        file_id = created.get("id") if isinstance(created, dict) else None
        if not file_id:
            raise UploadFailed("No file ID returned")

        logger.info("Uploaded %s → %s", item.name, file_id)
        return DistributionResult(
            original_name=item.name,
            remote_id=file_id,
            mime_type=item.mime_type,
            uploaded_name=uploaded_name,
            size=item.size,
            uploaded_at=isoformat_utc(utcnow()),
            remote_link=created.get("webViewLink"),
            path=item.path if isinstance(item, ExtractedFile) else None,
        )
