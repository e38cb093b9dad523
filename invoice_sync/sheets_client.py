"""Append audit rows to a Google Sheet."""

from __future__ import annotations

import logging
from typing import Sequence
from urllib.parse import quote

from .config import Settings
from .credential_store import CredentialStore
from .errors import MissingLogDestination
from .models import AuditEntry, RecordOutcome

logger = logging.getLogger(__name__)


class SheetsClient:
    """Audit recorder: one row per processed message, appended in a single call."""

    SHEETS_BASE = "https://sheets.googleapis.com/v4/spreadsheets"

    def __init__(self, settings: Settings, credentials: CredentialStore) -> None:
        self.settings = settings
        self.credentials = credentials

    def ensure_destination(self) -> str:
        sheet_id = self.settings.google_sheet_id
        if not sheet_id:
            raise MissingLogDestination("GOOGLE_SHEET_ID not configured")
        return sheet_id

    def record(self, entries: Sequence[AuditEntry]) -> RecordOutcome:
        """Append all entries at once; the batch lands completely or not at all."""
        sheet_id = self.ensure_destination()
        session = self.credentials.get_authorized_client()
        sheet_range = self.settings.google_sheet_range

        url = f"{self.SHEETS_BASE}/{sheet_id}/values/{quote(sheet_range, safe='')}:append"
        response = session.post(
            url,
            params={"valueInputOption": "USER_ENTERED", "insertDataOption": "INSERT_ROWS"},
            json={"values": [entry.as_row() for entry in entries]},
            timeout=self.settings.request_timeout_seconds,
        )
        if response.status_code >= 400:
            logger.error("Sheets append failed (%s): %s", response.status_code, response.text)
            response.raise_for_status()

        updates = response.json().get("updates") or {}
        logger.info("Appended %s rows to sheet %s", len(entries), sheet_id)
        return RecordOutcome(
            spreadsheet_id=sheet_id,
            updated_range=updates.get("updatedRange"),
            updated_rows=int(updates.get("updatedRows") or len(entries)),
        )
