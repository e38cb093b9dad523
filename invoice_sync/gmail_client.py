"""Gmail helper focused on invoice message + attachment retrieval."""

from __future__ import annotations

import base64
import logging
from typing import Any, Iterator, List

import requests
from requests import Response

from .config import Settings
from .credential_store import CredentialStore
from .invoice_filter import InvoiceFilter
from .models import BatchOutcome, ItemFailure, SourceAttachment, SourceMessage
from .naming import DEFAULT_MIME_TYPE, guess_mime_type
from .sources import SourceUnit

logger = logging.getLogger(__name__)


def decode_base64url(data: str) -> bytes:
    """Gmail returns attachment bodies as unpadded base64url."""
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded)


def header_value(headers: list[dict[str, Any]], name: str) -> str:
    """Case-insensitive header lookup, '' when absent."""
    wanted = name.lower()
    for header in headers:
        if (header.get("name") or "").lower() == wanted:
            return header.get("value") or ""
    return ""


def iter_attachment_parts(part: dict[str, Any]) -> Iterator[dict[str, Any]]:
    """Walk the MIME tree, yielding parts that carry a filename and attachment id."""
    body = part.get("body") or {}
    if part.get("filename") and body.get("attachmentId"):
        yield part
    for child in part.get("parts") or []:
        yield from iter_attachment_parts(child)


class GmailClient:
    """Mailbox source: unread invoice-like messages with their attachments.

    Each message is marked read as soon as its attachments are downloaded,
    before anything is uploaded or logged. A message that later fails to
    distribute is therefore not picked up again (at-most-once processing).
    """

    GMAIL_BASE = "https://gmail.googleapis.com/gmail/v1/users/me"

    def __init__(
        self,
        settings: Settings,
        credentials: CredentialStore,
        invoice_filter: InvoiceFilter | None = None,
    ) -> None:
        self.settings = settings
        self.credentials = credentials
        self.invoice_filter = invoice_filter or InvoiceFilter(settings.invoice_subject_keywords)
        self.timeout = settings.request_timeout_seconds

    def units(self) -> list[SourceUnit]:
        """Pending messages as pipeline units, each carrying its naming context."""
        return [
            SourceUnit(
                label=message.subject or message.id,
                files=list(message.attachments),
                context=message.context,
                message=message,
            )
            for message in self.fetch_pending(self.settings.scan_max_messages)
        ]

    def fetch_pending(self, limit: int | None = None) -> list[SourceMessage]:
        return self.collect_pending(limit).succeeded

    def collect_pending(self, limit: int | None = None) -> BatchOutcome[SourceMessage]:
        """Fetch up to ``limit`` unread invoice messages, marking each one read."""
        session = self.credentials.get_authorized_client()
        limit = limit or self.settings.scan_max_messages
        message_ids = self._list_message_ids(session, limit)
        logger.info("Found %s matching emails", len(message_ids))

        outcome: BatchOutcome[SourceMessage] = BatchOutcome()
        for message_id in message_ids:
            try:
                message = self._fetch_message(session, message_id)
                if message is None:
                    continue
                self._mark_read(session, message_id)
            except (requests.RequestException, ValueError, KeyError) as exc:
                logger.error("Failed to fetch message %s; leaving it unread: %s", message_id, exc)
                outcome.failed.append(ItemFailure(name=message_id, reason=str(exc)))
                continue
            outcome.succeeded.append(message)

        return outcome

    def _list_message_ids(self, session: requests.Session, limit: int) -> List[str]:
        params = {"q": self.invoice_filter.gmail_query(), "maxResults": limit}
        payload = self._request(session, "GET", f"{self.GMAIL_BASE}/messages", params=params).json()
        return [raw["id"] for raw in payload.get("messages") or [] if raw.get("id")][:limit]

    def _fetch_message(self, session: requests.Session, message_id: str) -> SourceMessage | None:
        raw = self._request(
            session,
            "GET",
            f"{self.GMAIL_BASE}/messages/{message_id}",
            params={"format": "full"},
        ).json()
        payload = raw.get("payload")
        if not payload:
            logger.warning("Message %s has no payload; skipping", message_id)
            return None

        headers = payload.get("headers") or []
        subject = header_value(headers, "Subject")
        if not self.invoice_filter.matches_subject(subject):
            logger.debug("Message %s subject no longer matches; skipping", message_id)
            return None

        attachments = [
            self._download_attachment(session, message_id, part)
            for part in iter_attachment_parts(payload)
        ]
        return SourceMessage(
            id=message_id,
            thread_id=raw.get("threadId") or "",
            sender=header_value(headers, "From"),
            date=header_value(headers, "Date"),
            subject=subject,
            attachments=tuple(attachments),
        )

    def _download_attachment(
        self, session: requests.Session, message_id: str, part: dict[str, Any]
    ) -> SourceAttachment:
        attachment_id = part["body"]["attachmentId"]
        url = f"{self.GMAIL_BASE}/messages/{message_id}/attachments/{attachment_id}"
        body = self._request(session, "GET", url).json()
        filename = part["filename"]
        mime_type = part.get("mimeType")
        if not mime_type or mime_type == DEFAULT_MIME_TYPE:
            mime_type = guess_mime_type(filename)
        content = decode_base64url(body.get("data") or "")
        logger.debug("Downloaded attachment %s (%s bytes) from %s", filename, len(content), message_id)
        return SourceAttachment(name=filename, mime_type=mime_type, content=content)

    def _mark_read(self, session: requests.Session, message_id: str) -> None:
        self._request(
            session,
            "POST",
            f"{self.GMAIL_BASE}/messages/{message_id}/modify",
            json={"removeLabelIds": ["UNREAD"]},
        )
        logger.info("Marked message %s as read", message_id)

    def _request(self, session: requests.Session, method: str, url: str, **kwargs) -> Response:
        resp = session.request(method, url, timeout=self.timeout, **kwargs)
        if resp.status_code >= 400:
            logger.error("Gmail request failed (%s): %s", resp.status_code, resp.text)
            resp.raise_for_status()
        return resp
