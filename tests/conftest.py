"""Shared fixtures for the invoice_sync test suite."""

from __future__ import annotations

import base64
import io
import json
import threading
import zipfile
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest
import requests
from googleapiclient.errors import HttpError

from invoice_sync.config import Settings
from invoice_sync.credential_store import CredentialStore

GMAIL = "https://gmail.googleapis.com/gmail/v1/users/me"


def make_response(
    status_code: int = 200,
    json_data: Any = None,
    text: str = "",
    headers: dict[str, str] | None = None,
) -> MagicMock:
    """A requests.Response stand-in."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = json_data if json_data is not None else {}
    resp.text = text or json.dumps(json_data or {})
    resp.content = resp.text.encode("utf-8")
    resp.headers = headers or {}
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    return resp


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def build_zip(entries: dict[str, bytes | None], compression: int = zipfile.ZIP_DEFLATED) -> bytes:
    """Build a ZIP in memory; a ``None`` value writes a directory entry."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=compression) as archive:
        for name, content in entries.items():
            if content is None:
                archive.writestr(name if name.endswith("/") else f"{name}/", b"")
            else:
                archive.writestr(name, content)
    return buffer.getvalue()


class FakeDriveRequest:
    def __init__(self, drive: "FakeDrive", body: dict, media_body, fields: str) -> None:
        self.drive = drive
        self.body = body
        self.media_body = media_body
        self.fields = fields

    def execute(self) -> dict:
        return self.drive.receive(self)


class FakeDrive:
    """Stands in for ``googleapiclient.discovery.build``; names in ``reject`` get a 500."""

    def __init__(self, reject: set[str] | None = None, missing_id: set[str] | None = None) -> None:
        self.reject = reject or set()
        self.missing_id = missing_id or set()
        self.failures: dict[str, Exception] = {}
        self.uploads: list[str] = []
        self.requests: list[FakeDriveRequest] = []
        self._lock = threading.Lock()

    def __call__(self, service_name: str, version: str, **kwargs) -> "FakeDrive":
        assert (service_name, version) == ("drive", "v3")
        return self

    def files(self) -> "FakeDrive":
        return self

    def create(self, body: dict, media_body, fields: str) -> FakeDriveRequest:
        return FakeDriveRequest(self, body, media_body, fields)

    def receive(self, request: FakeDriveRequest) -> dict:
        name = request.body["name"]
        with self._lock:
            self.uploads.append(name)
            self.requests.append(request)
        if name in self.failures:
            raise self.failures[name]
        if name in self.reject:
            raise HttpError(SimpleNamespace(status=500, reason="backend error"), b"backend error")
        if name in self.missing_id:
            return {"kind": "drive#file"}
        return {"id": f"drive-{name}", "webViewLink": f"https://drive.example.com/{name}"}

    def request_for(self, name: str) -> FakeDriveRequest:
        return next(request for request in self.requests if request.body["name"] == name)


class FakeGmail:
    """Routes Gmail REST calls for a fixed set of messages."""

    def __init__(self, messages: dict[str, dict], attachments: dict[str, bytes]) -> None:
        self.messages = messages
        self.attachments = attachments
        self.failing_attachments: set[str] = set()
        self.modified: list[str] = []
        self.list_params: dict | None = None

    def __call__(self, method: str, url: str, **kwargs) -> MagicMock:
        if method == "GET" and url == f"{GMAIL}/messages":
            self.list_params = kwargs.get("params")
            return make_response(200, {"messages": [{"id": mid} for mid in self.messages]})
        if method == "POST" and url.endswith("/modify"):
            message_id = url.split("/")[-2]
            assert kwargs["json"] == {"removeLabelIds": ["UNREAD"]}
            self.modified.append(message_id)
            return make_response(200, {"id": message_id})
        if "/attachments/" in url:
            attachment_id = url.rsplit("/", 1)[-1]
            if attachment_id in self.failing_attachments:
                return make_response(500, text="attachment unavailable")
            return make_response(200, {"data": b64url(self.attachments[attachment_id])})
        message_id = url.rsplit("/", 1)[-1]
        return make_response(200, self.messages[message_id])


def gmail_message(
    message_id: str,
    *,
    sender: str = "billing@acme.com",
    date: str = "2024-03-01",
    subject: str = "Invoice #4521",
    parts: list[dict] | None = None,
) -> dict:
    return {
        "id": message_id,
        "threadId": f"thread-{message_id}",
        "payload": {
            "mimeType": "multipart/mixed",
            "headers": [
                {"name": "From", "value": sender},
                {"name": "Date", "value": date},
                {"name": "Subject", "value": subject},
            ],
            "parts": parts or [],
        },
    }


def attachment_part(filename: str, attachment_id: str, mime_type: str = "application/pdf") -> dict:
    return {
        "filename": filename,
        "mimeType": mime_type,
        "body": {"attachmentId": attachment_id, "size": 10},
    }


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        GOOGLE_CLIENT_ID="client-id",
        GOOGLE_CLIENT_SECRET="client-secret",
        GOOGLE_REDIRECT_URI="http://localhost:3000/auth/callback",
        GOOGLE_DRIVE_FOLDER_ID="folder-123",
        GOOGLE_SHEET_ID="sheet-456",
        TOKEN_DB_PATH=tmp_path / "tokens.db",
        UPLOAD_MAX_WORKERS=2,
    )


@pytest.fixture
def api_session() -> MagicMock:
    """The authorized session handed out by the credential store."""
    return MagicMock(spec=requests.Session)


@pytest.fixture
def credentials(api_session: MagicMock) -> MagicMock:
    store = MagicMock(spec=CredentialStore)
    store.get_authorized_client.return_value = api_session
    store.get_credentials.return_value = MagicMock(name="google-credentials")
    return store


@pytest.fixture
def fake_drive(monkeypatch) -> FakeDrive:
    drive = FakeDrive()
    monkeypatch.setattr("invoice_sync.drive_client.build", drive)
    return drive
