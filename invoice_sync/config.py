"""Configuration management for the invoice → Drive pipeline."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env early so BaseSettings can pick values up seamlessly.
load_dotenv()

DEFAULT_SCOPES = (
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/drive.file",
    "https://www.googleapis.com/auth/spreadsheets",
)


def _split_list(value: str | Sequence[str] | None, coerce_lower: bool = True) -> list[str]:
    """Turn delimiter-separated env strings into cleaned lists."""
    if value is None:
        return []
    if isinstance(value, str):
        items = re.split(r"[;,]", value)
    else:
        items = list(value)
    cleaned: list[str] = []
    for item in items:
        trimmed = item.strip()
        if not trimmed:
            continue
        cleaned.append(trimmed.lower() if coerce_lower else trimmed)
    return cleaned


class Settings(BaseSettings):
    """App configuration derived from environment variables."""

    google_client_id: str = Field(..., alias="GOOGLE_CLIENT_ID")
    google_client_secret: str = Field(..., alias="GOOGLE_CLIENT_SECRET")
    google_redirect_uri: str = Field(..., alias="GOOGLE_REDIRECT_URI")
    google_scopes_raw: str = Field(";".join(DEFAULT_SCOPES), alias="GOOGLE_SCOPES")
    google_drive_folder_id: str | None = Field(None, alias="GOOGLE_DRIVE_FOLDER_ID")
    google_sheet_id: str | None = Field(None, alias="GOOGLE_SHEET_ID")
    google_sheet_range: str = Field("Sheet1!A:F", alias="GOOGLE_SHEET_RANGE")
    token_db_path: Path = Field(Path("data/tokens.db"), alias="TOKEN_DB_PATH")

    invoice_subject_keywords_raw: str = Field(
        "invoice;receipt", alias="INVOICE_SUBJECT_KEYWORDS"
    )
    scan_max_messages: int = Field(20, alias="SCAN_MAX_MESSAGES")

    download_max_bytes: int = Field(500 * 1024 * 1024, alias="DOWNLOAD_MAX_BYTES")
    download_timeout_seconds: float = Field(300.0, alias="DOWNLOAD_TIMEOUT_SECONDS")
    request_timeout_seconds: float = Field(30.0, alias="REQUEST_TIMEOUT_SECONDS")
    upload_max_workers: int = Field(4, alias="UPLOAD_MAX_WORKERS")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("google_drive_folder_id", "google_sheet_id", mode="before")
    @classmethod
    def _empty_str_to_none(cls, value):
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("upload_max_workers")
    @classmethod
    def _at_least_one_worker(cls, value: int) -> int:
        if value < 1:
            raise ValueError("UPLOAD_MAX_WORKERS must be at least 1.")
        return value

    @property
    def google_scopes(self) -> list[str]:
        """Scopes requested on the consent screen."""
        scopes = _split_list(self.google_scopes_raw, coerce_lower=False)
        return scopes or list(DEFAULT_SCOPES)

    @property
    def invoice_subject_keywords(self) -> list[str]:
        keywords = _split_list(self.invoice_subject_keywords_raw, coerce_lower=True)
        return keywords or ["invoice", "receipt"]
