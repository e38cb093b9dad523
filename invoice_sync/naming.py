"""File naming and MIME classification."""

from __future__ import annotations

import re
from email.utils import parseaddr
from typing import Optional

from .models import EmailContext
from .utils import parse_message_date

DEFAULT_MIME_TYPE = "application/octet-stream"

MIME_TYPES = {
    # Images
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    # Documents
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "txt": "text/plain",
    "csv": "text/csv",
    # Videos
    "mp4": "video/mp4",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
    "wmv": "video/x-ms-wmv",
    "flv": "video/x-flv",
    "webm": "video/webm",
    "mkv": "video/x-matroska",
    # Audio
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "flac": "audio/flac",
    "aac": "audio/aac",
    # Archives
    "zip": "application/zip",
    "rar": "application/x-rar-compressed",
    "7z": "application/x-7z-compressed",
    "tar": "application/x-tar",
    "gz": "application/gzip",
}

INVOICE_NUMBER_RE = re.compile(r"invoice\s*#?(\d+)", re.IGNORECASE)
_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")


def file_extension(name: str) -> Optional[str]:
    """Text after the last dot of the base name, or None."""
    base = name.rsplit("/", 1)[-1]
    if "." not in base:
        return None
    ext = base.rsplit(".", 1)[1]
    return ext or None


def guess_mime_type(name: str) -> str:
    ext = file_extension(name)
    if ext is None:
        return DEFAULT_MIME_TYPE
    return MIME_TYPES.get(ext.lower(), DEFAULT_MIME_TYPE)


def extract_invoice_number(subject: str | None) -> Optional[str]:
    match = INVOICE_NUMBER_RE.search(subject or "")
    return match.group(1) if match else None


def sanitize_sender(sender: str) -> str:
    """Local part of the sender address with non-alphanumerics replaced by '_'."""
    _, address = parseaddr(sender or "")
    address = address or sender or ""
    local_part = address.split("@", 1)[0]
    return _NON_ALNUM_RE.sub("_", local_part)


def iso_date(value: str) -> str:
    parsed = parse_message_date(value)
    if parsed is None:
        return "unknown"
    return parsed.date().isoformat()


def derive_name(file_name: str, context: EmailContext | None = None) -> str:
    """Structured Drive name ``{sender}_{invoice}_{date}.{ext}``.

    Without a message context the original name is returned untouched.
    """
    if context is None:
        return file_name
    sender = sanitize_sender(context.sender)
    invoice_number = extract_invoice_number(context.subject) or "unknown"
    ext = file_extension(file_name) or "file"
    return f"{sender}_{invoice_number}_{iso_date(context.date)}.{ext}"
