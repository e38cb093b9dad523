"""Parse Drive folder ids out of shared links."""

from __future__ import annotations

import re

from .errors import InvalidFolderLink

FOLDER_ID_PATTERNS = (
    re.compile(r"/folders/([a-zA-Z0-9_-]+)"),
    re.compile(r"[?&]id=([a-zA-Z0-9_-]+)"),
    re.compile(r"/d/([a-zA-Z0-9_-]+)"),
)
_ID_CHARS_RE = re.compile(r"[a-zA-Z0-9_-]+")

# Bare ids shorter than this are treated as typos rather than folder ids.
MIN_BARE_ID_LENGTH = 11


def extract_folder_id(link: str | None) -> str:
    """Folder id from a link such as ``https://drive.google.com/drive/folders/<id>``.

    Accepted shapes, tried in order: ``/folders/<id>``, ``?id=<id>``,
    ``/d/<id>``, then the last path segment on its own when it is long enough.
    """
    if not link or not link.strip():
        raise InvalidFolderLink("Drive folder link is required")
    link = link.strip()

    for pattern in FOLDER_ID_PATTERNS:
        match = pattern.search(link)
        if match:
            return match.group(1)

    candidate = link.rstrip("/").split("/")[-1].split("?")[0]
    if len(candidate) >= MIN_BARE_ID_LENGTH and _ID_CHARS_RE.fullmatch(candidate):
        return candidate

    raise InvalidFolderLink("Invalid Google Drive folder link format")
