"""Bounded streaming download of remotely hosted archives."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional
from urllib.parse import urlparse

import requests

from .errors import (
    DownloadFailed,
    DownloadRejected,
    DownloadTimeout,
    InvalidRequest,
    NotFound,
)
from .models import DownloadProgress
from .utils import format_bytes

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

ProgressCallback = Callable[[DownloadProgress], None]


def validate_source_url(url: str | None) -> str:
    """Reject blank or non-absolute URLs before any network access."""
    if not url or not url.strip():
        raise InvalidRequest("fileUrl is required")
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidRequest("Invalid URL format")
    return url


class ProgressLogger:
    """Logs download progress once per ``step`` percent, or per chunk budget when size is unknown."""

    def __init__(self, step: int = 10, unknown_every: int = 10 * 1024 * 1024) -> None:
        self.step = step
        self.unknown_every = unknown_every
        self._next_percentage = step
        self._next_unknown = unknown_every

    def __call__(self, progress: DownloadProgress) -> None:
        percentage = progress.percentage
        if percentage is None:
            if progress.downloaded >= self._next_unknown:
                logger.info("Download progress: %s (size unknown)", format_bytes(progress.downloaded))
                self._next_unknown += self.unknown_every
            return
        if percentage >= self._next_percentage:
            logger.info(
                "Download progress: %s%% (%s/%s)",
                percentage,
                format_bytes(progress.downloaded),
                format_bytes(progress.total or 0),
            )
            while self._next_percentage <= percentage:
                self._next_percentage += self.step


class ArchiveDownloader:
    """Fetch a remote file into memory under a byte cap and an overall deadline."""

    def __init__(
        self,
        max_bytes: int,
        timeout: float,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_bytes = max_bytes
        self.timeout = timeout
        self.session = session or requests.Session()
        self.clock = clock

    def download(
        self,
        url: str,
        max_bytes: Optional[int] = None,
        timeout: Optional[float] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> bytes:
        url = validate_source_url(url)
        max_bytes = max_bytes if max_bytes is not None else self.max_bytes
        timeout = timeout if timeout is not None else self.timeout
        deadline = self.clock() + timeout

        try:
            with self.session.get(url, stream=True, timeout=timeout) as resp:
                self._check_status(resp)
                total = self._declared_length(resp)
                if total is not None and total > max_bytes:
                    raise DownloadRejected(
                        f"File too large: {format_bytes(total)} exceeds limit of {format_bytes(max_bytes)}"
                    )

                buffer = bytearray()
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    if self.clock() > deadline:
                        raise DownloadTimeout(
                            "Download timeout - file too large or server too slow"
                        )
                    if not chunk:
                        continue
                    buffer.extend(chunk)
                    if len(buffer) > max_bytes:
                        raise DownloadRejected(
                            f"File too large: exceeded limit of {format_bytes(max_bytes)}"
                        )
                    if on_progress is not None:
                        on_progress(DownloadProgress(downloaded=len(buffer), total=total))
        except requests.Timeout as exc:
            raise DownloadTimeout("Download timeout - file too large or server too slow") from exc
        except requests.RequestException as exc:
            raise DownloadFailed(f"Download failed: {exc}") from exc

        logger.info("File downloaded successfully: %s", format_bytes(len(buffer)))
        return bytes(buffer)

    @staticmethod
    def _check_status(resp: requests.Response) -> None:
        if resp.status_code == 404:
            raise NotFound("File not found at the provided URL")
        if resp.status_code >= 400:
            raise DownloadRejected(f"Failed to download file: HTTP {resp.status_code}")

    @staticmethod
    def _declared_length(resp: requests.Response) -> Optional[int]:
        raw = resp.headers.get("Content-Length")
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            return None
