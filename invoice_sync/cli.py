"""Command line entry point for the invoice → Drive pipeline."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Sequence

import requests

from .config import Settings
from .errors import AuthError, InvoiceSyncError
from .handlers import VALIDATION, InvoiceSyncApp

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Move invoice attachments and remote archives into Google Drive."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("auth-url", help="Print the Google consent URL")

    complete = subparsers.add_parser("auth-complete", help="Exchange an authorization code for tokens")
    complete.add_argument("code", help="Authorization code from the OAuth redirect")

    subparsers.add_parser("scan", help="Upload attachments of unread invoice emails and log them")

    archive = subparsers.add_parser("process-archive", help="Upload the contents of a remote ZIP")
    archive.add_argument("url", help="URL of the ZIP archive")
    archive.add_argument("folder_link", help="Shared Google Drive folder link or id")
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def emit(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2))


def run(app: InvoiceSyncApp, args: argparse.Namespace) -> int:
    if args.command == "auth-url":
        emit(app.start_authorization())
        return EXIT_OK

    if args.command == "auth-complete":
        result = app.complete_authorization(args.code)
        emit(result)
        return EXIT_OK if result["success"] else EXIT_FAILED

    if args.command == "scan":
        try:
            emit(app.run_scan())
        except AuthError as exc:
            emit({"success": False, "message": f"{exc} Run 'auth-url' to authorize."})
            return EXIT_FAILED
        except (InvoiceSyncError, requests.RequestException) as exc:
            logger.error("Scan failed: %s", exc)
            emit({"success": False, "message": f"Scan failed: {exc}"})
            return EXIT_FAILED
        return EXIT_OK

    result = app.process_remote_archive(args.url, args.folder_link)
    emit(result)
    if result["success"]:
        return EXIT_OK
    return EXIT_INVALID if result.get("errorType") == VALIDATION else EXIT_FAILED


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings()
    configure_logging(settings.log_level)
    app = InvoiceSyncApp.from_settings(settings)
    return run(app, args)


if __name__ == "__main__":
    sys.exit(main())
