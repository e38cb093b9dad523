"""Single-account Google OAuth credential store backed by SQLite."""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Iterable, Optional

import requests
import sqlite_utils
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import AuthorizedSession, Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from .config import Settings
from .errors import AuthExchangeError, AuthRefreshError, NotAuthorizedError
from .utils import isoformat_utc, parse_iso_datetime, utcnow

logger = logging.getLogger(__name__)


def _to_naive_utc(value: datetime) -> datetime:
    # google-auth compares expiry against a naive UTC clock.
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class CredentialStore:
    """Owns the persisted token set and hands out authorized sessions.

    Loading, refreshing and persisting happen under one lock so that
    concurrent callers in this process never spend the same refresh token
    twice. Create one store per process.
    """

    AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    TABLE = "credentials"
    ACCOUNT_KEY = "default"

    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        self.db_path: Path = settings.token_db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db = sqlite_utils.Database(
            sqlite3.connect(str(self.db_path), check_same_thread=False)
        )
        self._lock = threading.Lock()
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        self.db[self.TABLE].create(
            {
                "account": str,
                "access_token": str,
                "refresh_token": str,
                "expiry": str,
                "updated_at": str,
            },
            pk="account",
            if_not_exists=True,
        )

    def _client_config(self) -> dict[str, Any]:
        return {
            "web": {
                "client_id": self.settings.google_client_id,
                "client_secret": self.settings.google_client_secret,
                "auth_uri": self.AUTH_URL,
                "token_uri": self.TOKEN_URL,
                "redirect_uris": [self.settings.google_redirect_uri],
            }
        }

    def _flow(self, scopes: Iterable[str] | None = None) -> Flow:
        scope_list = list(scopes) if scopes is not None else self.settings.google_scopes
        # The code is exchanged in a later process, so there is no PKCE verifier to carry over.
        return Flow.from_client_config(
            self._client_config(),
            scopes=scope_list,
            redirect_uri=self.settings.google_redirect_uri,
            autogenerate_code_verifier=False,
        )

    def authorize_url(self, scopes: Iterable[str] | None = None) -> str:
        """Consent URL the account owner visits to grant offline access."""
        url, _state = self._flow(scopes).authorization_url(
            access_type="offline", prompt="consent"
        )
        return url

    def exchange_and_save(self, auth_code: str) -> Credentials:
        """Trade a one-time authorization code for tokens and persist them."""
        if not auth_code or not auth_code.strip():
            raise AuthExchangeError("Authorization code is required.")

        flow = self._flow()
        try:
            flow.fetch_token(code=auth_code.strip())
            credentials = flow.credentials
        except (OAuth2Error, requests.RequestException, ValueError, Warning) as exc:
            raise AuthExchangeError(f"Unable to exchange authorization code: {exc}") from exc

        with self._lock:
            self._persist(credentials)
        logger.info("Tokens saved to %s", self.db_path)
        return credentials

    def load(self) -> Optional[Credentials]:
        """Return the stored credentials without checking freshness."""
        rows = list(
            self.db[self.TABLE].rows_where("account = ?", [self.ACCOUNT_KEY], limit=1)
        )
        if not rows:
            return None
        row = rows[0]
        expiry = parse_iso_datetime(row["expiry"]) if row.get("expiry") else None
        return Credentials(
            token=row["access_token"],
            refresh_token=row.get("refresh_token") or None,
            token_uri=self.TOKEN_URL,
            client_id=self.settings.google_client_id,
            client_secret=self.settings.google_client_secret,
            expiry=_to_naive_utc(expiry) if expiry else None,
        )

    def get_credentials(self) -> Credentials:
        """Load the stored credentials, refreshing and persisting them if expired."""
        with self._lock:
            credentials = self.load()
            if credentials is None:
                raise NotAuthorizedError(
                    f"No tokens found at {self.db_path}. Please authorize first."
                )
            if credentials.expiry is None or credentials.expired:
                logger.info("Access token expired, refreshing...")
                self._refresh(credentials)
                self._persist(credentials)
                logger.info("Tokens refreshed and saved.")
            return credentials

    def get_authorized_client(self) -> AuthorizedSession:
        """Return a session bound to the current access token.

        The token is checked once, when the session is built. The session does
        not refresh on 401 itself; call this again for a fresh session.
        """
        return AuthorizedSession(self.get_credentials(), refresh_status_codes=())

    def _refresh(self, credentials: Credentials) -> None:
        if not credentials.refresh_token:
            raise AuthRefreshError("Stored credential has no refresh token; authorize again.")
        try:
            credentials.refresh(Request(session=self.session))
        except (RefreshError, TransportError) as exc:
            logger.error("Token refresh failed: %s", exc)
            raise AuthRefreshError(f"Unable to refresh access token: {exc}") from exc

    def _persist(self, credentials: Credentials) -> None:
        record = {
            "account": self.ACCOUNT_KEY,
            "access_token": credentials.token,
            "refresh_token": credentials.refresh_token,
            "expiry": isoformat_utc(credentials.expiry) if credentials.expiry else None,
            "updated_at": isoformat_utc(utcnow()),
        }
        with self.db.conn:
            self.db[self.TABLE].upsert(record, pk="account")
