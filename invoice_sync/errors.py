"""Exception hierarchy shared by every pipeline stage."""

from __future__ import annotations


class InvoiceSyncError(Exception):
    """Base class for all domain errors raised by invoice_sync."""


class AuthError(InvoiceSyncError):
    """Credential lifecycle failure."""


class AuthExchangeError(AuthError):
    """The authorization code could not be exchanged for tokens."""


class NotAuthorizedError(AuthError):
    """No credential has been stored yet."""


class AuthRefreshError(AuthError):
    """The stored refresh token could not be used to mint a new access token."""


class InvalidRequest(InvoiceSyncError):
    """Caller supplied input that cannot be acted on."""


class InvalidFolderLink(InvalidRequest):
    """A Drive folder link did not contain a recognisable folder id."""


class DownloadError(InvoiceSyncError):
    """Base class for remote-archive download failures."""


class DownloadTimeout(DownloadError):
    pass


class NotFound(DownloadError):
    pass


class DownloadRejected(DownloadError):
    """Remote answered with an error status or the payload exceeded the size cap."""


class DownloadFailed(DownloadError):
    """Transport-level failure (DNS, connection reset, TLS...)."""


class CorruptArchive(InvoiceSyncError):
    pass


class ConfigurationError(InvoiceSyncError):
    """A required destination is not configured."""


class MissingDestination(ConfigurationError):
    pass


class MissingLogDestination(ConfigurationError):
    pass


class UploadFailed(InvoiceSyncError):
    """A single file could not be placed in Drive."""
