"""SDK exception types."""

from __future__ import annotations


class CustodyGateSDKError(Exception):
    """Base SDK error."""


class CustodyGateAPIError(CustodyGateSDKError):
    """API request failed.

    Parameters
    ----------
    message : str
        Error message.
    status_code : int | None, default=None
        HTTP status code if available.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class CustodyGateAuthError(CustodyGateAPIError):
    """Operator token missing, invalid or lacking the required role."""


class CustodyGateValidationError(CustodyGateAPIError):
    """Request payload was rejected."""


class CustodyGateNotFoundError(CustodyGateAPIError):
    """Requested resource was not found."""


class CustodyGateConflictError(CustodyGateAPIError):
    """Request conflicted with current server state."""


class CustodyGateRateLimitError(CustodyGateAPIError):
    """Caller hit a rate limit."""
