"""Service exception types."""

from __future__ import annotations


class CustodyGateError(Exception):
    """Base service error."""


class CryptoError(CustodyGateError):
    """A QR payload could not be sealed or opened."""


class StorageError(CustodyGateError):
    """The persistence layer failed during a lookup or write."""


class ProcessingError(CustodyGateError):
    """A checkpoint write failed and was rolled back."""


class RegistrationError(CustodyGateError, ValueError):
    """Item registration input was rejected.

    Parameters
    ----------
    errors : list[str]
        Human-readable validation messages.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors))
