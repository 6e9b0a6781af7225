"""Python SDK for the Custody Gate checkpoint service."""

from custody_gate_sdk.client import CheckpointClient
from custody_gate_sdk.exceptions import (
    CustodyGateAPIError,
    CustodyGateAuthError,
    CustodyGateConflictError,
    CustodyGateNotFoundError,
    CustodyGateRateLimitError,
    CustodyGateSDKError,
    CustodyGateValidationError,
)
from custody_gate_sdk.types import ActiveSession, ScanOutcome, SweepSummary

__all__ = [
    "ActiveSession",
    "CheckpointClient",
    "CustodyGateAPIError",
    "CustodyGateAuthError",
    "CustodyGateConflictError",
    "CustodyGateNotFoundError",
    "CustodyGateRateLimitError",
    "CustodyGateSDKError",
    "CustodyGateValidationError",
    "ScanOutcome",
    "SweepSummary",
]
