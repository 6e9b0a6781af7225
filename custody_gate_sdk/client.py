"""Synchronous Python SDK client."""

from __future__ import annotations

import os
from datetime import datetime
from time import sleep
from typing import Any

import httpx

from custody_gate_sdk.exceptions import (
    CustodyGateAPIError,
    CustodyGateAuthError,
    CustodyGateConflictError,
    CustodyGateNotFoundError,
    CustodyGateRateLimitError,
    CustodyGateValidationError,
)
from custody_gate_sdk.types import ActiveSession, ScanOutcome, SweepSummary

REJECTED_KIND = "rejected"


class CheckpointClient:
    """Client for the checkpoint-facing Custody Gate API.

    Parameters
    ----------
    base_url : str
        Custody Gate service base URL.
    operator_token : str
        Operator bearer token.
    timeout : float, default=10.0
        Request timeout in seconds.
    max_retries : int, default=2
        Number of retries for transient errors.
    transport : httpx.BaseTransport | None, default=None
        Optional transport for tests or advanced usage.
    """

    def __init__(
        self,
        *,
        base_url: str,
        operator_token: str,
        timeout: float = 10.0,
        max_retries: int = 2,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.operator_token = operator_token
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.operator_token}"},
            timeout=self.timeout,
            transport=transport,
        )

    @classmethod
    def from_env(cls) -> "CheckpointClient":
        """Build a client from environment variables.

        Expected variables
        ------------------
        CUSTODY_GATE_BASE_URL
            Service base URL. Defaults to ``http://127.0.0.1:8000``.
        CUSTODY_GATE_OPERATOR_TOKEN
            Required operator bearer token.

        Returns
        -------
        CheckpointClient
            Configured SDK client.
        """
        base_url = os.environ.get("CUSTODY_GATE_BASE_URL", "http://127.0.0.1:8000")
        operator_token = os.environ.get("CUSTODY_GATE_OPERATOR_TOKEN")
        if not operator_token:
            raise CustodyGateValidationError(
                "CUSTODY_GATE_OPERATOR_TOKEN is required to create the client"
            )
        return cls(base_url=base_url, operator_token=operator_token)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def scan(self, qr_data: str, notes: str | None = None) -> ScanOutcome:
        """Submit a scanned QR string.

        Rejected scans are returned, not raised; check ``ScanOutcome.accepted``.

        Parameters
        ----------
        qr_data : str
            String read from the QR code.
        notes : str | None, default=None
            Optional operator notes.

        Returns
        -------
        ScanOutcome
            Entry, exit or rejection.
        """
        payload: dict[str, Any] = {"qr_data": qr_data}
        if notes is not None:
            payload["notes"] = notes
        response = self._request(
            "POST",
            "/v1/checkpoint/scan",
            json=payload,
            allow_rejection=True,
        )
        return _parse_scan_outcome(response.json())

    def list_active_sessions(
        self, *, limit: int = 20, offset: int = 0
    ) -> list[ActiveSession]:
        """List items currently checked in.

        Parameters
        ----------
        limit : int, default=20
            Page size.
        offset : int, default=0
            Page offset.

        Returns
        -------
        list[ActiveSession]
            Open custody sessions.
        """
        response = self._request(
            "GET",
            "/v1/checkpoint/active",
            params={"limit": limit, "offset": offset},
        )
        return [_parse_session(item) for item in response.json()["sessions"]]

    def sweep_anomalies(self, threshold_hours: float | None = None) -> SweepSummary:
        """Run an anomaly sweep. Requires an administrator token.

        Parameters
        ----------
        threshold_hours : float | None, default=None
            Override for the server's configured threshold.

        Returns
        -------
        SweepSummary
            Sweep report.
        """
        payload: dict[str, Any] = {}
        if threshold_hours is not None:
            payload["threshold_hours"] = threshold_hours
        response = self._request("POST", "/v1/admin/anomalies/sweep", json=payload)
        data = response.json()
        return SweepSummary(
            flagged_count=data["flagged_count"],
            resolved_count=data["resolved_count"],
            errors=tuple(data["errors"]),
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        allow_rejection: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send an HTTP request with light retry logic.

        Parameters
        ----------
        method : str
            HTTP method.
        path : str
            Relative request path.
        allow_rejection : bool, default=False
            Return 400 responses that carry a scan rejection body.
        **kwargs : Any
            Additional request arguments.

        Returns
        -------
        httpx.Response
            Successful response.
        """
        attempts = self.max_retries + 1
        last_exception: Exception | None = None
        for attempt in range(attempts):
            try:
                response = self._client.request(method, path, **kwargs)
            except httpx.HTTPError as exc:
                last_exception = exc
                if attempt < self.max_retries:
                    sleep(0.1 * (attempt + 1))
                    continue
                raise CustodyGateAPIError(str(exc)) from exc

            if response.status_code < 400:
                return response
            if allow_rejection and _is_scan_rejection(response):
                return response
            if _is_transient_response(response) and attempt < self.max_retries:
                sleep(0.1 * (attempt + 1))
                continue
            raise _exception_for_response(response)

        if last_exception is not None:
            raise CustodyGateAPIError(str(last_exception)) from last_exception
        raise CustodyGateAPIError("Request failed")

    def __enter__(self) -> "CheckpointClient":
        """Enter the client context.

        Returns
        -------
        CheckpointClient
            This client.
        """
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        """Close the client on context exit."""
        _ = (exc_type, exc_value, traceback)
        self.close()


def _parse_datetime(value: str) -> datetime:
    """Parse an ISO datetime string.

    Parameters
    ----------
    value : str
        ISO-formatted datetime string.

    Returns
    -------
    datetime
        Parsed datetime.
    """
    normalized = value.replace("Z", "+00:00")
    return datetime.fromisoformat(normalized)


def _parse_session(data: dict[str, Any]) -> ActiveSession:
    """Build an ``ActiveSession`` from a custody session payload."""
    return ActiveSession(
        session_id=data["id"],
        item_id=data["item_id"],
        holder_id=data["holder_id"],
        operator_id=data["operator_id"],
        opened_at=_parse_datetime(data["opened_at"]),
        closed_at=(
            _parse_datetime(data["closed_at"])
            if data.get("closed_at") is not None
            else None
        ),
        notes=data.get("notes"),
    )


def _parse_scan_outcome(data: dict[str, Any]) -> ScanOutcome:
    """Build a ``ScanOutcome`` from a scan response payload."""
    item = data.get("item") or {}
    holder = data.get("holder") or {}
    custody_session = data.get("custody_session")
    return ScanOutcome(
        kind=data["kind"],
        message=data["message"],
        trust=data.get("trust"),
        reason=data.get("reason"),
        item_id=item.get("id"),
        holder_id=holder.get("id"),
        holder_name=holder.get("full_name"),
        session=(
            _parse_session(custody_session) if custody_session is not None else None
        ),
    )


def _is_scan_rejection(response: httpx.Response) -> bool:
    """Return whether a 400 response carries a scan rejection body."""
    if response.status_code != 400:
        return False
    try:
        data = response.json()
    except ValueError:
        return False
    return isinstance(data, dict) and data.get("kind") == REJECTED_KIND


def _is_transient_response(response: httpx.Response) -> bool:
    """Return whether a response is transient.

    Parameters
    ----------
    response : httpx.Response
        HTTP response.

    Returns
    -------
    bool
        Whether the response is worth retrying.
    """
    return response.status_code in {429, 502, 503, 504}


def _exception_for_response(response: httpx.Response) -> CustodyGateAPIError:
    """Map an error response to a typed SDK exception.

    Parameters
    ----------
    response : httpx.Response
        HTTP response.

    Returns
    -------
    CustodyGateAPIError
        Typed SDK error.
    """
    try:
        data = response.json()
    except ValueError:
        data = {}
    detail = data.get("detail") if isinstance(data, dict) else None
    if detail is not None and not isinstance(detail, str):
        detail = str(detail)
    message = detail or f"Custody Gate request failed with status {response.status_code}"

    if response.status_code in {401, 403}:
        return CustodyGateAuthError(message, status_code=response.status_code)
    if response.status_code == 404:
        return CustodyGateNotFoundError(message, status_code=response.status_code)
    if response.status_code == 409:
        return CustodyGateConflictError(message, status_code=response.status_code)
    if response.status_code == 429:
        return CustodyGateRateLimitError(message, status_code=response.status_code)
    if response.status_code in {400, 422}:
        return CustodyGateValidationError(message, status_code=response.status_code)
    return CustodyGateAPIError(message, status_code=response.status_code)
