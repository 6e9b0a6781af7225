"""SDK response types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class ActiveSession:
    """Open or closed custody session.

    Attributes
    ----------
    session_id : int
        Custody session identifier.
    item_id : int
        Item identifier.
    holder_id : int
        Holder identifier.
    operator_id : int
        Operator who recorded the entry.
    opened_at : datetime
        Entry timestamp.
    closed_at : datetime | None
        Exit timestamp, None while the item is inside.
    notes : str | None
        Operator notes.
    """

    session_id: int
    item_id: int
    holder_id: int
    operator_id: int
    opened_at: datetime
    closed_at: datetime | None
    notes: str | None

    @property
    def is_open(self) -> bool:
        """Return whether the item is still checked in."""
        return self.closed_at is None


@dataclass(frozen=True, slots=True)
class ScanOutcome:
    """Result of a checkpoint scan.

    Attributes
    ----------
    kind : str
        ``entry``, ``exit`` or ``rejected``.
    message : str
        Operator-facing summary.
    trust : str | None
        ``verified`` or ``unverified`` for accepted scans.
    reason : str | None
        Rejection reason code.
    item_id : int | None
        Resolved item identifier.
    holder_id : int | None
        Resolved holder identifier.
    holder_name : str | None
        Resolved holder full name.
    session : ActiveSession | None
        Custody session opened or closed by the scan.
    """

    kind: str
    message: str
    trust: str | None = None
    reason: str | None = None
    item_id: int | None = None
    holder_id: int | None = None
    holder_name: str | None = None
    session: ActiveSession | None = None

    @property
    def accepted(self) -> bool:
        """Return whether the scan recorded an entry or exit."""
        return self.kind != "rejected"


@dataclass(frozen=True, slots=True)
class SweepSummary:
    """Anomaly sweep report.

    Attributes
    ----------
    flagged_count : int
        Anomalies created.
    resolved_count : int
        Anomalies resolved because their session closed.
    errors : tuple[str, ...]
        Per-session failures.
    """

    flagged_count: int
    resolved_count: int
    errors: tuple[str, ...]
