"""Checkpoint-facing schemas."""

from datetime import date, datetime, time

from pydantic import BaseModel, Field

from custody_gate.schemas.common import APIModel


class ScanRequest(BaseModel):
    """Raw scan submitted by a checkpoint device."""

    qr_data: str = Field(min_length=1, max_length=4096)
    notes: str | None = Field(default=None, max_length=1000)


class ItemSummary(APIModel):
    """Item fields shown to the operator."""

    id: int
    serial_number: str
    label: str
    image_ref: str | None
    active: bool


class HolderSummary(APIModel):
    """Holder fields shown to the operator."""

    id: int
    document: str
    full_name: str


class CustodySessionResponse(APIModel):
    """Custody session record."""

    id: int
    item_id: int
    holder_id: int
    operator_id: int
    opened_at: datetime
    entry_date: date
    entry_time: time
    closed_at: datetime | None
    exit_date: date | None
    exit_time: time | None
    closed_by_id: int | None
    notes: str | None


class ScanResponse(BaseModel):
    """Outcome of a scan.

    ``kind`` is ``entry``, ``exit`` or ``rejected``. Accepted scans carry
    the trust tier and the resolved entities; rejections carry a reason.
    """

    kind: str
    message: str
    trust: str | None = None
    reason: str | None = None
    item: ItemSummary | None = None
    holder: HolderSummary | None = None
    custody_session: CustodySessionResponse | None = None


class ActiveSessionsResponse(BaseModel):
    """Page of open custody sessions."""

    total: int
    limit: int
    offset: int
    sessions: list[CustodySessionResponse]
