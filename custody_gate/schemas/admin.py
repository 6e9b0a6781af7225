"""Admin-facing schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from custody_gate.models.operator import ROLE_ADMINISTRATOR, ROLE_GATEKEEPER
from custody_gate.schemas.common import APIModel


class OperatorCreateRequest(BaseModel):
    """Create an operator."""

    name: str = Field(min_length=1, max_length=255)
    role: str = Field(
        default=ROLE_GATEKEEPER,
        pattern=f"^({ROLE_GATEKEEPER}|{ROLE_ADMINISTRATOR})$",
    )


class ItemRegisterRequest(BaseModel):
    """Register an item for a holder."""

    holder_id: int = Field(gt=0)
    serial_number: str = Field(min_length=1, max_length=100)
    label: str = Field(min_length=1, max_length=100)
    image_ref: str | None = Field(default=None, max_length=512)


class ItemRegisterResponse(BaseModel):
    """Registration result."""

    item_id: int
    token: str


class TokenRecordResponse(APIModel):
    """Token record metadata, including the string to render as QR."""

    id: int
    item_id: int
    holder_id: int
    token: str
    qr_data: str
    issued_at: datetime
    expires_at: datetime
    active: bool
    revoked_at: datetime | None


class SweepRequest(BaseModel):
    """Optional sweep overrides."""

    threshold_hours: float | None = Field(default=None, gt=0)


class SweepResponse(BaseModel):
    """Sweep report."""

    flagged_count: int
    resolved_count: int
    errors: list[str]


class AnomalyResponse(APIModel):
    """Anomaly record."""

    id: int
    session_id: int
    description: str
    flagged_by_id: int
    resolved: bool
    created_at: datetime
    resolved_at: datetime | None


class AuditResponse(APIModel):
    """Audit log event."""

    id: int
    operator_id: int | None
    action: str
    resource_type: str
    resource_id: str
    event_metadata: dict[str, str | int | float | bool | None]
    timestamp: datetime
