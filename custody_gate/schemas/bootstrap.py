"""Bootstrap request and response schemas."""

from pydantic import BaseModel, Field

from custody_gate.schemas.common import OperatorTokenResponse


class BootstrapRequest(BaseModel):
    """Create the first administrator."""

    administrator_name: str = Field(
        default="administrator", min_length=1, max_length=255
    )


class BootstrapResponse(BaseModel):
    """Bootstrap response payload."""

    administrator: OperatorTokenResponse
