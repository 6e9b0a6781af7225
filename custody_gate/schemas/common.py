"""Common schema primitives."""

from pydantic import BaseModel, ConfigDict


class APIModel(BaseModel):
    """Base API model with attribute validation enabled."""

    model_config = ConfigDict(from_attributes=True)


class OperatorTokenResponse(APIModel):
    """Return a generated operator token exactly once."""

    id: int
    name: str
    role: str
    token: str
