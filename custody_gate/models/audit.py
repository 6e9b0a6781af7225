"""Audit event model."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from custody_gate.database import Base
from custody_gate.models.mixins import id_column, utcnow


class AuditLog(Base):
    """Append-only audit entry."""

    __tablename__ = "audit_logs"

    id: Mapped[int] = id_column()
    operator_id: Mapped[int | None] = mapped_column(
        ForeignKey("operators.id"), nullable=True
    )
    action: Mapped[str] = mapped_column(String(100))
    resource_type: Mapped[str] = mapped_column(String(100))
    resource_id: Mapped[str] = mapped_column(String(255))
    event_metadata: Mapped[dict[str, str | int | float | bool | None]] = mapped_column(
        JSON
    )
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
