"""Token models."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from custody_gate.database import Base
from custody_gate.models.mixins import TimestampMixin, id_column, utcnow


class TokenRecord(Base):
    """Scan credential issued for an item and holder pair."""

    __tablename__ = "scan_tokens"
    __table_args__ = (
        Index("ix_scan_tokens_item_holder", "item_id", "holder_id"),
    )

    id: Mapped[int] = id_column()
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"))
    holder_id: Mapped[int] = mapped_column(ForeignKey("holders.id"))
    token: Mapped[str] = mapped_column(String(64), unique=True)
    qr_data: Mapped[str] = mapped_column(Text)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    item = relationship("Item", back_populates="scan_tokens")


class OperatorToken(TimestampMixin, Base):
    """Bearer credential for a checkpoint operator."""

    __tablename__ = "operator_tokens"
    __table_args__ = (Index("ix_operator_tokens_lookup", "token_lookup"),)

    id: Mapped[int] = id_column()
    operator_id: Mapped[int] = mapped_column(ForeignKey("operators.id"))
    token_hash: Mapped[str] = mapped_column(String(512))
    token_lookup: Mapped[str] = mapped_column(String(64))
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    operator = relationship("Operator", back_populates="tokens")
