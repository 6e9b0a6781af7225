"""Custody session and anomaly models."""

from datetime import date, datetime, time

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from custody_gate.database import Base
from custody_gate.models.mixins import as_utc, id_column, utcnow


class CustodySession(Base):
    """One entry-to-exit cycle of an item at the checkpoint."""

    __tablename__ = "custody_sessions"
    __table_args__ = (
        Index(
            "uq_custody_sessions_open_item",
            "item_id",
            unique=True,
            sqlite_where=text("closed_at IS NULL"),
            postgresql_where=text("closed_at IS NULL"),
        ),
        Index("ix_custody_sessions_opened_at", "opened_at"),
    )

    id: Mapped[int] = id_column()
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"))
    holder_id: Mapped[int] = mapped_column(ForeignKey("holders.id"))
    operator_id: Mapped[int] = mapped_column(ForeignKey("operators.id"))
    opened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    closed_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("operators.id"), nullable=True
    )

    item = relationship("Item", back_populates="custody_sessions")
    holder = relationship("Holder")
    anomalies = relationship("Anomaly", back_populates="custody_session")

    @property
    def is_open(self) -> bool:
        """Return whether the item is still checked in."""
        return self.closed_at is None

    @property
    def entry_date(self) -> date:
        """Return the entry date."""
        return as_utc(self.opened_at).date()

    @property
    def entry_time(self) -> time:
        """Return the entry time of day."""
        return as_utc(self.opened_at).time()

    @property
    def exit_date(self) -> date | None:
        """Return the exit date, if closed."""
        return as_utc(self.closed_at).date() if self.closed_at else None

    @property
    def exit_time(self) -> time | None:
        """Return the exit time of day, if closed."""
        return as_utc(self.closed_at).time() if self.closed_at else None


class Anomaly(Base):
    """Flag raised for a session that stayed open too long."""

    __tablename__ = "custody_anomalies"
    __table_args__ = (Index("ix_custody_anomalies_session", "session_id"),)

    id: Mapped[int] = id_column()
    session_id: Mapped[int] = mapped_column(ForeignKey("custody_sessions.id"))
    description: Mapped[str] = mapped_column(String(500))
    flagged_by_id: Mapped[int] = mapped_column(ForeignKey("operators.id"))
    resolved: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    custody_session = relationship("CustodySession", back_populates="anomalies")
