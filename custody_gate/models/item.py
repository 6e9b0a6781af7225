"""Equipment item models."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from custody_gate.database import Base
from custody_gate.models.mixins import TimestampMixin, id_column, utcnow


class Item(TimestampMixin, Base):
    """Physical asset carried through the checkpoint."""

    __tablename__ = "items"

    id: Mapped[int] = id_column()
    serial_number: Mapped[str] = mapped_column(String(100), unique=True)
    label: Mapped[str] = mapped_column(String(100))
    image_ref: Mapped[str | None] = mapped_column(String(512), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True)

    holder_links = relationship("HolderItem", back_populates="item")
    scan_tokens = relationship("TokenRecord", back_populates="item")
    custody_sessions = relationship("CustodySession", back_populates="item")


class HolderItem(Base):
    """Custody link between a holder and an item."""

    __tablename__ = "holder_items"

    id: Mapped[int] = id_column()
    holder_id: Mapped[int] = mapped_column(ForeignKey("holders.id"))
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"))
    status: Mapped[str] = mapped_column(String(20), default="active")
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    holder = relationship("Holder", back_populates="item_links")
    item = relationship("Item", back_populates="holder_links")
