"""Holder model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from custody_gate.database import Base
from custody_gate.models.mixins import TimestampMixin, id_column


class Holder(TimestampMixin, Base):
    """Person accountable for an item. Provisioned by the roster domain."""

    __tablename__ = "holders"

    id: Mapped[int] = id_column()
    document: Mapped[str] = mapped_column(String(50), unique=True)
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))

    item_links = relationship("HolderItem", back_populates="holder")

    @property
    def full_name(self) -> str:
        """Return the display name."""
        return f"{self.first_name} {self.last_name}".strip()
