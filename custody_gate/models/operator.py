"""Operator model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from custody_gate.database import Base
from custody_gate.models.mixins import TimestampMixin, id_column

ROLE_GATEKEEPER = "gatekeeper"
ROLE_ADMINISTRATOR = "administrator"


class Operator(TimestampMixin, Base):
    """Staff member who scans items or manages the checkpoint."""

    __tablename__ = "operators"

    id: Mapped[int] = id_column()
    name: Mapped[str] = mapped_column(String(255), unique=True)
    role: Mapped[str] = mapped_column(String(20), default=ROLE_GATEKEEPER)

    tokens = relationship("OperatorToken", back_populates="operator")

    @property
    def is_administrator(self) -> bool:
        """Return whether the operator may use admin routes."""
        return self.role == ROLE_ADMINISTRATOR
