"""Shared model helpers."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    """Return the current UTC time.

    Returns
    -------
    datetime
        Timezone-aware current time.
    """
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite.

    Parameters
    ----------
    value : datetime
        Stored timestamp.

    Returns
    -------
    datetime
        Timezone-aware timestamp.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TimestampMixin:
    """Common timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


def id_column() -> Mapped[int]:
    """Return an integer primary-key column.

    Returns
    -------
    Mapped[int]
        SQLAlchemy mapped autoincrement column.
    """
    return mapped_column(Integer, primary_key=True, autoincrement=True)
