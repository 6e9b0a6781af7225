"""Custody session ledger."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from custody_gate.models.custody import CustodySession
from custody_gate.models.mixins import utcnow


async def find_open_session(
    session: AsyncSession, item_id: int
) -> CustodySession | None:
    """Return the open session for an item, if any.

    Parameters
    ----------
    session : AsyncSession
        Active database session.
    item_id : int
        Item identifier.

    Returns
    -------
    CustodySession | None
        Open session for the item.
    """
    result = await session.execute(
        select(CustodySession)
        .where(
            CustodySession.item_id == item_id,
            CustodySession.closed_at.is_(None),
        )
        .order_by(CustodySession.opened_at.desc(), CustodySession.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def open_session(
    session: AsyncSession,
    *,
    item_id: int,
    holder_id: int,
    operator_id: int,
    notes: str | None = None,
    now: datetime | None = None,
) -> CustodySession:
    """Record an item entering custody.

    The caller must have checked that the item has no open session; the
    partial unique index on open sessions rejects a second one on flush.

    Parameters
    ----------
    session : AsyncSession
        Active database session.
    item_id : int
        Item identifier.
    holder_id : int
        Holder identifier.
    operator_id : int
        Scanning operator.
    notes : str | None, default=None
        Free-text notes.
    now : datetime | None, default=None
        Entry timestamp, defaults to now.

    Returns
    -------
    CustodySession
        New open session.
    """
    custody_session = CustodySession(
        item_id=item_id,
        holder_id=holder_id,
        operator_id=operator_id,
        opened_at=now or utcnow(),
        notes=notes,
    )
    session.add(custody_session)
    await session.flush()
    return custody_session


async def close_session(
    session: AsyncSession,
    custody_session: CustodySession,
    *,
    operator_id: int,
    notes: str | None = None,
    now: datetime | None = None,
) -> CustodySession:
    """Record an item leaving custody.

    Parameters
    ----------
    session : AsyncSession
        Active database session.
    custody_session : CustodySession
        Open session to close.
    operator_id : int
        Scanning operator.
    notes : str | None, default=None
        Notes appended to any existing notes.
    now : datetime | None, default=None
        Exit timestamp, defaults to now.

    Returns
    -------
    CustodySession
        Closed session.
    """
    if custody_session.closed_at is not None:
        raise ValueError(f"Custody session {custody_session.id} is already closed")
    custody_session.closed_at = now or utcnow()
    custody_session.closed_by_id = operator_id
    custody_session.notes = _merge_notes(custody_session.notes, notes)
    await session.flush()
    return custody_session


async def get_custody_session(
    session: AsyncSession, session_id: int
) -> CustodySession | None:
    """Return a custody session by id."""
    return await session.get(CustodySession, session_id)


async def list_open_sessions(
    session: AsyncSession, *, limit: int | None = None, offset: int = 0
) -> list[CustodySession]:
    """List open sessions, newest first.

    Parameters
    ----------
    session : AsyncSession
        Active database session.
    limit : int | None, default=None
        Page size, or None for every open session.
    offset : int, default=0
        Page offset.

    Returns
    -------
    list[CustodySession]
        Open sessions.
    """
    query = (
        select(CustodySession)
        .where(CustodySession.closed_at.is_(None))
        .order_by(CustodySession.opened_at.desc(), CustodySession.id.desc())
        .offset(offset)
    )
    if limit is not None:
        query = query.limit(limit)
    result = await session.execute(query)
    return list(result.scalars().all())


async def count_open_sessions(session: AsyncSession) -> int:
    """Count open sessions."""
    result = await session.execute(
        select(func.count(CustodySession.id)).where(CustodySession.closed_at.is_(None))
    )
    return result.scalar_one()


async def list_history(
    session: AsyncSession,
    *,
    item_id: int | None = None,
    holder_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[CustodySession]:
    """List sessions matching optional filters, newest first.

    Parameters
    ----------
    session : AsyncSession
        Active database session.
    item_id : int | None, default=None
        Restrict to one item.
    holder_id : int | None, default=None
        Restrict to one holder.
    date_from : date | None, default=None
        Earliest entry date, inclusive.
    date_to : date | None, default=None
        Latest entry date, inclusive.
    limit : int, default=50
        Page size.
    offset : int, default=0
        Page offset.

    Returns
    -------
    list[CustodySession]
        Matching sessions.
    """
    query = select(CustodySession)
    if item_id is not None:
        query = query.where(CustodySession.item_id == item_id)
    if holder_id is not None:
        query = query.where(CustodySession.holder_id == holder_id)
    if date_from is not None:
        start = datetime.combine(date_from, time.min, tzinfo=timezone.utc)
        query = query.where(CustodySession.opened_at >= start)
    if date_to is not None:
        end = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc)
        query = query.where(CustodySession.opened_at < end)
    result = await session.execute(
        query.order_by(CustodySession.opened_at.desc(), CustodySession.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())


def _merge_notes(existing: str | None, new: str | None) -> str | None:
    """Append exit notes to entry notes."""
    if not new:
        return existing
    if not existing:
        return new
    return f"{existing}\n{new}"
