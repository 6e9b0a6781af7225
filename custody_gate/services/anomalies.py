"""Detection of items that overstay at the checkpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from custody_gate.models.custody import Anomaly, CustodySession
from custody_gate.models.mixins import as_utc, utcnow
from custody_gate.services import ledger
from custody_gate.services.audit import log_event

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD_HOURS = 8.0


@dataclass(slots=True)
class SweepReport:
    """Outcome of one anomaly sweep.

    Attributes
    ----------
    flagged_count : int
        Anomalies created by this sweep.
    resolved_count : int
        Open anomalies resolved because their session has closed.
    errors : list[str]
        Per-session failures that did not abort the sweep.
    """

    flagged_count: int = 0
    resolved_count: int = 0
    errors: list[str] = field(default_factory=list)


async def sweep(
    session: AsyncSession,
    *,
    operator_id: int,
    threshold_hours: float = DEFAULT_THRESHOLD_HOURS,
    now: datetime | None = None,
) -> SweepReport:
    """Flag open sessions older than the threshold.

    Sessions are never closed or modified. A session with an unresolved
    anomaly is skipped, so repeated sweeps do not duplicate flags. Each
    insert runs in a savepoint; failures are collected in the report.

    Parameters
    ----------
    session : AsyncSession
        Active database session. Committed at the end of the sweep.
    operator_id : int
        Operator recorded as the flagger.
    threshold_hours : float, default=8.0
        Hours a session may stay open before it is flagged.
    now : datetime | None, default=None
        Sweep time, defaults to now.

    Returns
    -------
    SweepReport
        Counts and collected errors.
    """
    now = now or utcnow()
    report = SweepReport()

    report.resolved_count = await _resolve_closed_session_anomalies(session, now=now)

    for custody_session in await ledger.list_open_sessions(session):
        if await find_unresolved_for_session(session, custody_session.id) is not None:
            continue
        elapsed_hours = (now - as_utc(custody_session.opened_at)).total_seconds() / 3600
        if elapsed_hours <= threshold_hours:
            continue
        try:
            async with session.begin_nested():
                anomaly = Anomaly(
                    session_id=custody_session.id,
                    description=(
                        f"Item entered {elapsed_hours:.1f} hours ago and has not "
                        "checked out."
                    ),
                    flagged_by_id=operator_id,
                    resolved=False,
                    created_at=now,
                )
                session.add(anomaly)
                await session.flush()
        except SQLAlchemyError:
            logger.error(
                "Failed to flag custody session %s", custody_session.id, exc_info=True
            )
            report.errors.append(f"Could not flag custody session {custody_session.id}")
            continue
        report.flagged_count += 1

    if report.flagged_count or report.resolved_count:
        await log_event(
            session,
            operator_id=operator_id,
            action="anomalies_swept",
            resource_type="custody_anomaly",
            resource_id="sweep",
            metadata={
                "flagged": report.flagged_count,
                "resolved": report.resolved_count,
                "errors": len(report.errors),
            },
        )
    await session.commit()
    logger.info(
        "Anomaly sweep: flagged=%s resolved=%s errors=%s",
        report.flagged_count,
        report.resolved_count,
        len(report.errors),
    )
    return report


async def find_unresolved_for_session(
    session: AsyncSession, session_id: int
) -> Anomaly | None:
    """Return the unresolved anomaly for a custody session, if any."""
    result = await session.execute(
        select(Anomaly)
        .where(Anomaly.session_id == session_id, Anomaly.resolved.is_(False))
        .limit(1)
    )
    return result.scalar_one_or_none()


async def resolve_anomaly(
    session: AsyncSession, anomaly_id: int, *, now: datetime | None = None
) -> Anomaly | None:
    """Mark an anomaly resolved.

    Parameters
    ----------
    session : AsyncSession
        Active database session.
    anomaly_id : int
        Anomaly identifier.
    now : datetime | None, default=None
        Resolution time, defaults to now.

    Returns
    -------
    Anomaly | None
        Updated anomaly, or None when it does not exist.
    """
    anomaly = await session.get(Anomaly, anomaly_id)
    if anomaly is None:
        return None
    if not anomaly.resolved:
        anomaly.resolved = True
        anomaly.resolved_at = now or utcnow()
        await session.flush()
    return anomaly


async def list_pending_anomalies(
    session: AsyncSession, *, limit: int = 50, offset: int = 0
) -> list[Anomaly]:
    """List unresolved anomalies, newest first."""
    result = await session.execute(
        select(Anomaly)
        .where(Anomaly.resolved.is_(False))
        .order_by(Anomaly.created_at.desc(), Anomaly.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())


async def _resolve_closed_session_anomalies(
    session: AsyncSession, *, now: datetime
) -> int:
    """Resolve unresolved anomalies whose session has been closed."""
    result = await session.execute(
        select(Anomaly)
        .join(CustodySession, CustodySession.id == Anomaly.session_id)
        .where(Anomaly.resolved.is_(False), CustodySession.closed_at.is_not(None))
    )
    superseded = list(result.scalars().all())
    for anomaly in superseded:
        anomaly.resolved = True
        anomaly.resolved_at = now
    if superseded:
        await session.flush()
    return len(superseded)
