"""Audit logging service."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from custody_gate.models.audit import AuditLog


async def log_event(
    session: AsyncSession,
    *,
    action: str,
    resource_type: str,
    resource_id: str | int,
    metadata: dict[str, str | int | float | bool | None],
    operator_id: int | None = None,
) -> AuditLog:
    """Persist an audit event in the caller's transaction.

    Parameters
    ----------
    session : AsyncSession
        Active database session.
    action : str
        Event action.
    resource_type : str
        Kind of resource touched.
    resource_id : str | int
        Resource identifier.
    metadata : dict[str, str | int | float | bool | None]
        Additional event metadata.
    operator_id : int | None, default=None
        Acting operator, if any.

    Returns
    -------
    AuditLog
        Persisted audit record.
    """
    event = AuditLog(
        operator_id=operator_id,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id),
        event_metadata=metadata,
    )
    session.add(event)
    await session.flush()
    return event
