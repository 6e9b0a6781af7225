"""Scan token registry."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from custody_gate.exceptions import StorageError
from custody_gate.models.mixins import utcnow
from custody_gate.models.token import TokenRecord

logger = logging.getLogger(__name__)


async def issue_token_record(
    session: AsyncSession,
    *,
    item_id: int,
    holder_id: int,
    token: str,
    qr_data: str,
    expires_at: datetime,
    issued_at: datetime | None = None,
) -> TokenRecord:
    """Store a new active token record.

    Parameters
    ----------
    session : AsyncSession
        Active database session.
    item_id : int
        Item identifier.
    holder_id : int
        Holder identifier.
    token : str
        Opaque scan token.
    qr_data : str
        Encrypted QR payload.
    expires_at : datetime
        Expiry timestamp.
    issued_at : datetime | None, default=None
        Issue timestamp, defaults to now.

    Returns
    -------
    TokenRecord
        Persisted token record.
    """
    record = TokenRecord(
        item_id=item_id,
        holder_id=holder_id,
        token=token,
        qr_data=qr_data,
        issued_at=issued_at or utcnow(),
        expires_at=expires_at,
        active=True,
    )
    session.add(record)
    try:
        await session.flush()
    except SQLAlchemyError as exc:
        logger.error("Failed to store token record for item %s", item_id, exc_info=True)
        raise StorageError("Unable to store token record") from exc
    return record


async def find_active_by_item_and_holder(
    session: AsyncSession, item_id: int, holder_id: int
) -> TokenRecord | None:
    """Return the most recently issued active record for a pair.

    Parameters
    ----------
    session : AsyncSession
        Active database session.
    item_id : int
        Item identifier.
    holder_id : int
        Holder identifier.

    Returns
    -------
    TokenRecord | None
        Newest active record, if any.
    """
    try:
        result = await session.execute(
            select(TokenRecord)
            .where(
                TokenRecord.item_id == item_id,
                TokenRecord.holder_id == holder_id,
                TokenRecord.active.is_(True),
            )
            .order_by(TokenRecord.issued_at.desc(), TokenRecord.id.desc())
            .limit(1)
        )
    except SQLAlchemyError as exc:
        logger.error("Token lookup by item/holder failed", exc_info=True)
        raise StorageError("Unable to look up token record") from exc
    return result.scalar_one_or_none()


async def find_by_token(session: AsyncSession, token: str) -> TokenRecord | None:
    """Return the active record matching a token string exactly.

    Parameters
    ----------
    session : AsyncSession
        Active database session.
    token : str
        Scanned token.

    Returns
    -------
    TokenRecord | None
        Matching active record, if any.
    """
    try:
        result = await session.execute(
            select(TokenRecord).where(
                TokenRecord.token == token,
                TokenRecord.active.is_(True),
            )
        )
    except SQLAlchemyError as exc:
        logger.error("Token lookup failed", exc_info=True)
        raise StorageError("Unable to look up token record") from exc
    return result.scalar_one_or_none()


async def list_tokens_for_item(
    session: AsyncSession, item_id: int
) -> list[TokenRecord]:
    """List every token record issued for an item, newest first."""
    try:
        result = await session.execute(
            select(TokenRecord)
            .where(TokenRecord.item_id == item_id)
            .order_by(TokenRecord.issued_at.desc(), TokenRecord.id.desc())
        )
    except SQLAlchemyError as exc:
        logger.error("Token listing for item %s failed", item_id, exc_info=True)
        raise StorageError("Unable to list token records") from exc
    return list(result.scalars().all())


async def revoke_token_record(
    session: AsyncSession, token_record_id: int, *, now: datetime | None = None
) -> TokenRecord | None:
    """Deactivate a token record.

    Parameters
    ----------
    session : AsyncSession
        Active database session.
    token_record_id : int
        Token record identifier.
    now : datetime | None, default=None
        Revocation timestamp, defaults to now.

    Returns
    -------
    TokenRecord | None
        Updated record, or None when it does not exist.
    """
    try:
        record = await session.get(TokenRecord, token_record_id)
        if record is None:
            return None
        if record.active:
            record.active = False
            record.revoked_at = now or utcnow()
            await session.flush()
    except SQLAlchemyError as exc:
        logger.error("Failed to revoke token record %s", token_record_id, exc_info=True)
        raise StorageError("Unable to revoke token record") from exc
    return record
