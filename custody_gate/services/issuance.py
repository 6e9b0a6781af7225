"""Item registration and scan token issuance."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from custody_gate.config import get_settings
from custody_gate.crypto.codec import QRCodec, QRPayload
from custody_gate.exceptions import CustodyGateError, RegistrationError, StorageError
from custody_gate.models.item import HolderItem, Item
from custody_gate.models.mixins import utcnow
from custody_gate.models.token import TokenRecord
from custody_gate.services import registry, tokens
from custody_gate.services.audit import log_event
from custody_gate.services.security import generate_scan_token

logger = logging.getLogger(__name__)

MIN_SERIAL_LENGTH = 3
MIN_LABEL_LENGTH = 2


async def issue_token(
    session: AsyncSession,
    codec: QRCodec,
    *,
    item_id: int,
    holder_id: int,
    serial_number: str,
    label: str,
    now: datetime | None = None,
) -> TokenRecord:
    """Issue a scan token for an item and holder.

    The sealed payload carries the item and holder identity; the random token
    is what the registry is keyed on.

    Parameters
    ----------
    session : AsyncSession
        Active database session. Not committed.
    codec : QRCodec
        Codec used to seal the payload.
    item_id : int
        Item identifier.
    holder_id : int
        Holder identifier.
    serial_number : str
        Item serial number.
    label : str
        Item brand or label.
    now : datetime | None, default=None
        Issue time, defaults to now.

    Returns
    -------
    TokenRecord
        Persisted active token record.
    """
    now = now or utcnow()
    qr_data = codec.encrypt(
        QRPayload(
            item_id=item_id,
            holder_id=holder_id,
            serial_number=serial_number,
            label=label,
        )
    )
    return await tokens.issue_token_record(
        session,
        item_id=item_id,
        holder_id=holder_id,
        token=generate_scan_token(),
        qr_data=qr_data,
        issued_at=now,
        expires_at=now + timedelta(days=get_settings().token_ttl_days),
    )


def validate_registration(*, serial_number: str, label: str) -> list[str]:
    """Return field validation errors for a registration request."""
    errors: list[str] = []
    if not serial_number:
        errors.append("Serial number is required")
    elif len(serial_number) < MIN_SERIAL_LENGTH:
        errors.append(
            f"Serial number must be at least {MIN_SERIAL_LENGTH} characters"
        )
    if not label:
        errors.append("Label is required")
    elif len(label) < MIN_LABEL_LENGTH:
        errors.append(f"Label must be at least {MIN_LABEL_LENGTH} characters")
    return errors


async def _ensure_serial_available(session: AsyncSession, serial_number: str) -> None:
    """Ensure no item is registered under a serial number.

    Parameters
    ----------
    session : AsyncSession
        Active database session.
    serial_number : str
        Requested serial number.

    Returns
    -------
    None
        Raises on conflict.
    """
    if await registry.find_item_by_serial(session, serial_number) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An item with this serial number already exists",
        )


async def register_item_for_holder(
    session: AsyncSession,
    codec: QRCodec,
    *,
    holder_id: int,
    serial_number: str,
    label: str,
    image_ref: str | None = None,
    operator_id: int | None = None,
) -> tuple[Item, TokenRecord]:
    """Register an item for a holder and issue its scan token.

    Everything runs in one transaction; on any failure nothing is kept,
    including the item row.

    Parameters
    ----------
    session : AsyncSession
        Active database session. Committed on success.
    codec : QRCodec
        Codec used to seal the QR payload.
    holder_id : int
        Holder who will carry the item.
    serial_number : str
        Item serial number.
    label : str
        Item brand or label.
    image_ref : str | None, default=None
        Optional image reference.
    operator_id : int | None, default=None
        Registering operator for the audit trail.

    Returns
    -------
    tuple[Item, TokenRecord]
        New item and its token record.
    """
    serial_number = serial_number.strip()
    label = label.strip()

    errors = validate_registration(serial_number=serial_number, label=label)
    if errors:
        raise RegistrationError(errors)
    if await registry.get_holder(session, holder_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Holder not found",
        )
    await _ensure_serial_available(session, serial_number)

    try:
        item = Item(
            serial_number=serial_number,
            label=label,
            image_ref=image_ref,
            active=True,
        )
        session.add(item)
        await session.flush()
        session.add(HolderItem(holder_id=holder_id, item_id=item.id, status="active"))
        token_record = await issue_token(
            session,
            codec,
            item_id=item.id,
            holder_id=holder_id,
            serial_number=serial_number,
            label=label,
        )
        await log_event(
            session,
            operator_id=operator_id,
            action="item_registered",
            resource_type="item",
            resource_id=item.id,
            metadata={"holder_id": holder_id, "token_id": token_record.id},
        )
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An item with this serial number already exists",
        ) from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("Item registration failed for holder %s", holder_id, exc_info=True)
        raise StorageError("Unable to register item") from exc
    except CustodyGateError:
        await session.rollback()
        logger.error("Item registration failed for holder %s", holder_id, exc_info=True)
        raise

    logger.info("Registered item %s for holder %s", item.id, holder_id)
    return item, token_record


async def get_qr_for_item(
    session: AsyncSession, *, item_id: int, holder_id: int
) -> TokenRecord | None:
    """Return the active token whose ``qr_data`` is rendered into the QR code."""
    return await tokens.find_active_by_item_and_holder(session, item_id, holder_id)
