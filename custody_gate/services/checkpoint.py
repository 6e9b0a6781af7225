"""Checkpoint scan orchestration.

A scan is decoded, resolved to an item and holder, and then either opens a
custody session (entry) or closes the item's open session (exit). Rejections
are returned as values; only unexpected storage failures raise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from custody_gate.crypto.codec import QRCodec
from custody_gate.exceptions import CryptoError, ProcessingError
from custody_gate.models.custody import CustodySession
from custody_gate.models.holder import Holder
from custody_gate.models.item import Item
from custody_gate.models.mixins import as_utc, utcnow
from custody_gate.models.token import TokenRecord
from custody_gate.services import ledger, registry, tokens
from custody_gate.services.audit import log_event
from custody_gate.services.scan import (
    BareToken,
    RawIdentifiers,
    ScanPayload,
    TokenEnvelope,
    parse_scan,
)

logger = logging.getLogger(__name__)


class ScanKind(str, Enum):
    """Outcome of a scan."""

    ENTRY = "entry"
    EXIT = "exit"
    REJECTED = "rejected"


class TrustTier(str, Enum):
    """How strongly an accepted scan was authenticated.

    ``VERIFIED`` scans presented a registered token or a sealed QR blob.
    ``UNVERIFIED`` scans only named identifiers, which anyone can type.
    """

    VERIFIED = "verified"
    UNVERIFIED = "unverified"


class RejectionReason(str, Enum):
    """Why a scan was refused."""

    UNKNOWN_TOKEN = "unknown_token"
    INVALID_OR_INACTIVE_TOKEN = "invalid_or_inactive_token"
    TOKEN_DEACTIVATED = "token_deactivated"
    TOKEN_EXPIRED = "token_expired"
    MISSING_IDENTIFIERS = "missing_identifiers"
    ITEM_NOT_FOUND = "item_not_found"
    HOLDER_NOT_FOUND = "holder_not_found"
    UNVERIFIED_SCAN_REJECTED = "unverified_scan_rejected"
    CONCURRENT_SCAN = "concurrent_scan"


REJECTION_MESSAGES: dict[RejectionReason, str] = {
    RejectionReason.UNKNOWN_TOKEN: "QR code not recognized",
    RejectionReason.INVALID_OR_INACTIVE_TOKEN: "QR code is invalid or inactive",
    RejectionReason.TOKEN_DEACTIVATED: "This QR code has been deactivated",
    RejectionReason.TOKEN_EXPIRED: "This QR code has expired",
    RejectionReason.MISSING_IDENTIFIERS: "QR code is missing item or holder data",
    RejectionReason.ITEM_NOT_FOUND: "Item not found",
    RejectionReason.HOLDER_NOT_FOUND: "Holder not found",
    RejectionReason.UNVERIFIED_SCAN_REJECTED: "Unverified QR codes are not accepted",
    RejectionReason.CONCURRENT_SCAN: "Item was scanned concurrently, scan again",
}


@dataclass(frozen=True, slots=True)
class ScanAccepted:
    """Entry or exit recorded for a scan."""

    kind: ScanKind
    trust: TrustTier
    item: Item
    holder: Holder
    custody_session: CustodySession

    @property
    def message(self) -> str:
        """Return a short summary for the operator."""
        action = "Entry" if self.kind is ScanKind.ENTRY else "Exit"
        return (
            f"{action} recorded: {self.item.label} - "
            f"Serial: {self.item.serial_number}"
        )


@dataclass(frozen=True, slots=True)
class ScanRejected:
    """Scan refused without touching the ledger."""

    reason: RejectionReason
    kind: ScanKind = ScanKind.REJECTED

    @property
    def message(self) -> str:
        """Return a short summary for the operator."""
        return REJECTION_MESSAGES[self.reason]


ScanResult = Union[ScanAccepted, ScanRejected]


@dataclass(slots=True)
class _Credential:
    """Identifiers resolved from a scan, before entity lookup."""

    item_id: int | None
    holder_id: int | None
    record: TokenRecord | None
    proven: bool


async def process_scan(
    session: AsyncSession,
    codec: QRCodec,
    *,
    raw_scan: str,
    operator_id: int,
    notes: str | None = None,
    allow_unverified: bool = True,
    now: datetime | None = None,
) -> ScanResult:
    """Process one checkpoint scan.

    Parameters
    ----------
    session : AsyncSession
        Active database session. Committed on entry or exit.
    codec : QRCodec
        Codec used to open sealed QR blobs.
    raw_scan : str
        String read from the QR code.
    operator_id : int
        Scanning operator.
    notes : str | None, default=None
        Free-text notes stored on the session.
    allow_unverified : bool, default=True
        Whether identifier-only scans are accepted.
    now : datetime | None, default=None
        Scan time, defaults to now.

    Returns
    -------
    ScanResult
        Accepted entry/exit or a rejection.
    """
    now = now or utcnow()
    resolved = await _resolve_credential(session, codec, parse_scan(raw_scan))
    if isinstance(resolved, RejectionReason):
        return _reject(resolved, operator_id)

    record = resolved.record
    if record is not None:
        if not record.active:
            return _reject(RejectionReason.TOKEN_DEACTIVATED, operator_id)
        if now > as_utc(record.expires_at):
            return _reject(RejectionReason.TOKEN_EXPIRED, operator_id)

    item_id, holder_id = resolved.item_id, resolved.holder_id
    if item_id is None or holder_id is None or item_id <= 0 or holder_id <= 0:
        return _reject(RejectionReason.MISSING_IDENTIFIERS, operator_id)

    trust = _trust_tier(resolved)
    if trust is TrustTier.UNVERIFIED and not allow_unverified:
        return _reject(RejectionReason.UNVERIFIED_SCAN_REJECTED, operator_id)

    try:
        item = await registry.get_item_for_update(session, item_id)
        if item is None:
            await session.rollback()
            return _reject(RejectionReason.ITEM_NOT_FOUND, operator_id)
        holder = await registry.get_holder(session, holder_id)
        if holder is None:
            await session.rollback()
            return _reject(RejectionReason.HOLDER_NOT_FOUND, operator_id)

        open_session = await ledger.find_open_session(session, item_id)
        if open_session is not None:
            custody_session = await ledger.close_session(
                session, open_session, operator_id=operator_id, notes=notes, now=now
            )
            kind = ScanKind.EXIT
        else:
            custody_session = await ledger.open_session(
                session,
                item_id=item_id,
                holder_id=holder_id,
                operator_id=operator_id,
                notes=notes,
                now=now,
            )
            kind = ScanKind.ENTRY

        await log_event(
            session,
            operator_id=operator_id,
            action="custody_opened" if kind is ScanKind.ENTRY else "custody_closed",
            resource_type="custody_session",
            resource_id=custody_session.id,
            metadata={
                "item_id": item_id,
                "holder_id": holder_id,
                "trust": trust.value,
            },
        )
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.warning("Concurrent scan for item %s lost the open race", item_id)
        return _reject(RejectionReason.CONCURRENT_SCAN, operator_id)
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("Checkpoint write failed for item %s", item_id, exc_info=True)
        raise ProcessingError("Unable to record checkpoint scan") from exc

    logger.info(
        "Scan %s: item=%s holder=%s session=%s trust=%s operator=%s",
        kind.value,
        item_id,
        holder_id,
        custody_session.id,
        trust.value,
        operator_id,
    )
    return ScanAccepted(
        kind=kind,
        trust=trust,
        item=item,
        holder=holder,
        custody_session=custody_session,
    )


async def _resolve_credential(
    session: AsyncSession, codec: QRCodec, payload: ScanPayload
) -> _Credential | RejectionReason:
    """Resolve a decoded scan to identifiers and an optional token record."""
    if isinstance(payload, BareToken):
        record = await tokens.find_by_token(session, payload.value)
        if record is not None:
            return _Credential(record.item_id, record.holder_id, record, proven=True)
        if codec.looks_encrypted(payload.value):
            return await _resolve_sealed_blob(session, codec, payload.value)
        return RejectionReason.UNKNOWN_TOKEN

    if isinstance(payload, TokenEnvelope):
        record = await tokens.find_by_token(session, payload.token)
        if record is None:
            return RejectionReason.INVALID_OR_INACTIVE_TOKEN
        return _Credential(
            item_id=payload.item_id or record.item_id,
            holder_id=payload.holder_id or record.holder_id,
            record=record,
            proven=True,
        )

    if isinstance(payload, RawIdentifiers):
        record = None
        if payload.item_id is not None and payload.holder_id is not None:
            # No match is fine: externally generated codes carry only ids.
            record = await tokens.find_active_by_item_and_holder(
                session, payload.item_id, payload.holder_id
            )
        return _Credential(payload.item_id, payload.holder_id, record, proven=False)

    raise TypeError(f"Unsupported scan payload: {payload!r}")


async def _resolve_sealed_blob(
    session: AsyncSession, codec: QRCodec, blob: str
) -> _Credential | RejectionReason:
    """Open a scanned QR blob and bind it to its current token record."""
    try:
        qr_payload = codec.decrypt(blob)
    except CryptoError:
        return RejectionReason.UNKNOWN_TOKEN
    record = await tokens.find_active_by_item_and_holder(
        session, qr_payload.item_id, qr_payload.holder_id
    )
    if record is None or record.qr_data != blob:
        return RejectionReason.INVALID_OR_INACTIVE_TOKEN
    return _Credential(qr_payload.item_id, qr_payload.holder_id, record, proven=True)


def _trust_tier(credential: _Credential) -> TrustTier:
    """Classify how the identifiers were established."""
    record = credential.record
    if not credential.proven or record is None:
        return TrustTier.UNVERIFIED
    if (credential.item_id, credential.holder_id) != (record.item_id, record.holder_id):
        return TrustTier.UNVERIFIED
    return TrustTier.VERIFIED


def _reject(reason: RejectionReason, operator_id: int) -> ScanRejected:
    """Build a rejection and log it without payload contents."""
    logger.info("Scan rejected: reason=%s operator=%s", reason.value, operator_id)
    return ScanRejected(reason=reason)
