"""Admin routes."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from custody_gate.config import get_settings
from custody_gate.crypto.codec import QRCodec
from custody_gate.database import get_session
from custody_gate.exceptions import RegistrationError
from custody_gate.models.audit import AuditLog
from custody_gate.models.operator import Operator
from custody_gate.routers.dependencies import commit_session, get_codec
from custody_gate.schemas.admin import (
    AnomalyResponse,
    AuditResponse,
    ItemRegisterRequest,
    ItemRegisterResponse,
    OperatorCreateRequest,
    SweepRequest,
    SweepResponse,
    TokenRecordResponse,
)
from custody_gate.schemas.checkpoint import CustodySessionResponse, ItemSummary
from custody_gate.schemas.common import OperatorTokenResponse
from custody_gate.services import anomalies, ledger, registry, tokens
from custody_gate.services.audit import log_event
from custody_gate.services.auth import require_administrator
from custody_gate.services.issuance import get_qr_for_item, register_item_for_holder
from custody_gate.services.operators import create_operator

router = APIRouter(prefix="/v1/admin", tags=["admin"])


@router.post("/operators", response_model=OperatorTokenResponse)
async def create_operator_route(
    payload: OperatorCreateRequest,
    administrator: Operator = Depends(require_administrator),
    session: AsyncSession = Depends(get_session),
) -> OperatorTokenResponse:
    """Create an operator and return its token once."""
    operator, plaintext = await create_operator(
        session, name=payload.name, role=payload.role
    )
    await log_event(
        session,
        operator_id=administrator.id,
        action="operator_created",
        resource_type="operator",
        resource_id=operator.id,
        metadata={"name": operator.name, "role": operator.role},
    )
    await commit_session(session)
    return OperatorTokenResponse(
        id=operator.id, name=operator.name, role=operator.role, token=plaintext
    )


@router.post("/items", response_model=ItemRegisterResponse)
async def register_item(
    payload: ItemRegisterRequest,
    administrator: Operator = Depends(require_administrator),
    codec: QRCodec = Depends(get_codec),
    session: AsyncSession = Depends(get_session),
) -> ItemRegisterResponse:
    """Register an item for a holder and issue its scan token."""
    try:
        item, token_record = await register_item_for_holder(
            session,
            codec,
            holder_id=payload.holder_id,
            serial_number=payload.serial_number,
            label=payload.label,
            image_ref=payload.image_ref,
            operator_id=administrator.id,
        )
    except RegistrationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return ItemRegisterResponse(item_id=item.id, token=token_record.token)


@router.get("/items/{item_id}/qr", response_model=TokenRecordResponse)
async def get_item_qr(
    item_id: int,
    holder_id: int = Query(gt=0),
    _: Operator = Depends(require_administrator),
    session: AsyncSession = Depends(get_session),
) -> TokenRecordResponse:
    """Return the active token and the QR string to render for an item."""
    token_record = await get_qr_for_item(session, item_id=item_id, holder_id=holder_id)
    if token_record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active QR code for this item",
        )
    return TokenRecordResponse.model_validate(token_record)


@router.get("/items/{item_id}/tokens", response_model=list[TokenRecordResponse])
async def list_item_tokens(
    item_id: int,
    _: Operator = Depends(require_administrator),
    session: AsyncSession = Depends(get_session),
) -> list[TokenRecordResponse]:
    """List every token issued for an item, revoked ones included."""
    if await registry.get_item(session, item_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found",
        )
    rows = await tokens.list_tokens_for_item(session, item_id)
    return [TokenRecordResponse.model_validate(row) for row in rows]


@router.get("/holders/{holder_id}/items", response_model=list[ItemSummary])
async def list_holder_items(
    holder_id: int,
    _: Operator = Depends(require_administrator),
    session: AsyncSession = Depends(get_session),
) -> list[ItemSummary]:
    """List the items registered to a holder."""
    if await registry.get_holder(session, holder_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Holder not found",
        )
    items = await registry.list_items_for_holder(session, holder_id)
    return [ItemSummary.model_validate(item) for item in items]


@router.post("/tokens/{token_id}/revoke", response_model=TokenRecordResponse)
async def revoke_token(
    token_id: int,
    administrator: Operator = Depends(require_administrator),
    session: AsyncSession = Depends(get_session),
) -> TokenRecordResponse:
    """Deactivate a scan token."""
    token_record = await tokens.revoke_token_record(session, token_id)
    if token_record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Token not found",
        )
    await log_event(
        session,
        operator_id=administrator.id,
        action="token_revoked",
        resource_type="scan_token",
        resource_id=token_record.id,
        metadata={"item_id": token_record.item_id},
    )
    await commit_session(session)
    return TokenRecordResponse.model_validate(token_record)


@router.get("/sessions", response_model=list[CustodySessionResponse])
async def list_sessions(
    item_id: int | None = Query(default=None, gt=0),
    holder_id: int | None = Query(default=None, gt=0),
    date_from: date | None = None,
    date_to: date | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    _: Operator = Depends(require_administrator),
    session: AsyncSession = Depends(get_session),
) -> list[CustodySessionResponse]:
    """List custody history."""
    rows = await ledger.list_history(
        session,
        item_id=item_id,
        holder_id=holder_id,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    return [CustodySessionResponse.model_validate(row) for row in rows]


@router.post("/anomalies/sweep", response_model=SweepResponse)
async def sweep_anomalies(
    payload: SweepRequest | None = None,
    administrator: Operator = Depends(require_administrator),
    session: AsyncSession = Depends(get_session),
) -> SweepResponse:
    """Flag items that stayed checked in past the threshold."""
    threshold = (
        payload.threshold_hours
        if payload is not None and payload.threshold_hours is not None
        else get_settings().anomaly_threshold_hours
    )
    report = await anomalies.sweep(
        session, operator_id=administrator.id, threshold_hours=threshold
    )
    return SweepResponse(
        flagged_count=report.flagged_count,
        resolved_count=report.resolved_count,
        errors=report.errors,
    )


@router.get("/anomalies", response_model=list[AnomalyResponse])
async def list_anomalies(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    _: Operator = Depends(require_administrator),
    session: AsyncSession = Depends(get_session),
) -> list[AnomalyResponse]:
    """List unresolved anomalies."""
    rows = await anomalies.list_pending_anomalies(session, limit=limit, offset=offset)
    return [AnomalyResponse.model_validate(row) for row in rows]


@router.post("/anomalies/{anomaly_id}/resolve", response_model=AnomalyResponse)
async def resolve_anomaly(
    anomaly_id: int,
    administrator: Operator = Depends(require_administrator),
    session: AsyncSession = Depends(get_session),
) -> AnomalyResponse:
    """Resolve an anomaly by hand."""
    anomaly = await anomalies.resolve_anomaly(session, anomaly_id)
    if anomaly is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Anomaly not found",
        )
    await log_event(
        session,
        operator_id=administrator.id,
        action="anomaly_resolved",
        resource_type="custody_anomaly",
        resource_id=anomaly.id,
        metadata={"session_id": anomaly.session_id},
    )
    await commit_session(session)
    return AnomalyResponse.model_validate(anomaly)


@router.get("/audit", response_model=list[AuditResponse])
async def list_audit_events(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    _: Operator = Depends(require_administrator),
    session: AsyncSession = Depends(get_session),
) -> list[AuditResponse]:
    """List audit events, newest first."""
    result = await session.execute(
        select(AuditLog)
        .order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return [AuditResponse.model_validate(row) for row in result.scalars().all()]
