"""Checkpoint scanning routes."""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from custody_gate.config import get_settings
from custody_gate.crypto.codec import QRCodec
from custody_gate.database import get_session
from custody_gate.models.operator import Operator
from custody_gate.routers.dependencies import get_codec
from custody_gate.schemas.checkpoint import (
    ActiveSessionsResponse,
    CustodySessionResponse,
    HolderSummary,
    ItemSummary,
    ScanRequest,
    ScanResponse,
)
from custody_gate.services import ledger
from custody_gate.services.auth import require_operator
from custody_gate.services.checkpoint import ScanAccepted, ScanResult, process_scan

router = APIRouter(prefix="/v1/checkpoint", tags=["checkpoint"])


@router.post("/scan", response_model=ScanResponse)
async def scan(
    payload: ScanRequest,
    response: Response,
    operator: Operator = Depends(require_operator),
    codec: QRCodec = Depends(get_codec),
    session: AsyncSession = Depends(get_session),
) -> ScanResponse:
    """Record an entry or exit for a scanned QR code."""
    result = await process_scan(
        session,
        codec,
        raw_scan=payload.qr_data,
        operator_id=operator.id,
        notes=payload.notes,
        allow_unverified=get_settings().allow_unverified_scans,
    )
    if not isinstance(result, ScanAccepted):
        response.status_code = status.HTTP_400_BAD_REQUEST
    return scan_response(result)


@router.get("/active", response_model=ActiveSessionsResponse)
async def list_active_sessions(
    limit: int = Query(default=20, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    _: Operator = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> ActiveSessionsResponse:
    """List items currently checked in."""
    rows = await ledger.list_open_sessions(session, limit=limit, offset=offset)
    total = await ledger.count_open_sessions(session)
    return ActiveSessionsResponse(
        total=total,
        limit=limit,
        offset=offset,
        sessions=[CustodySessionResponse.model_validate(row) for row in rows],
    )


def scan_response(result: ScanResult) -> ScanResponse:
    """Serialize a scan result.

    Parameters
    ----------
    result : ScanResult
        Accepted or rejected scan.

    Returns
    -------
    ScanResponse
        API payload.
    """
    if isinstance(result, ScanAccepted):
        return ScanResponse(
            kind=result.kind.value,
            message=result.message,
            trust=result.trust.value,
            item=ItemSummary.model_validate(result.item),
            holder=HolderSummary.model_validate(result.holder),
            custody_session=CustodySessionResponse.model_validate(
                result.custody_session
            ),
        )
    return ScanResponse(
        kind=result.kind.value,
        message=result.message,
        reason=result.reason.value,
    )
