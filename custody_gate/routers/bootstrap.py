"""Bootstrap routes."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from custody_gate.config import get_settings
from custody_gate.database import get_session
from custody_gate.models.operator import ROLE_ADMINISTRATOR
from custody_gate.routers.dependencies import commit_session
from custody_gate.schemas.bootstrap import BootstrapRequest, BootstrapResponse
from custody_gate.schemas.common import OperatorTokenResponse
from custody_gate.services.audit import log_event
from custody_gate.services.auth import ensure_bootstrap_allowed
from custody_gate.services.operators import create_operator

router = APIRouter(prefix="/v1", tags=["bootstrap"])


@router.post("/bootstrap", response_model=BootstrapResponse)
async def bootstrap(
    payload: BootstrapRequest,
    session: AsyncSession = Depends(get_session),
) -> BootstrapResponse:
    """Create the first administrator and its token.

    Parameters
    ----------
    payload : BootstrapRequest
        Bootstrap request.
    session : AsyncSession
        Active database session.

    Returns
    -------
    BootstrapResponse
        Created administrator and token.
    """
    if not get_settings().bootstrap_enabled:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Bootstrap disabled",
        )
    await ensure_bootstrap_allowed(session)

    operator, plaintext = await create_operator(
        session, name=payload.administrator_name, role=ROLE_ADMINISTRATOR
    )
    await log_event(
        session,
        operator_id=operator.id,
        action="checkpoint_bootstrapped",
        resource_type="operator",
        resource_id=operator.id,
        metadata={"name": operator.name},
    )
    await commit_session(session)
    return BootstrapResponse(
        administrator=OperatorTokenResponse(
            id=operator.id,
            name=operator.name,
            role=operator.role,
            token=plaintext,
        ),
    )
