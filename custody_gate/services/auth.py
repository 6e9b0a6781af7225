"""Authentication dependencies."""

from __future__ import annotations

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from custody_gate.database import get_session
from custody_gate.models.operator import Operator
from custody_gate.models.token import OperatorToken
from custody_gate.services.security import lookup_hash, verify_token

bearer_scheme = HTTPBearer(auto_error=False)


async def require_operator(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
) -> Operator:
    """Authenticate any checkpoint operator.

    Parameters
    ----------
    credentials : HTTPAuthorizationCredentials | None
        Parsed bearer token.
    session : AsyncSession
        Active database session.

    Returns
    -------
    Operator
        Authenticated operator.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing token",
        )
    operator = await _match_operator(session, credentials.credentials)
    if operator is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid operator token",
        )
    return operator


async def require_administrator(
    operator: Operator = Depends(require_operator),
) -> Operator:
    """Authenticate an administrator.

    Parameters
    ----------
    operator : Operator
        Authenticated operator.

    Returns
    -------
    Operator
        Authenticated administrator.
    """
    if not operator.is_administrator:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator role required",
        )
    return operator


async def ensure_bootstrap_allowed(session: AsyncSession) -> None:
    """Ensure bootstrap can still run.

    Parameters
    ----------
    session : AsyncSession
        Active database session.

    Returns
    -------
    None
        Raises when bootstrap is already complete.
    """
    result = await session.execute(select(Operator.id).limit(1))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Bootstrap already completed",
        )


async def _match_operator(session: AsyncSession, raw_token: str) -> Operator | None:
    """Match a raw bearer token against stored operator tokens.

    Parameters
    ----------
    session : AsyncSession
        Active database session.
    raw_token : str
        Raw bearer token.

    Returns
    -------
    Operator | None
        Owning operator if the token is valid and not revoked.
    """
    result = await session.execute(
        select(OperatorToken).where(
            OperatorToken.token_lookup == lookup_hash(raw_token),
            OperatorToken.revoked_at.is_(None),
        )
    )
    for row in result.scalars().all():
        if verify_token(raw_token, row.token_hash):
            return await session.get(Operator, row.operator_id)
    return None
