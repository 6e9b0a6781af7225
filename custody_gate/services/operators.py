"""Operator provisioning."""

from __future__ import annotations

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from custody_gate.models.operator import ROLE_ADMINISTRATOR, Operator
from custody_gate.models.token import OperatorToken
from custody_gate.services.security import (
    generate_operator_token,
    hash_token,
    lookup_hash,
)

TOKEN_PREFIXES = {ROLE_ADMINISTRATOR: "adm"}


async def create_operator(
    session: AsyncSession, *, name: str, role: str
) -> tuple[Operator, str]:
    """Create an operator and its first bearer token.

    Parameters
    ----------
    session : AsyncSession
        Active database session. Not committed.
    name : str
        Unique operator name.
    role : str
        Operator role.

    Returns
    -------
    tuple[Operator, str]
        New operator and the plaintext token, shown exactly once.
    """
    result = await session.execute(select(Operator.id).where(Operator.name == name))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Operator name already exists",
        )
    operator = Operator(name=name, role=role)
    session.add(operator)
    await session.flush()

    plaintext = generate_operator_token(TOKEN_PREFIXES.get(role, "gk"))
    session.add(
        OperatorToken(
            operator_id=operator.id,
            token_hash=hash_token(plaintext),
            token_lookup=lookup_hash(plaintext),
        )
    )
    await session.flush()
    return operator, plaintext
