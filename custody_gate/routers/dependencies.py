"""Shared router helpers."""

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession

from custody_gate.config import get_settings
from custody_gate.crypto.codec import QRCodec


@lru_cache(maxsize=1)
def get_codec() -> QRCodec:
    """Return the cached QR codec.

    Returns
    -------
    QRCodec
        Codec bound to the configured key.
    """
    return QRCodec(get_settings().qr_key_bytes)


async def commit_session(session: AsyncSession) -> None:
    """Commit the current transaction.

    Parameters
    ----------
    session : AsyncSession
        Active database session.

    Returns
    -------
    None
        Commits current transaction.
    """
    await session.commit()
