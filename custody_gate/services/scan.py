"""Decoding of raw checkpoint scans.

A scanner hands over whatever string the QR code carried. Three shapes are
accepted:

``BareToken``
    Any string that is not a JSON object, e.g. ``"a1b2c3..."``.
``TokenEnvelope``
    A JSON object with a ``token`` field, optionally carrying identifiers.
``RawIdentifiers``
    A JSON object without a token, e.g. ``{"equipo_id": 42, "aprendiz_id": 7}``.

Decoding is pure and never touches storage.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

from custody_gate.crypto.codec import HOLDER_ID_FIELD, ITEM_ID_FIELD

TOKEN_FIELD = "token"


@dataclass(frozen=True, slots=True)
class BareToken:
    """The whole scan string is a token (or a sealed QR blob)."""

    value: str


@dataclass(frozen=True, slots=True)
class TokenEnvelope:
    """Structured scan naming a token."""

    token: str
    item_id: int | None = None
    holder_id: int | None = None


@dataclass(frozen=True, slots=True)
class RawIdentifiers:
    """Structured scan carrying identifiers without a credential."""

    item_id: int | None = None
    holder_id: int | None = None


ScanPayload = Union[BareToken, TokenEnvelope, RawIdentifiers]


def parse_scan(raw_scan: str) -> ScanPayload:
    """Classify a raw scan string.

    Parameters
    ----------
    raw_scan : str
        String read from the QR code.

    Returns
    -------
    ScanPayload
        Decoded scan shape.
    """
    try:
        record = json.loads(raw_scan)
    except (json.JSONDecodeError, RecursionError):
        return BareToken(raw_scan.strip())
    if not isinstance(record, dict):
        return BareToken(raw_scan.strip())

    item_id = coerce_identifier(record.get(ITEM_ID_FIELD))
    holder_id = coerce_identifier(record.get(HOLDER_ID_FIELD))
    token = record.get(TOKEN_FIELD)
    if token not in (None, False, "") and str(token).strip():
        return TokenEnvelope(
            token=str(token).strip(), item_id=item_id, holder_id=holder_id
        )
    return RawIdentifiers(item_id=item_id, holder_id=holder_id)


def coerce_identifier(value: Any) -> int | None:
    """Read a positive integer identifier from a JSON value.

    Accepts integers, integral floats and digit strings. Anything else,
    including booleans and non-positive numbers, counts as absent.

    Parameters
    ----------
    value : Any
        Raw JSON value.

    Returns
    -------
    int | None
        Identifier, or None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        number = int(value.strip())
    else:
        return None
    return number if number > 0 else None
