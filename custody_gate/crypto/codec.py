"""Authenticated encryption of QR payloads."""

from __future__ import annotations

import base64
import binascii
import json
import os
from dataclasses import dataclass
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from custody_gate.exceptions import CryptoError

KEY_LENGTH = 32
NONCE_LENGTH = 12
TAG_LENGTH = 16

ITEM_ID_FIELD = "equipo_id"
HOLDER_ID_FIELD = "aprendiz_id"
SERIAL_FIELD = "numero_serial"
LABEL_FIELD = "marca"


@dataclass(frozen=True, slots=True)
class QRPayload:
    """Identity data sealed into an issued QR code.

    Attributes
    ----------
    item_id : int
        Item identifier.
    holder_id : int
        Holder identifier.
    serial_number : str
        Item serial number.
    label : str
        Item brand or label.
    """

    item_id: int
    holder_id: int
    serial_number: str
    label: str

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation.

        Returns
        -------
        dict[str, Any]
            Payload keyed by the scan protocol field names.
        """
        return {
            ITEM_ID_FIELD: self.item_id,
            HOLDER_ID_FIELD: self.holder_id,
            SERIAL_FIELD: self.serial_number,
            LABEL_FIELD: self.label,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "QRPayload":
        """Build a payload from its wire representation.

        Parameters
        ----------
        data : Any
            Decoded JSON value.

        Returns
        -------
        QRPayload
            Parsed payload.
        """
        if not isinstance(data, dict):
            raise CryptoError("Decrypted payload is not an object")
        item_id = data.get(ITEM_ID_FIELD)
        holder_id = data.get(HOLDER_ID_FIELD)
        if type(item_id) is not int or type(holder_id) is not int:
            raise CryptoError("Decrypted payload is missing identifiers")
        return cls(
            item_id=item_id,
            holder_id=holder_id,
            serial_number=str(data.get(SERIAL_FIELD, "")),
            label=str(data.get(LABEL_FIELD, "")),
        )


class QRCodec:
    """AES-256-GCM sealing for QR payloads.

    Blobs are ``base64(nonce || tag || ciphertext)`` with a 12-byte nonce and
    a 16-byte tag.

    Parameters
    ----------
    key : bytes
        32-byte symmetric key.
    """

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_LENGTH:
            raise CryptoError(f"Encryption key must be exactly {KEY_LENGTH} bytes")
        self._aead = AESGCM(key)

    def encrypt(self, payload: QRPayload) -> str:
        """Seal a payload.

        Parameters
        ----------
        payload : QRPayload
            Payload to seal.

        Returns
        -------
        str
            Base64 blob.
        """
        plaintext = json.dumps(
            payload.to_dict(),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        ).encode("utf-8")
        try:
            nonce = os.urandom(NONCE_LENGTH)
            sealed = self._aead.encrypt(nonce, plaintext, None)
        except (OSError, ValueError, OverflowError) as exc:
            raise CryptoError("Unable to encrypt QR payload") from exc
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return base64.b64encode(nonce + tag + ciphertext).decode("ascii")

    def decrypt(self, blob: str) -> QRPayload:
        """Open a sealed payload.

        Parameters
        ----------
        blob : str
            Base64 blob produced by :meth:`encrypt`.

        Returns
        -------
        QRPayload
            Verified payload.
        """
        try:
            raw = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise CryptoError("QR data is not valid base64") from exc
        if len(raw) < NONCE_LENGTH + TAG_LENGTH + 1:
            raise CryptoError("QR data is truncated")

        nonce = raw[:NONCE_LENGTH]
        tag = raw[NONCE_LENGTH : NONCE_LENGTH + TAG_LENGTH]
        ciphertext = raw[NONCE_LENGTH + TAG_LENGTH :]
        try:
            plaintext = self._aead.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as exc:
            raise CryptoError("QR data failed authentication") from exc

        try:
            data = json.loads(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CryptoError("QR plaintext is not valid JSON") from exc
        return QRPayload.from_dict(data)

    @staticmethod
    def looks_encrypted(blob: str) -> bool:
        """Return whether a string has the shape of a sealed blob.

        This is a structural heuristic, not a security check.

        Parameters
        ----------
        blob : str
            Candidate string.

        Returns
        -------
        bool
            Whether the string is base64 of plausible length.
        """
        try:
            raw = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError):
            return False
        return len(raw) >= NONCE_LENGTH + TAG_LENGTH + 1
