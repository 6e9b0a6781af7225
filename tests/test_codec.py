"""QR codec tests."""

import base64
import json

import pytest

from custody_gate.crypto.codec import (
    NONCE_LENGTH,
    TAG_LENGTH,
    QRCodec,
    QRPayload,
)
from custody_gate.exceptions import CryptoError

PAYLOAD = QRPayload(item_id=5, holder_id=9, serial_number="SN-001", label="Dell")


class TestQRCodec:
    """Sealing and opening of QR payloads."""

    def test_round_trip_preserves_payload(self, codec: QRCodec) -> None:
        """Open what was sealed.

        Parameters
        ----------
        codec : QRCodec
            Codec bound to the test key.

        Returns
        -------
        None
            Asserts the payload survives sealing.
        """
        assert codec.decrypt(codec.encrypt(PAYLOAD)) == PAYLOAD

    def test_blob_layout_and_fresh_nonce(self, codec: QRCodec) -> None:
        """Use a fresh nonce per call and the nonce, tag, ciphertext layout.

        Parameters
        ----------
        codec : QRCodec
            Codec bound to the test key.

        Returns
        -------
        None
            Asserts blob structure.
        """
        first = codec.encrypt(PAYLOAD)
        second = codec.encrypt(PAYLOAD)
        assert first != second

        plaintext = json.dumps(
            PAYLOAD.to_dict(), sort_keys=True, separators=(",", ":")
        ).encode("utf-8")
        raw = base64.b64decode(first)
        assert len(raw) == NONCE_LENGTH + TAG_LENGTH + len(plaintext)

    def test_wire_keys_match_raw_scan_fields(self) -> None:
        """Seal identifiers under the same keys raw scans use.

        Returns
        -------
        None
            Asserts wire field names.
        """
        assert PAYLOAD.to_dict() == {
            "equipo_id": 5,
            "aprendiz_id": 9,
            "numero_serial": "SN-001",
            "marca": "Dell",
        }

    @pytest.mark.parametrize("length", [0, 16, 31, 33, 64])
    def test_rejects_wrong_key_length(self, length: int) -> None:
        """Refuse keys that are not 32 bytes.

        Parameters
        ----------
        length : int
            Key length under test.

        Returns
        -------
        None
            Asserts construction fails.
        """
        with pytest.raises(CryptoError):
            QRCodec(b"k" * length)

    def test_every_flipped_byte_fails_authentication(self, codec: QRCodec) -> None:
        """Reject a blob with any single byte altered.

        Parameters
        ----------
        codec : QRCodec
            Codec bound to the test key.

        Returns
        -------
        None
            Asserts tamper detection across nonce, tag and ciphertext.
        """
        raw = bytearray(base64.b64decode(codec.encrypt(PAYLOAD)))
        for index in range(len(raw)):
            tampered = bytearray(raw)
            tampered[index] ^= 0x01
            blob = base64.b64encode(bytes(tampered)).decode("ascii")
            with pytest.raises(CryptoError):
                codec.decrypt(blob)

    def test_wrong_key_fails_authentication(self, codec: QRCodec) -> None:
        """Reject a blob sealed under another key.

        Parameters
        ----------
        codec : QRCodec
            Codec bound to the test key.

        Returns
        -------
        None
            Asserts key binding.
        """
        other = QRCodec(b"f" * 32)
        with pytest.raises(CryptoError):
            other.decrypt(codec.encrypt(PAYLOAD))

    @pytest.mark.parametrize(
        "blob",
        [
            "not base64 at all!",
            base64.b64encode(b"x" * (NONCE_LENGTH + TAG_LENGTH)).decode("ascii"),
            "",
        ],
    )
    def test_rejects_malformed_blobs(self, codec: QRCodec, blob: str) -> None:
        """Reject non-base64 and truncated input.

        Parameters
        ----------
        codec : QRCodec
            Codec bound to the test key.
        blob : str
            Malformed input.

        Returns
        -------
        None
            Asserts CryptoError.
        """
        with pytest.raises(CryptoError):
            codec.decrypt(blob)

    def test_looks_encrypted_is_structural(self, codec: QRCodec) -> None:
        """Classify strings by shape only.

        Parameters
        ----------
        codec : QRCodec
            Codec bound to the test key.

        Returns
        -------
        None
            Asserts the heuristic.
        """
        assert codec.looks_encrypted(codec.encrypt(PAYLOAD))
        assert codec.looks_encrypted(base64.b64encode(b"z" * 29).decode("ascii"))
        assert not codec.looks_encrypted(base64.b64encode(b"z" * 28).decode("ascii"))
        assert not codec.looks_encrypted("tok123")
        assert not codec.looks_encrypted('{"token": "abc"}')


class TestQRPayload:
    """Payload shape validation."""

    def test_from_dict_rejects_missing_identifiers(self) -> None:
        """Refuse payloads without integer identifiers.

        Returns
        -------
        None
            Asserts shape validation.
        """
        with pytest.raises(CryptoError):
            QRPayload.from_dict({"equipo_id": "5", "aprendiz_id": 9})
        with pytest.raises(CryptoError):
            QRPayload.from_dict([5, 9])
