"""Scan decoding tests."""

import pytest

from custody_gate.services.scan import (
    BareToken,
    RawIdentifiers,
    TokenEnvelope,
    coerce_identifier,
    parse_scan,
)


class TestParseScan:
    """Classification of raw scan strings."""

    def test_plain_string_is_bare_token(self) -> None:
        """Treat non-JSON input as a bare token.

        Returns
        -------
        None
            Asserts bare token decoding.
        """
        assert parse_scan("tok123") == BareToken("tok123")
        assert parse_scan("  tok123\n") == BareToken("tok123")

    def test_non_object_json_is_bare_token(self) -> None:
        """Treat JSON scalars and arrays as bare tokens.

        Returns
        -------
        None
            Asserts only JSON objects are structured.
        """
        assert parse_scan("12345") == BareToken("12345")
        assert isinstance(parse_scan("[1, 2]"), BareToken)

    def test_object_with_token_is_envelope(self) -> None:
        """Decode a token envelope with optional identifiers.

        Returns
        -------
        None
            Asserts envelope decoding.
        """
        assert parse_scan('{"token": "tok123"}') == TokenEnvelope(token="tok123")
        assert parse_scan(
            '{"token": "tok123", "equipo_id": 5, "aprendiz_id": "9"}'
        ) == TokenEnvelope(token="tok123", item_id=5, holder_id=9)

    @pytest.mark.parametrize("token", ['""', "null", "false", '"   "'])
    def test_empty_token_falls_back_to_identifiers(self, token: str) -> None:
        """Ignore blank token fields.

        Parameters
        ----------
        token : str
            JSON literal used as the token value.

        Returns
        -------
        None
            Asserts raw identifier decoding.
        """
        raw = f'{{"token": {token}, "equipo_id": 5, "aprendiz_id": 9}}'
        assert parse_scan(raw) == RawIdentifiers(item_id=5, holder_id=9)

    def test_object_without_token_is_raw_identifiers(self) -> None:
        """Decode identifier-only objects, absent fields included.

        Returns
        -------
        None
            Asserts raw identifier decoding.
        """
        assert parse_scan('{"equipo_id": 5, "aprendiz_id": 9}') == RawIdentifiers(5, 9)
        assert parse_scan('{"equipo_id": 5}') == RawIdentifiers(5, None)
        assert parse_scan("{}") == RawIdentifiers(None, None)


class TestCoerceIdentifier:
    """Identifier coercion rules."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (5, 5),
            (5.0, 5),
            ("42", 42),
            (" 7 ", 7),
            (0, None),
            (-3, None),
            ("-3", None),
            (5.5, None),
            (True, None),
            ("abc", None),
            ("٣", None),
            (None, None),
            ([5], None),
        ],
    )
    def test_coercion(self, value: object, expected: int | None) -> None:
        """Accept positive integers in the forms scanners produce.

        Parameters
        ----------
        value : object
            Raw JSON value.
        expected : int | None
            Expected identifier.

        Returns
        -------
        None
            Asserts coercion.
        """
        assert coerce_identifier(value) == expected
