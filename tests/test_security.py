# tests/test_security.py
"""Tests for token and public-key helpers."""

import pytest
from jose import jwt

from nyx_server.core.errors import AuthenticationError, ValidationError
from nyx_server.core.security import create_access_token, decode_access_token, validate_public_key
from nyx_server.core.settings import settings


def test_token_round_trip_carries_session() -> None:
    token = create_access_token("NYX-AAAAAAAA", "session-1")
    payload = decode_access_token(token)

    assert payload["sub"] == "NYX-AAAAAAAA"
    assert payload["sid"] == "session-1"
    assert payload["exp"] > payload["iat"]


def test_expired_token_is_rejected() -> None:
    token = jwt.encode(
        {"sub": "NYX-AAAAAAAA", "sid": "s", "exp": 1},
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(AuthenticationError):
        decode_access_token(token)


def test_token_signed_with_other_key_is_rejected() -> None:
    token = jwt.encode({"sub": "NYX-AAAAAAAA"}, "another-secret", algorithm="HS256")
    with pytest.raises(AuthenticationError):
        decode_access_token(token)


def test_valid_spki_key_is_accepted(public_key: str) -> None:
    assert validate_public_key(public_key) == public_key


@pytest.mark.parametrize("value", ["***", "aGVsbG8gd29ybGQ="])
def test_invalid_keys_are_rejected(value: str) -> None:
    with pytest.raises(ValidationError):
        validate_public_key(value)
