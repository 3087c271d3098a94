"""Token and public-key helpers used by authentication flows."""
from __future__ import annotations

import base64
import binascii
from datetime import timedelta
from typing import Any

from cryptography.hazmat.primitives.serialization import load_der_public_key
from jose import JWTError, jwt

from nyx_server.core.errors import AuthenticationError, ValidationError
from nyx_server.core.settings import settings
from nyx_server.db.time import utcnow


def create_access_token(user_id: str, session_id: str, expires_minutes: int | None = None) -> str:
    """Issue a signed JWT for ``user_id`` bound to a persisted session row."""
    issued_at = utcnow()
    expires_at = issued_at + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    payload = {
        "sub": user_id,
        "sid": session_id,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify a JWT issued by :func:`create_access_token`.

    Raises:
        AuthenticationError: If the token is malformed, expired or lacks a subject.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise AuthenticationError("Could not validate credentials") from err
    if not payload.get("sub"):
        raise AuthenticationError("Could not validate credentials")
    return payload


def validate_public_key(public_key: str) -> str:
    """Check that ``public_key`` is a base64-encoded SPKI public key.

    Clients export their key pair with WebCrypto (``exportKey("spki")``) and
    send the base64 text; the server only verifies the encoding and returns
    the value unchanged.
    """
    try:
        der = base64.b64decode(public_key, validate=True)
    except (binascii.Error, ValueError) as err:
        raise ValidationError("Public key must be valid base64") from err
    try:
        load_der_public_key(der)
    except (ValueError, TypeError) as err:
        raise ValidationError("Public key is not a valid SPKI key") from err
    return public_key
