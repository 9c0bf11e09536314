# app/core/security.py
"""
Password hashing and JWT helpers.

Two token kinds are issued, each signed with its own secret:
  - access  (ACCESS_TOKEN_SECRET,  ACCESS_TOKEN_EXPIRE_MINUTES)
  - refresh (REFRESH_TOKEN_SECRET, REFRESH_TOKEN_EXPIRE_DAYS)

Refresh tokens are never stored in clear; `hash_token` gives the digest kept
in the refresh_tokens table.
"""
import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jose import JWTError, jwt

from app.core.config import get_settings
from app.core.errors import Unauthenticated

settings = get_settings()

_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """
    Check a plain password against a stored argon2 hash.
    Any malformed hash counts as a mismatch.
    """
    try:
        return _hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _encode(claims: dict[str, Any], secret: str, expires_in: timedelta) -> tuple[str, datetime]:
    expires_at = datetime.now(timezone.utc) + expires_in
    payload = {
        **claims,
        "exp": expires_at,
        # unique per token so two tokens issued in the same second differ
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, secret, algorithm=settings.JWT_ALG), expires_at


def create_access_token(user_id: int, role: str) -> str:
    token, _ = _encode(
        {"sub": str(user_id), "role": role, "type": "access"},
        settings.ACCESS_TOKEN_SECRET,
        timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return token


def create_refresh_token(user_id: int) -> tuple[str, datetime]:
    """
    Returns:
        (token, expires_at)
    """
    return _encode(
        {"sub": str(user_id), "type": "refresh"},
        settings.REFRESH_TOKEN_SECRET,
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def _decode(token: str, secret: str, expected_type: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.JWT_ALG])
    except JWTError:
        raise Unauthenticated("Invalid or expired token")

    if payload.get("type") != expected_type or not payload.get("sub"):
        raise Unauthenticated("Invalid or expired token")
    return payload


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an access token (signature + exp).

    Raises:
        Unauthenticated(401): if token is invalid/expired or not an access token.
    """
    return _decode(token, settings.ACCESS_TOKEN_SECRET, "access")


def decode_refresh_token(token: str) -> dict[str, Any]:
    return _decode(token, settings.REFRESH_TOKEN_SECRET, "refresh")
