"""Authentication helpers for user JWTs and the service key."""

import hmac
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from expiry_tracker.config import get_settings

settings = get_settings()


def create_access_token(user_id: int, email: str | None = None) -> str:
    """Create a JWT access token for a user.

    Tokens are normally issued by the identity provider; this is used by the
    demo seed script and the test suite.
    """
    expire = datetime.now(UTC) + timedelta(minutes=settings.jwt_expiration_minutes)
    claims = {"sub": str(user_id), "exp": expire}
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def get_token_user_id(token: str) -> int | None:
    """Return the numeric user id a token was issued for, if it is valid."""
    payload = decode_access_token(token)
    if payload is None:
        return None
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None


def is_service_key(token: str) -> bool:
    """Check a bearer token against the pre-shared service key."""
    return hmac.compare_digest(token.encode("utf-8"), settings.service_role_key.encode("utf-8"))
