"""Bearer tokens identifying the acting user.

The `sub` claim is an opaque user id; the service never looks users up.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from carebook.config import settings

TOKEN_TYPE = "access"


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Sign an access token.

    Args:
        data: Claims to embed, normally just `sub`
        expires_delta: Lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {**data, "iat": issued_at, "exp": issued_at + lifetime, "type": TOKEN_TYPE}

    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Verified claims of an access token, or None if it is invalid or expired."""
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None

    return claims if claims.get("type") == TOKEN_TYPE else None


def acting_user_id(token: str) -> str | None:
    """User id carried by a valid access token."""
    claims = decode_access_token(token)
    if claims is None:
        return None

    subject = claims.get("sub")
    return subject if isinstance(subject, str) and subject else None
