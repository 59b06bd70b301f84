"""JWT token creation and validation."""

import secrets
from datetime import datetime, timedelta, timezone

import jwt

from teamspace.config import settings
from teamspace.core.auth.types import Identity, TokenPayload

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenError(Exception):
    """Raised when token validation fails."""

    pass


def create_access_token(identity: Identity, expires_delta: timedelta | None = None) -> str:
    """Create a short-lived access token.

    Args:
        identity: Identity the token is issued for.
        expires_delta: Validity; defaults to ACCESS_TOKEN_EXPIRE_MINUTES.

    Returns:
        Encoded JWT string
    """
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    expire = now + expires_delta

    payload = {
        "sub": str(identity.id),
        "type": ACCESS_TOKEN_TYPE,
        "role": identity.role.value,
        "email": identity.email,
        "first_name": identity.first_name,
        "last_name": identity.last_name,
        "exp": int(expire.timestamp()),
        "iat": int(now.timestamp()),
    }

    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_refresh_token(identity: Identity, expires_delta: timedelta | None = None) -> str:
    """Create a long-lived refresh token.

    The random ``jti`` keeps two tokens issued in the same second distinct,
    so their hashes never collide in storage.

    Args:
        identity: Identity the token is issued for.
        expires_delta: Validity; defaults to REFRESH_TOKEN_EXPIRE_DAYS.

    Returns:
        Encoded JWT string
    """
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(days=settings.refresh_token_expire_days)
    expire = now + expires_delta

    payload = {
        "sub": str(identity.id),
        "type": REFRESH_TOKEN_TYPE,
        "jti": secrets.token_urlsafe(16),
        "exp": int(expire.timestamp()),
        "iat": int(now.timestamp()),
    }

    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, expected_type: str | None = None) -> TokenPayload:
    """Decode and validate a JWT token.

    Args:
        token: Encoded JWT string
        expected_type: If set, reject tokens of any other type.

    Returns:
        Decoded token payload

    Raises:
        TokenError: If token is invalid, expired or of the wrong type
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired") from None
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}") from None

    token_type = payload.get("type", "")
    if expected_type is not None and token_type != expected_type:
        raise TokenError(f"Expected {expected_type} token")

    return TokenPayload(
        sub=payload["sub"],
        type=token_type,
        role=payload.get("role", ""),
        email=payload.get("email", ""),
        first_name=payload.get("first_name", ""),
        last_name=payload.get("last_name", ""),
        jti=payload.get("jti"),
        exp=payload["exp"],
        iat=payload["iat"],
    )
