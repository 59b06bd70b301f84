"""Hashing and expiry checks for persisted refresh credentials."""

import hashlib
from datetime import UTC, datetime


def hash_token(token: str) -> str:
    """Hash a token for secure storage.

    Uses SHA-256 for fast lookup while maintaining security.
    The token itself has enough entropy that rainbow tables are infeasible.

    Args:
        token: The plaintext token to hash.

    Returns:
        Hex-encoded SHA-256 hash of the token.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def is_token_expired(expires_at: datetime, now: datetime | None = None) -> bool:
    """Check if a token has expired.

    Args:
        expires_at: The token's expiry timestamp.
        now: Reference time; defaults to the current UTC time.

    Returns:
        True if the token has expired.
    """
    now = now or datetime.now(UTC)
    # Handle timezone-naive datetimes
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    return now >= expires_at
