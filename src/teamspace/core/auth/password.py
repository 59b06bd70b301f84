"""Password hashing utilities using bcrypt."""

import bcrypt

from teamspace.config import settings


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password
        rounds: Work factor; defaults to BCRYPT_ROUNDS.

    Returns:
        Bcrypt hash string
    """
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash.

    Args:
        plain_password: Plain text password to check
        hashed_password: Bcrypt hash to check against

    Returns:
        True if password matches hash
    """
    if not plain_password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


class PasswordVerifier:
    """One-way hash plus verify, with a tunable work factor."""

    def __init__(self, rounds: int | None = None) -> None:
        """Initialize with a bcrypt work factor.

        Args:
            rounds: bcrypt cost; defaults to BCRYPT_ROUNDS.
        """
        self.rounds = rounds or settings.bcrypt_rounds

    def hash(self, plaintext: str) -> str:
        """Hash a plaintext password."""
        return hash_password(plaintext, rounds=self.rounds)

    def verify(self, plaintext: str, digest: str) -> bool:
        """Check a plaintext password against a stored digest."""
        return verify_password(plaintext, digest)
