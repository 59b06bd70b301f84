"""Auth repository protocol for database operations."""

from typing import Protocol, runtime_checkable
from uuid import UUID

from teamspace.core.auth.types import Identity, NewRefreshToken, PlatformRole, RefreshToken


@runtime_checkable
class AuthRepository(Protocol):
    """Protocol for identity and refresh-credential storage.

    Implementations provide actual database access (PostgreSQL, in-memory).
    Refresh-credential rows are only ever touched through this protocol,
    and only by the session manager.
    """

    # Identity operations
    async def get_user_by_id(self, user_id: UUID) -> Identity | None:
        """Get identity by ID."""
        ...

    async def get_user_by_email(self, email: str) -> Identity | None:
        """Get identity by email address."""
        ...

    async def create_user(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: PlatformRole = PlatformRole.USER,
    ) -> Identity:
        """Create a new identity.

        Raises:
            ConflictError: If the email is already registered.
        """
        ...

    async def update_user_password(self, user_id: UUID, password_hash: str) -> Identity | None:
        """Replace the stored password hash."""
        ...

    # Refresh credential operations
    async def create_refresh_token(self, token: NewRefreshToken) -> RefreshToken:
        """Persist a new refresh credential.

        Raises:
            ConflictError: If the token hash already exists.
        """
        ...

    async def get_refresh_token_by_hash(self, token_hash: str) -> RefreshToken | None:
        """Look up a refresh credential by its hash, revoked or not."""
        ...

    async def rotate_refresh_token(
        self, token_id: UUID, successor: NewRefreshToken
    ) -> RefreshToken | None:
        """Revoke an active credential and insert its successor atomically.

        The row is only revoked if it is still unrevoked and unexpired at
        the moment of the update. Returns None when another caller got there
        first, in which case nothing is inserted.
        """
        ...

    async def revoke_refresh_token(self, token_id: UUID) -> bool:
        """Revoke one credential. Returns False if it was already revoked."""
        ...

    async def revoke_all_refresh_tokens(self, user_id: UUID) -> int:
        """Revoke every unrevoked credential of an identity in one update."""
        ...
