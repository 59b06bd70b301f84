"""PostgreSQL implementation of AuthRepository."""

import logging
from typing import Any
from uuid import UUID

import asyncpg

from teamspace.adapters.db.app_db import AppDatabase, affected_rows
from teamspace.core.auth.types import Identity, NewRefreshToken, PlatformRole, RefreshToken
from teamspace.core.exceptions import ConflictError

logger = logging.getLogger(__name__)

_USER_COLUMNS = "id, email, first_name, last_name, password_hash, role, created_at, updated_at"
_TOKEN_COLUMNS = (
    "id, user_id, token_hash, issued_at, expires_at, revoked_at, user_agent, ip_address"
)


class PostgresAuthRepository:
    """PostgreSQL implementation of auth repository."""

    def __init__(self, db: AppDatabase) -> None:
        """Initialize with database connection.

        Args:
            db: Application database instance.
        """
        self._db = db

    def _row_to_user(self, row: dict[str, Any]) -> Identity:
        """Convert database row to Identity model."""
        return Identity(
            id=row["id"],
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            password_hash=row["password_hash"],
            role=PlatformRole(row["role"]),
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
        )

    def _row_to_token(self, row: dict[str, Any]) -> RefreshToken:
        """Convert database row to RefreshToken model."""
        return RefreshToken(
            id=row["id"],
            user_id=row["user_id"],
            token_hash=row["token_hash"],
            issued_at=row["issued_at"],
            expires_at=row["expires_at"],
            revoked_at=row.get("revoked_at"),
            user_agent=row.get("user_agent"),
            ip_address=row.get("ip_address"),
        )

    # Identity operations
    async def get_user_by_id(self, user_id: UUID) -> Identity | None:
        """Get identity by ID."""
        row = await self._db.fetch_one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = $1",
            user_id,
        )
        return self._row_to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> Identity | None:
        """Get identity by email address."""
        row = await self._db.fetch_one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE email = $1",
            email,
        )
        return self._row_to_user(row) if row else None

    async def create_user(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: PlatformRole = PlatformRole.USER,
    ) -> Identity:
        """Create a new identity."""
        try:
            row = await self._db.fetch_one(
                f"""
                INSERT INTO users (email, password_hash, first_name, last_name, role)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING {_USER_COLUMNS}
                """,
                email,
                password_hash,
                first_name,
                last_name,
                role.value,
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError("User with this email already exists") from None
        assert row is not None, "INSERT RETURNING should always return a row"
        return self._row_to_user(row)

    async def update_user_password(self, user_id: UUID, password_hash: str) -> Identity | None:
        """Replace the stored password hash."""
        row = await self._db.fetch_one(
            f"""
            UPDATE users SET password_hash = $2, updated_at = NOW()
            WHERE id = $1
            RETURNING {_USER_COLUMNS}
            """,
            user_id,
            password_hash,
        )
        return self._row_to_user(row) if row else None

    # Refresh credential operations
    async def create_refresh_token(self, token: NewRefreshToken) -> RefreshToken:
        """Persist a new refresh credential."""
        try:
            row = await self._db.fetch_one(
                f"""
                INSERT INTO refresh_tokens (user_id, token_hash, expires_at, user_agent, ip_address)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING {_TOKEN_COLUMNS}
                """,
                token.user_id,
                token.token_hash,
                token.expires_at,
                token.user_agent,
                token.ip_address,
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError("Refresh token already exists") from None
        assert row is not None, "INSERT RETURNING should always return a row"
        return self._row_to_token(row)

    async def get_refresh_token_by_hash(self, token_hash: str) -> RefreshToken | None:
        """Look up a refresh credential by its hash."""
        row = await self._db.fetch_one(
            f"SELECT {_TOKEN_COLUMNS} FROM refresh_tokens WHERE token_hash = $1",
            token_hash,
        )
        return self._row_to_token(row) if row else None

    async def rotate_refresh_token(
        self, token_id: UUID, successor: NewRefreshToken
    ) -> RefreshToken | None:
        """Revoke an active credential and insert its successor atomically.

        The conditional UPDATE takes the row lock; a concurrent rotation of
        the same row blocks on it, then re-evaluates the predicate against
        the committed ``revoked_at`` and matches nothing.
        """
        async with self._db.transaction() as conn:
            revoked = await conn.fetchval(
                """
                UPDATE refresh_tokens SET revoked_at = NOW()
                WHERE id = $1 AND revoked_at IS NULL AND expires_at > NOW()
                RETURNING id
                """,
                token_id,
            )
            if revoked is None:
                return None

            try:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO refresh_tokens
                        (user_id, token_hash, expires_at, user_agent, ip_address)
                    VALUES ($1, $2, $3, $4, $5)
                    RETURNING {_TOKEN_COLUMNS}
                    """,
                    successor.user_id,
                    successor.token_hash,
                    successor.expires_at,
                    successor.user_agent,
                    successor.ip_address,
                )
            except asyncpg.UniqueViolationError:
                raise ConflictError("Refresh token already exists") from None
            assert row is not None, "INSERT RETURNING should always return a row"
            return self._row_to_token(dict(row))

    async def revoke_refresh_token(self, token_id: UUID) -> bool:
        """Revoke one credential."""
        result = await self._db.execute(
            "UPDATE refresh_tokens SET revoked_at = NOW() WHERE id = $1 AND revoked_at IS NULL",
            token_id,
        )
        return result == "UPDATE 1"

    async def revoke_all_refresh_tokens(self, user_id: UUID) -> int:
        """Revoke every unrevoked credential of an identity."""
        result = await self._db.execute(
            """
            UPDATE refresh_tokens SET revoked_at = NOW()
            WHERE user_id = $1 AND revoked_at IS NULL
            """,
            user_id,
        )
        count = affected_rows(result)
        logger.debug(f"Revoked {count} refresh tokens for user {user_id}")
        return count
