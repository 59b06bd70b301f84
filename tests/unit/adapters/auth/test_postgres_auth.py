"""Tests for PostgreSQL auth repository."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import asyncpg
import pytest
from teamspace.adapters.auth.postgres import PostgresAuthRepository
from teamspace.core.auth import AuthRepository, PlatformRole
from teamspace.core.auth.types import NewRefreshToken
from teamspace.core.exceptions import ConflictError


def _user_row(**overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": uuid4(),
        "email": "test@example.com",
        "first_name": "Test",
        "last_name": "User",
        "password_hash": "hashed",  # pragma: allowlist secret
        "role": "USER",
        "created_at": datetime.now(UTC),
        "updated_at": None,
    }
    row.update(overrides)
    return row


def _token_row(**overrides: object) -> dict[str, object]:
    now = datetime.now(UTC)
    row: dict[str, object] = {
        "id": uuid4(),
        "user_id": uuid4(),
        "token_hash": "abc123",
        "issued_at": now,
        "expires_at": now + timedelta(days=7),
        "revoked_at": None,
        "user_agent": None,
        "ip_address": None,
    }
    row.update(overrides)
    return row


def _successor() -> NewRefreshToken:
    return NewRefreshToken(
        user_id=uuid4(), token_hash="next", expires_at=datetime.now(UTC) + timedelta(days=7)
    )


class TestPostgresAuthRepository:
    """Test PostgresAuthRepository implementation."""

    @pytest.fixture
    def mock_conn(self) -> MagicMock:
        """Connection handed out inside a transaction."""
        return MagicMock()

    @pytest.fixture
    def mock_db(self, mock_conn: MagicMock) -> MagicMock:
        """Create mock database."""
        db = MagicMock()
        tx = MagicMock()
        tx.__aenter__ = AsyncMock(return_value=mock_conn)
        tx.__aexit__ = AsyncMock(return_value=False)
        db.transaction.return_value = tx
        return db

    @pytest.fixture
    def repo(self, mock_db: MagicMock) -> PostgresAuthRepository:
        """Create repository with mock database."""
        return PostgresAuthRepository(mock_db)

    def test_implements_protocol(self, repo: PostgresAuthRepository) -> None:
        """Repository should implement AuthRepository protocol."""
        assert isinstance(repo, AuthRepository)

    async def test_get_user_by_email(
        self, repo: PostgresAuthRepository, mock_db: MagicMock
    ) -> None:
        """Should return user when found by email."""
        row = _user_row(role="ADMIN")
        mock_db.fetch_one = AsyncMock(return_value=row)

        result = await repo.get_user_by_email("test@example.com")

        assert result is not None
        assert result.id == row["id"]
        assert result.role is PlatformRole.ADMIN

    async def test_get_user_by_email_not_found(
        self, repo: PostgresAuthRepository, mock_db: MagicMock
    ) -> None:
        """Should return None when user not found."""
        mock_db.fetch_one = AsyncMock(return_value=None)

        assert await repo.get_user_by_email("notfound@example.com") is None

    async def test_create_user_duplicate_email(
        self, repo: PostgresAuthRepository, mock_db: MagicMock
    ) -> None:
        """Unique violations surface as ConflictError."""
        mock_db.fetch_one = AsyncMock(side_effect=asyncpg.UniqueViolationError("dup"))

        with pytest.raises(ConflictError):
            await repo.create_user("test@example.com", "hashed", "Test", "User")

    async def test_get_refresh_token_by_hash(
        self, repo: PostgresAuthRepository, mock_db: MagicMock
    ) -> None:
        """Token rows are looked up by hash."""
        row = _token_row()
        mock_db.fetch_one = AsyncMock(return_value=row)

        result = await repo.get_refresh_token_by_hash("abc123")

        assert result is not None
        assert result.token_hash == "abc123"
        assert mock_db.fetch_one.await_args.args[1] == "abc123"

    async def test_rotate_inserts_successor(
        self, repo: PostgresAuthRepository, mock_conn: MagicMock
    ) -> None:
        """A winning rotation revokes and inserts in the same transaction."""
        token_id = uuid4()
        mock_conn.fetchval = AsyncMock(return_value=token_id)
        mock_conn.fetchrow = AsyncMock(return_value=_token_row(token_hash="next"))

        result = await repo.rotate_refresh_token(token_id, _successor())

        assert result is not None
        assert result.token_hash == "next"
        update_sql = mock_conn.fetchval.await_args.args[0]
        assert "revoked_at IS NULL" in update_sql
        assert "expires_at > NOW()" in update_sql

    async def test_rotate_lost_race(
        self, repo: PostgresAuthRepository, mock_conn: MagicMock
    ) -> None:
        """If the conditional update matches nothing, no successor is inserted."""
        mock_conn.fetchval = AsyncMock(return_value=None)
        mock_conn.fetchrow = AsyncMock()

        result = await repo.rotate_refresh_token(uuid4(), _successor())

        assert result is None
        mock_conn.fetchrow.assert_not_awaited()

    async def test_revoke_refresh_token(
        self, repo: PostgresAuthRepository, mock_db: MagicMock
    ) -> None:
        """True only when a row changed."""
        mock_db.execute = AsyncMock(side_effect=["UPDATE 1", "UPDATE 0"])

        assert await repo.revoke_refresh_token(uuid4()) is True
        assert await repo.revoke_refresh_token(uuid4()) is False

    async def test_revoke_all_refresh_tokens(
        self, repo: PostgresAuthRepository, mock_db: MagicMock
    ) -> None:
        """Returns the number of revoked rows."""
        mock_db.execute = AsyncMock(return_value="UPDATE 3")

        assert await repo.revoke_all_refresh_tokens(uuid4()) == 3
