"""Tests for JWT authentication middleware."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from teamspace.core.auth.jwt import create_access_token, create_refresh_token
from teamspace.core.auth.types import Identity, PlatformRole
from teamspace.entrypoints.api.middleware.jwt_auth import JwtContext, optional_jwt, verify_jwt


@pytest.fixture
def identity() -> Identity:
    """A signed-up identity."""
    return Identity(
        id=uuid4(),
        email="ada@example.com",
        first_name="Ada",
        last_name="Lovelace",
        password_hash="hashed",  # pragma: allowlist secret
        role=PlatformRole.ADMIN,
        created_at=datetime.now(UTC),
    )


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestVerifyJwt:
    """Test JWT verification dependency."""

    async def test_valid_token(self, identity: Identity) -> None:
        """Should return JwtContext for valid token."""
        mock_request = MagicMock()

        context = await verify_jwt(mock_request, _bearer(create_access_token(identity)))

        assert context.user_uuid == identity.id
        assert context.role is PlatformRole.ADMIN
        assert context.email == "ada@example.com"
        assert context.display_name == "Ada Lovelace"
        assert mock_request.state.user is context

    async def test_missing_token(self) -> None:
        """Should raise 401 for missing token."""
        with pytest.raises(HTTPException) as exc_info:
            await verify_jwt(MagicMock(), None)

        assert exc_info.value.status_code == 401
        assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}

    async def test_invalid_token(self) -> None:
        """Should raise 401 for invalid token."""
        with pytest.raises(HTTPException) as exc_info:
            await verify_jwt(MagicMock(), _bearer("invalid.token.here"))

        assert exc_info.value.status_code == 401

    async def test_expired_token(self, identity: Identity) -> None:
        """Expired access tokens are rejected."""
        token = create_access_token(identity, expires_delta=timedelta(seconds=-1))

        with pytest.raises(HTTPException) as exc_info:
            await verify_jwt(MagicMock(), _bearer(token))

        assert exc_info.value.status_code == 401

    async def test_refresh_token_not_accepted(self, identity: Identity) -> None:
        """A refresh credential cannot be used as an access token."""
        with pytest.raises(HTTPException) as exc_info:
            await verify_jwt(MagicMock(), _bearer(create_refresh_token(identity)))

        assert exc_info.value.status_code == 401


class TestOptionalJwt:
    """Test optional JWT dependency."""

    async def test_no_credentials(self) -> None:
        """No header means no context."""
        assert await optional_jwt(MagicMock(), None) is None

    async def test_bad_credentials(self) -> None:
        """An invalid token also yields no context instead of an error."""
        assert await optional_jwt(MagicMock(), _bearer("garbage")) is None

    async def test_valid_credentials(self, identity: Identity) -> None:
        """A valid token yields the caller's context."""
        context = await optional_jwt(MagicMock(), _bearer(create_access_token(identity)))

        assert isinstance(context, JwtContext)
        assert context.user_uuid == identity.id
