"""Tests for audit log API routes."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from teamspace.core.auth.jwt import create_access_token
from teamspace.core.auth.types import Identity, PlatformRole

from tests.unit.entrypoints.api.conftest import API, SignUp


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Bearer header for a platform ADMIN."""
    admin = Identity(
        id=uuid4(),
        email="admin@example.com",
        first_name="Platform",
        last_name="Admin",
        password_hash="hashed",  # pragma: allowlist secret
        role=PlatformRole.ADMIN,
        created_at=datetime.now(UTC),
    )
    return {"Authorization": f"Bearer {create_access_token(admin)}"}


class TestListAuditLogs:
    """Test GET /audit-logs."""

    def test_user_sees_own_events(self, client: TestClient, sign_up: SignUp) -> None:
        """Sign-up and team creation are recorded for the caller."""
        user = sign_up("ada@example.com")
        sign_up("bob@example.com")
        client.post(f"{API}/teams", json={"name": "Acme"}, headers=user.headers)

        page = client.get(f"{API}/audit-logs", headers=user.headers).json()

        actions = [e["action"] for e in page["data"]]
        assert actions == ["CREATE_TEAM", "SIGN_UP"]
        assert {e["identity_id"] for e in page["data"]} == {str(user.id)}

    def test_user_cannot_query_others(self, client: TestClient, sign_up: SignUp) -> None:
        """Asking for another identity's events is denied."""
        user = sign_up("ada@example.com")
        other = sign_up("bob@example.com")

        response = client.get(
            f"{API}/audit-logs", params={"identity_id": str(other.id)}, headers=user.headers
        )

        assert response.status_code == 401

    def test_admin_filters_by_action(
        self, client: TestClient, sign_up: SignUp, admin_headers: dict[str, str]
    ) -> None:
        """Admins see everyone's events and can filter them."""
        ada = sign_up("ada@example.com")
        bob = sign_up("bob@example.com")

        page = client.get(
            f"{API}/audit-logs", params={"action": "SIGN_UP"}, headers=admin_headers
        ).json()

        assert {e["identity_id"] for e in page["data"]} == {str(ada.id), str(bob.id)}

    def test_failed_sign_in_recorded(
        self, client: TestClient, sign_up: SignUp, admin_headers: dict[str, str]
    ) -> None:
        """Failed sign-ins are audited without leaking the password."""
        sign_up("ada@example.com")
        client.post(
            f"{API}/auth/sign-in",
            json={
                "email": "ada@example.com",
                "password": "wrong-password",  # pragma: allowlist secret
            },
        )

        page = client.get(
            f"{API}/audit-logs", params={"action": "SIGN_IN_FAILED"}, headers=admin_headers
        ).json()

        assert len(page["data"]) == 1
        assert "wrong-password" not in str(page["data"][0]["metadata"])

    def test_invalid_action(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        """Unknown actions fail validation."""
        response = client.get(
            f"{API}/audit-logs", params={"action": "NOPE"}, headers=admin_headers
        )

        assert response.status_code == 422
