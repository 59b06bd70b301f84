"""Fixtures for API tests running against the in-memory store."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from teamspace.adapters.db.memory import InMemoryStore
from teamspace.core.auth.password import PasswordVerifier
from teamspace.entrypoints.api.app import create_app
from teamspace.entrypoints.api.deps import install_memory_services

API = "/api/v1"


@dataclass
class ApiUser:
    """A signed-up caller."""

    id: UUID
    headers: dict[str, str]
    refresh_token: str


SignUp = Callable[..., ApiUser]


@pytest.fixture
def app(store: InMemoryStore) -> FastAPI:
    """Application wired to the in-memory store, without running the lifespan."""
    application = create_app()
    install_memory_services(application, store, PasswordVerifier(rounds=4))
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def sign_up(client: TestClient) -> SignUp:
    """Factory registering a user through the API."""

    def _sign_up(email: str, first_name: str = "Test") -> ApiUser:
        response = client.post(
            f"{API}/auth/sign-up",
            json={
                "email": email,
                "password": "password123",  # pragma: allowlist secret
                "first_name": first_name,
                "last_name": "User",
            },
        )
        assert response.status_code == 201, response.text
        tokens = response.json()
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}
        me = client.get(f"{API}/auth/me", headers=headers).json()
        return ApiUser(id=UUID(me["id"]), headers=headers, refresh_token=tokens["refresh_token"])

    return _sign_up
