"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from itertools import count

import pytest
from teamspace.adapters.db.memory import InMemoryStore
from teamspace.core.audit.recorder import AuditRecorder
from teamspace.core.audit.service import AuditService
from teamspace.core.auth.password import PasswordVerifier
from teamspace.core.auth.service import SessionManager
from teamspace.core.auth.types import Identity, PlatformRole
from teamspace.core.workspace.documents import DocumentService
from teamspace.core.workspace.projects import ProjectService
from teamspace.core.workspace.teams import TeamService

MakeUser = Callable[..., Awaitable[Identity]]


@pytest.fixture
def anyio_backend() -> str:
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def store() -> InMemoryStore:
    """Fresh in-memory storage for every test."""
    return InMemoryStore()


@pytest.fixture
def passwords() -> PasswordVerifier:
    """Password verifier with the cheapest bcrypt cost."""
    return PasswordVerifier(rounds=4)


@pytest.fixture
def audit(store: InMemoryStore) -> AuditRecorder:
    """Audit recorder writing into the store."""
    return AuditRecorder(store)


@pytest.fixture
def session_manager(
    store: InMemoryStore, passwords: PasswordVerifier, audit: AuditRecorder
) -> SessionManager:
    """Session manager over the in-memory store."""
    return SessionManager(store, passwords=passwords, audit=audit)


@pytest.fixture
def team_service(store: InMemoryStore, audit: AuditRecorder) -> TeamService:
    """Team service over the in-memory store."""
    return TeamService(store, store, audit=audit)


@pytest.fixture
def project_service(store: InMemoryStore, audit: AuditRecorder) -> ProjectService:
    """Project service over the in-memory store."""
    return ProjectService(store, audit=audit)


@pytest.fixture
def document_service(store: InMemoryStore, audit: AuditRecorder) -> DocumentService:
    """Document service over the in-memory store."""
    return DocumentService(store, audit=audit)


@pytest.fixture
def audit_service(store: InMemoryStore) -> AuditService:
    """Audit query service over the in-memory store."""
    return AuditService(store)


@pytest.fixture
def make_user(store: InMemoryStore) -> MakeUser:
    """Factory creating identities directly in storage."""
    sequence = count(1)

    async def _make_user(
        first_name: str = "Test",
        email: str | None = None,
        role: PlatformRole = PlatformRole.USER,
    ) -> Identity:
        n = next(sequence)
        return await store.create_user(
            email=email or f"user{n}@example.com",
            password_hash="not-a-real-hash",  # pragma: allowlist secret
            first_name=first_name,
            last_name=f"User{n}",
            role=role,
        )

    return _make_user
