"""Dependency injection and application lifespan management."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import Request

from teamspace.adapters.audit import LoggingAuditSink, PostgresAuditLog
from teamspace.adapters.auth import PostgresAuthRepository
from teamspace.adapters.db.app_db import AppDatabase
from teamspace.adapters.db.memory import InMemoryStore
from teamspace.adapters.rbac import PostgresWorkspaceRepository
from teamspace.config import settings
from teamspace.core.audit.recorder import AuditRecorder
from teamspace.core.audit.service import AuditService
from teamspace.core.audit.types import AuditEvent, AuditLogReader, AuditSink
from teamspace.core.auth.password import PasswordVerifier
from teamspace.core.auth.repository import AuthRepository
from teamspace.core.auth.service import SessionManager
from teamspace.core.rbac.repository import WorkspaceRepository
from teamspace.core.workspace.documents import DocumentService
from teamspace.core.workspace.projects import ProjectService
from teamspace.core.workspace.teams import TeamService

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


class _FanOutSink:
    """Sends each audit event to several sinks in order."""

    def __init__(self, *sinks: AuditSink) -> None:
        self._sinks = sinks

    async def record(self, event: AuditEvent) -> None:
        for sink in self._sinks:
            await sink.record(event)


def install_services(
    app: FastAPI,
    auth_repo: AuthRepository,
    workspace_repo: WorkspaceRepository,
    audit_sink: AuditSink,
    audit_reader: AuditLogReader,
    passwords: PasswordVerifier | None = None,
) -> None:
    """Build the core services over the given storage and attach them to app state."""
    audit = AuditRecorder(audit_sink)
    app.state.session_manager = SessionManager(auth_repo, passwords=passwords, audit=audit)
    app.state.team_service = TeamService(workspace_repo, auth_repo, audit=audit)
    app.state.project_service = ProjectService(workspace_repo, audit=audit)
    app.state.document_service = DocumentService(workspace_repo, audit=audit)
    app.state.audit_service = AuditService(audit_reader)


def install_memory_services(
    app: FastAPI, store: InMemoryStore, passwords: PasswordVerifier | None = None
) -> None:
    """Wire every service to a single in-memory store."""
    install_services(app, store, store, store, store, passwords=passwords)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - setup and teardown.

    STORAGE_BACKEND selects PostgreSQL (default) or the in-memory store.
    """
    app_db: AppDatabase | None = None

    if settings.storage_backend == "memory":
        logger.info("Using in-memory storage; data is lost on shutdown")
        install_memory_services(app, InMemoryStore())
    else:
        app_db = AppDatabase(settings.database_url)
        await app_db.connect()
        audit_log = PostgresAuditLog(app_db)
        install_services(
            app,
            auth_repo=PostgresAuthRepository(app_db),
            workspace_repo=PostgresWorkspaceRepository(app_db),
            audit_sink=_FanOutSink(LoggingAuditSink(), audit_log),
            audit_reader=audit_log,
        )
        app.state.app_db = app_db

    yield

    if app_db is not None:
        await app_db.close()


def get_session_manager(request: Request) -> SessionManager:
    """Get the session manager from app state."""
    session_manager: SessionManager = request.app.state.session_manager
    return session_manager


def get_team_service(request: Request) -> TeamService:
    """Get the team service from app state."""
    service: TeamService = request.app.state.team_service
    return service


def get_project_service(request: Request) -> ProjectService:
    """Get the project service from app state."""
    service: ProjectService = request.app.state.project_service
    return service


def get_document_service(request: Request) -> DocumentService:
    """Get the document service from app state."""
    service: DocumentService = request.app.state.document_service
    return service


def get_audit_service(request: Request) -> AuditService:
    """Get the audit query service from app state."""
    service: AuditService = request.app.state.audit_service
    return service


def get_client_ip(request: Request) -> str | None:
    """Extract client IP from request.

    Args:
        request: FastAPI request object.

    Returns:
        Client IP address or None.
    """
    # Check X-Forwarded-For header first (for proxied requests)
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        # Take the first IP in the chain
        return forwarded_for.split(",")[0].strip()

    # Fall back to direct client
    if request.client:
        return request.client.host

    return None


def get_user_agent(request: Request) -> str | None:
    """Get the User-Agent header, if any."""
    return request.headers.get("user-agent")
