"""In-process store implementing every storage protocol.

Used by the test suite and for running the API without PostgreSQL. Each
public method runs under one asyncio lock, which plays the role of a
database transaction: cascades and rotations are applied in full before any
other caller can observe the tables. Unique constraints are enforced here as
well as in the services, so a lost race still surfaces as ConflictError.
"""

from __future__ import annotations

import asyncio
import dataclasses
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel

from teamspace.core.audit.types import AuditEvent, AuditLogEntry, AuditLogFilter
from teamspace.core.auth.tokens import is_token_expired
from teamspace.core.auth.types import Identity, NewRefreshToken, PlatformRole, RefreshToken
from teamspace.core.exceptions import ConflictError
from teamspace.core.pagination import CursorKey
from teamspace.core.rbac.types import (
    CascadeResult,
    Document,
    EntityState,
    Project,
    ProjectMembership,
    ProjectRole,
    Team,
    TeamMembership,
    TeamRole,
)

R = TypeVar("R")


def _now() -> datetime:
    return datetime.now(UTC)


def _sort_key(row: Any) -> tuple[datetime, UUID]:
    return (row.created_at, row.id)


def _copy(row: R) -> R:
    """Detach a row from the store so callers cannot mutate it in place."""
    if isinstance(row, BaseModel):
        return row.model_copy()  # type: ignore[return-value]
    return dataclasses.replace(row)  # type: ignore[type-var]


class InMemoryStore:
    """Identity, credential, workspace and audit storage held in dicts."""

    def __init__(self) -> None:
        """Create empty tables."""
        self._lock = asyncio.Lock()
        self._users: dict[UUID, Identity] = {}
        self._refresh_tokens: dict[UUID, RefreshToken] = {}
        self._teams: dict[UUID, Team] = {}
        self._team_members: dict[UUID, TeamMembership] = {}
        self._projects: dict[UUID, Project] = {}
        self._project_members: dict[UUID, ProjectMembership] = {}
        self._documents: dict[UUID, Document] = {}
        self._audit_logs: dict[UUID, AuditLogEntry] = {}

    # ------------------------------------------------------------------
    # Helpers (callers must hold the lock)
    # ------------------------------------------------------------------

    def _page(self, rows: Iterable[R], after: CursorKey | None, limit: int) -> list[R]:
        """Order rows newest first and return up to ``limit`` after the cursor key."""
        ordered = sorted(rows, key=_sort_key, reverse=True)
        if after is not None:
            key = after.as_tuple()
            ordered = [row for row in ordered if _sort_key(row) < key]
        return [_copy(row) for row in ordered[:limit]]

    def _active_team(self, team_id: UUID) -> Team | None:
        team = self._teams.get(team_id)
        if team is None or team.state is EntityState.DELETED:
            return None
        return team

    def _active_project(self, project_id: UUID) -> Project | None:
        project = self._projects.get(project_id)
        if project is None or project.state is EntityState.DELETED:
            return None
        if self._active_team(project.team_id) is None:
            return None
        return project

    def _active_document(self, document_id: UUID) -> Document | None:
        document = self._documents.get(document_id)
        if document is None or document.state is EntityState.DELETED:
            return None
        if self._active_project(document.project_id) is None:
            return None
        return document

    def _find_team_membership(self, team_id: UUID, user_id: UUID) -> TeamMembership | None:
        for membership in self._team_members.values():
            if membership.team_id == team_id and membership.user_id == user_id:
                return membership
        return None

    def _find_project_membership(
        self, project_id: UUID, user_id: UUID
    ) -> ProjectMembership | None:
        for membership in self._project_members.values():
            if membership.project_id == project_id and membership.user_id == user_id:
                return membership
        return None

    def _team_name_taken(
        self, user_id: UUID, name: str, exclude_team_id: UUID | None = None
    ) -> bool:
        for team in self._teams.values():
            if team.state is EntityState.DELETED or team.id == exclude_team_id:
                continue
            if team.name != name:
                continue
            if self._find_team_membership(team.id, user_id):
                return True
        return False

    def _project_name_taken(
        self, team_id: UUID, name: str, exclude_project_id: UUID | None = None
    ) -> bool:
        return any(
            p.team_id == team_id
            and p.name == name
            and p.state is EntityState.ACTIVE
            and p.id != exclude_project_id
            for p in self._projects.values()
        )

    def _document_title_taken(
        self, project_id: UUID, title: str, exclude_document_id: UUID | None = None
    ) -> bool:
        return any(
            d.project_id == project_id
            and d.title == title
            and d.state is EntityState.ACTIVE
            and d.id != exclude_document_id
            for d in self._documents.values()
        )

    def _insert_team_member(
        self, team_id: UUID, user_id: UUID, role: TeamRole, added_by: UUID | None
    ) -> TeamMembership:
        if self._find_team_membership(team_id, user_id):
            raise ConflictError("User is already a member of the team")
        membership = TeamMembership(
            id=uuid4(),
            team_id=team_id,
            user_id=user_id,
            role=role,
            added_by=added_by,
            created_at=_now(),
        )
        self._team_members[membership.id] = membership
        return membership

    def _insert_project_member(
        self, project_id: UUID, user_id: UUID, role: ProjectRole, added_by: UUID | None
    ) -> ProjectMembership:
        if self._find_project_membership(project_id, user_id):
            raise ConflictError("User is already a member of the project")
        membership = ProjectMembership(
            id=uuid4(),
            project_id=project_id,
            user_id=user_id,
            role=role,
            added_by=added_by,
            created_at=_now(),
        )
        self._project_members[membership.id] = membership
        return membership

    def _insert_refresh_token(self, token: NewRefreshToken) -> RefreshToken:
        if any(t.token_hash == token.token_hash for t in self._refresh_tokens.values()):
            raise ConflictError("Refresh token already exists")
        row = RefreshToken(
            id=uuid4(),
            user_id=token.user_id,
            token_hash=token.token_hash,
            issued_at=_now(),
            expires_at=token.expires_at,
            user_agent=token.user_agent,
            ip_address=token.ip_address,
        )
        self._refresh_tokens[row.id] = row
        return row

    def _soft_delete_documents(self, project_id: UUID, when: datetime) -> int:
        count = 0
        for document in self._documents.values():
            if document.project_id == project_id and document.state is EntityState.ACTIVE:
                document.deleted_at = when
                count += 1
        return count

    # ------------------------------------------------------------------
    # AuthRepository
    # ------------------------------------------------------------------

    async def get_user_by_id(self, user_id: UUID) -> Identity | None:
        """Get identity by ID."""
        async with self._lock:
            user = self._users.get(user_id)
            return _copy(user) if user else None

    async def get_user_by_email(self, email: str) -> Identity | None:
        """Get identity by email address."""
        async with self._lock:
            for user in self._users.values():
                if user.email == email:
                    return _copy(user)
            return None

    async def create_user(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: PlatformRole = PlatformRole.USER,
    ) -> Identity:
        """Create a new identity."""
        async with self._lock:
            if any(user.email == email for user in self._users.values()):
                raise ConflictError("User with this email already exists")
            user = Identity(
                id=uuid4(),
                email=email,
                first_name=first_name,
                last_name=last_name,
                password_hash=password_hash,
                role=role,
                created_at=_now(),
            )
            self._users[user.id] = user
            return _copy(user)

    async def update_user_password(self, user_id: UUID, password_hash: str) -> Identity | None:
        """Replace the stored password hash."""
        async with self._lock:
            user = self._users.get(user_id)
            if not user:
                return None
            updated = user.model_copy(update={"password_hash": password_hash, "updated_at": _now()})
            self._users[user_id] = updated
            return _copy(updated)

    async def create_refresh_token(self, token: NewRefreshToken) -> RefreshToken:
        """Persist a new refresh credential."""
        async with self._lock:
            return self._insert_refresh_token(token)

    async def get_refresh_token_by_hash(self, token_hash: str) -> RefreshToken | None:
        """Look up a refresh credential by its hash."""
        async with self._lock:
            for token in self._refresh_tokens.values():
                if token.token_hash == token_hash:
                    return token
            return None

    async def rotate_refresh_token(
        self, token_id: UUID, successor: NewRefreshToken
    ) -> RefreshToken | None:
        """Revoke an active credential and insert its successor atomically."""
        async with self._lock:
            token = self._refresh_tokens.get(token_id)
            if token is None or token.revoked_at is not None:
                return None
            if is_token_expired(token.expires_at):
                return None
            self._refresh_tokens[token_id] = token.model_copy(update={"revoked_at": _now()})
            return self._insert_refresh_token(successor)

    async def revoke_refresh_token(self, token_id: UUID) -> bool:
        """Revoke one credential."""
        async with self._lock:
            token = self._refresh_tokens.get(token_id)
            if token is None or token.revoked_at is not None:
                return False
            self._refresh_tokens[token_id] = token.model_copy(update={"revoked_at": _now()})
            return True

    async def revoke_all_refresh_tokens(self, user_id: UUID) -> int:
        """Revoke every unrevoked credential of an identity."""
        async with self._lock:
            now = _now()
            count = 0
            for token_id, token in list(self._refresh_tokens.items()):
                if token.user_id == user_id and token.revoked_at is None:
                    self._refresh_tokens[token_id] = token.model_copy(update={"revoked_at": now})
                    count += 1
            return count

    # ------------------------------------------------------------------
    # WorkspaceRepository: teams
    # ------------------------------------------------------------------

    async def get_team(self, team_id: UUID) -> Team | None:
        """Get an active team."""
        async with self._lock:
            team = self._active_team(team_id)
            return _copy(team) if team else None

    async def team_name_taken(
        self, user_id: UUID, name: str, exclude_team_id: UUID | None = None
    ) -> bool:
        """Whether one of the user's active teams has this name."""
        async with self._lock:
            return self._team_name_taken(user_id, name, exclude_team_id)

    async def create_team(
        self, name: str, description: str | None, owner_id: UUID
    ) -> tuple[Team, TeamMembership]:
        """Create a team and its OWNER membership."""
        async with self._lock:
            if self._team_name_taken(owner_id, name):
                raise ConflictError("Team with this name already exists")
            team = Team(id=uuid4(), name=name, description=description, created_at=_now())
            self._teams[team.id] = team
            membership = self._insert_team_member(team.id, owner_id, TeamRole.OWNER, owner_id)
            return _copy(team), _copy(membership)

    async def update_team(
        self, team_id: UUID, name: str | None = None, description: str | None = None
    ) -> Team | None:
        """Update mutable team fields."""
        async with self._lock:
            team = self._active_team(team_id)
            if not team:
                return None
            if name is not None:
                team.name = name
            if description is not None:
                team.description = description
            team.updated_at = _now()
            return _copy(team)

    async def delete_team(self, team_id: UUID) -> CascadeResult | None:
        """Soft-delete a team, its projects and their documents."""
        async with self._lock:
            team = self._active_team(team_id)
            if not team:
                return None
            now = _now()
            result = CascadeResult()
            for project in self._projects.values():
                if project.team_id != team_id or project.state is EntityState.DELETED:
                    continue
                project.deleted_at = now
                result.projects += 1
                result.documents += self._soft_delete_documents(project.id, now)
            team.deleted_at = now
            return result

    async def list_user_teams(
        self, user_id: UUID, after: CursorKey | None, limit: int
    ) -> list[Team]:
        """List active teams the user is a member of."""
        async with self._lock:
            team_ids = {m.team_id for m in self._team_members.values() if m.user_id == user_id}
            rows = (
                t
                for t in self._teams.values()
                if t.id in team_ids and t.state is EntityState.ACTIVE
            )
            return self._page(rows, after, limit)

    # ------------------------------------------------------------------
    # WorkspaceRepository: team memberships
    # ------------------------------------------------------------------

    async def get_team_membership(self, team_id: UUID, user_id: UUID) -> TeamMembership | None:
        """Get a user's membership in a team."""
        async with self._lock:
            membership = self._find_team_membership(team_id, user_id)
            return _copy(membership) if membership else None

    async def add_team_member(
        self, team_id: UUID, user_id: UUID, role: TeamRole, added_by: UUID
    ) -> TeamMembership:
        """Insert a team membership."""
        async with self._lock:
            return _copy(self._insert_team_member(team_id, user_id, role, added_by))

    async def update_team_member_role(
        self,
        team_id: UUID,
        user_id: UUID,
        role: TeamRole,
        from_roles: frozenset[TeamRole] | None = None,
    ) -> TeamMembership | None:
        """Change a non-OWNER membership's role."""
        async with self._lock:
            membership = self._find_team_membership(team_id, user_id)
            if membership is None or role is TeamRole.OWNER:
                return None
            if from_roles is not None and membership.role not in from_roles:
                raise ConflictError("Team member's role changed concurrently")
            if membership.role is TeamRole.OWNER:
                return None
            membership.role = role
            return _copy(membership)

    async def transfer_team_ownership(
        self, team_id: UUID, from_user_id: UUID, to_user_id: UUID
    ) -> TeamMembership | None:
        """Move the OWNER role to another member, demoting the old owner to ADMIN."""
        async with self._lock:
            current = self._find_team_membership(team_id, from_user_id)
            successor = self._find_team_membership(team_id, to_user_id)
            if current is None or successor is None or current.role is not TeamRole.OWNER:
                return None
            if current.id == successor.id:
                return None
            current.role = TeamRole.ADMIN
            successor.role = TeamRole.OWNER
            return _copy(successor)

    async def remove_team_member(
        self, team_id: UUID, user_id: UUID, removable_roles: frozenset[TeamRole]
    ) -> bool:
        """Delete a team membership and the user's project memberships in the team."""
        async with self._lock:
            membership = self._find_team_membership(team_id, user_id)
            if membership is None:
                return False
            if membership.role not in removable_roles:
                raise ConflictError("Team member's role changed concurrently")
            del self._team_members[membership.id]
            project_ids = {p.id for p in self._projects.values() if p.team_id == team_id}
            for member_id, pm in list(self._project_members.items()):
                if pm.user_id == user_id and pm.project_id in project_ids:
                    del self._project_members[member_id]
            return True

    async def list_team_members(
        self, team_id: UUID, after: CursorKey | None, limit: int
    ) -> list[TeamMembership]:
        """List a team's memberships."""
        async with self._lock:
            rows = (m for m in self._team_members.values() if m.team_id == team_id)
            return self._page(rows, after, limit)

    async def get_team_owner(self, team_id: UUID) -> TeamMembership | None:
        """Get the team's OWNER membership."""
        async with self._lock:
            for membership in self._team_members.values():
                if membership.team_id == team_id and membership.role is TeamRole.OWNER:
                    return _copy(membership)
            return None

    # ------------------------------------------------------------------
    # WorkspaceRepository: projects
    # ------------------------------------------------------------------

    async def get_project(self, project_id: UUID) -> Project | None:
        """Get an active project of an active team."""
        async with self._lock:
            project = self._active_project(project_id)
            return _copy(project) if project else None

    async def project_name_taken(
        self, team_id: UUID, name: str, exclude_project_id: UUID | None = None
    ) -> bool:
        """Whether an active project in the team has this name."""
        async with self._lock:
            return self._project_name_taken(team_id, name, exclude_project_id)

    async def create_project(
        self,
        team_id: UUID,
        name: str,
        description: str | None,
        members: list[tuple[UUID, ProjectRole]],
        added_by: UUID,
    ) -> Project:
        """Create a project with its seeded memberships."""
        async with self._lock:
            if self._active_team(team_id) is None:
                raise ConflictError("Team is no longer active")
            if self._project_name_taken(team_id, name):
                raise ConflictError("Project with this name already exists in the team")
            project = Project(
                id=uuid4(), team_id=team_id, name=name, description=description, created_at=_now()
            )
            self._projects[project.id] = project
            for user_id, role in members:
                self._insert_project_member(project.id, user_id, role, added_by)
            return _copy(project)

    async def update_project(
        self, project_id: UUID, name: str | None = None, description: str | None = None
    ) -> Project | None:
        """Update mutable project fields."""
        async with self._lock:
            project = self._active_project(project_id)
            if not project:
                return None
            if name is not None:
                if self._project_name_taken(project.team_id, name, project_id):
                    raise ConflictError("Project with this name already exists in the team")
                project.name = name
            if description is not None:
                project.description = description
            project.updated_at = _now()
            return _copy(project)

    async def delete_project(self, project_id: UUID) -> CascadeResult | None:
        """Soft-delete a project and its documents."""
        async with self._lock:
            project = self._active_project(project_id)
            if not project:
                return None
            now = _now()
            project.deleted_at = now
            return CascadeResult(projects=1, documents=self._soft_delete_documents(project_id, now))

    async def list_member_projects(
        self, team_id: UUID, user_id: UUID, after: CursorKey | None, limit: int
    ) -> list[Project]:
        """List active projects of a team that the user is a member of."""
        async with self._lock:
            if self._active_team(team_id) is None:
                return []
            project_ids = {
                m.project_id for m in self._project_members.values() if m.user_id == user_id
            }
            rows = (
                p
                for p in self._projects.values()
                if p.team_id == team_id and p.id in project_ids and p.state is EntityState.ACTIVE
            )
            return self._page(rows, after, limit)

    # ------------------------------------------------------------------
    # WorkspaceRepository: project memberships
    # ------------------------------------------------------------------

    async def get_project_membership(
        self, project_id: UUID, user_id: UUID
    ) -> ProjectMembership | None:
        """Get a user's membership in a project."""
        async with self._lock:
            membership = self._find_project_membership(project_id, user_id)
            return _copy(membership) if membership else None

    async def add_project_member(
        self, project_id: UUID, user_id: UUID, role: ProjectRole, added_by: UUID
    ) -> ProjectMembership:
        """Insert a project membership."""
        async with self._lock:
            return _copy(self._insert_project_member(project_id, user_id, role, added_by))

    async def update_project_member_role(
        self, project_id: UUID, user_id: UUID, role: ProjectRole
    ) -> ProjectMembership | None:
        """Change a project membership's role."""
        async with self._lock:
            membership = self._find_project_membership(project_id, user_id)
            if membership is None:
                return None
            membership.role = role
            return _copy(membership)

    async def remove_project_member(self, project_id: UUID, user_id: UUID) -> bool:
        """Delete a project membership."""
        async with self._lock:
            membership = self._find_project_membership(project_id, user_id)
            if membership is None:
                return False
            del self._project_members[membership.id]
            return True

    async def list_project_members(
        self, project_id: UUID, after: CursorKey | None, limit: int
    ) -> list[ProjectMembership]:
        """List a project's memberships."""
        async with self._lock:
            rows = (m for m in self._project_members.values() if m.project_id == project_id)
            return self._page(rows, after, limit)

    # ------------------------------------------------------------------
    # WorkspaceRepository: documents
    # ------------------------------------------------------------------

    async def get_document(self, document_id: UUID) -> Document | None:
        """Get an active document whose project and team are active."""
        async with self._lock:
            document = self._active_document(document_id)
            return _copy(document) if document else None

    async def document_title_taken(
        self, project_id: UUID, title: str, exclude_document_id: UUID | None = None
    ) -> bool:
        """Whether an active document in the project has this title."""
        async with self._lock:
            return self._document_title_taken(project_id, title, exclude_document_id)

    async def create_document(
        self, project_id: UUID, title: str, content: str, author_id: UUID
    ) -> Document:
        """Insert a document."""
        async with self._lock:
            if self._active_project(project_id) is None:
                raise ConflictError("Project is no longer active")
            if self._document_title_taken(project_id, title):
                raise ConflictError("Document with the same title already exists")
            document = Document(
                id=uuid4(),
                project_id=project_id,
                title=title,
                content=content,
                author_id=author_id,
                created_at=_now(),
            )
            self._documents[document.id] = document
            return _copy(document)

    async def update_document(
        self, document_id: UUID, title: str | None = None, content: str | None = None
    ) -> Document | None:
        """Update mutable document fields."""
        async with self._lock:
            document = self._active_document(document_id)
            if not document:
                return None
            if title is not None:
                if self._document_title_taken(document.project_id, title, document_id):
                    raise ConflictError("Document with the same title already exists")
                document.title = title
            if content is not None:
                document.content = content
            document.updated_at = _now()
            return _copy(document)

    async def delete_document(self, document_id: UUID) -> bool:
        """Soft-delete a document."""
        async with self._lock:
            document = self._active_document(document_id)
            if not document:
                return False
            document.deleted_at = _now()
            return True

    async def list_documents(
        self, project_id: UUID, after: CursorKey | None, limit: int
    ) -> list[Document]:
        """List active documents of a project."""
        async with self._lock:
            if self._active_project(project_id) is None:
                return []
            rows = (
                d
                for d in self._documents.values()
                if d.project_id == project_id and d.state is EntityState.ACTIVE
            )
            return self._page(rows, after, limit)

    # ------------------------------------------------------------------
    # AuditSink / AuditLogReader
    # ------------------------------------------------------------------

    async def record(self, event: AuditEvent) -> None:
        """Store an audit event."""
        async with self._lock:
            entry = AuditLogEntry(id=uuid4(), created_at=_now(), **event.model_dump())
            self._audit_logs[entry.id] = entry

    async def list_events(
        self,
        filters: AuditLogFilter,
        after: CursorKey | None,
        limit: int,
    ) -> list[AuditLogEntry]:
        """List audit events newest first."""
        async with self._lock:
            rows = (
                e
                for e in self._audit_logs.values()
                if (filters.identity_id is None or e.identity_id == filters.identity_id)
                and (filters.action is None or e.action == filters.action)
                and (filters.entity_type is None or e.entity_type == filters.entity_type)
                and (filters.entity_id is None or e.entity_id == filters.entity_id)
            )
            return self._page(rows, after, limit)
