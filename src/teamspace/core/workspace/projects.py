"""Project lifecycle and project membership."""

from __future__ import annotations

from typing import Any
from uuid import UUID

import structlog

from teamspace.core.audit.recorder import AuditRecorder
from teamspace.core.audit.types import AuditAction, EntityType
from teamspace.core.exceptions import BadRequestError, ConflictError, NotFoundError
from teamspace.core.pagination import Page, build_page, page_request
from teamspace.core.rbac.authorizer import Authorizer
from teamspace.core.rbac.policy import ProjectAction, TeamAction
from teamspace.core.rbac.repository import WorkspaceRepository
from teamspace.core.rbac.types import (
    CascadeResult,
    Project,
    ProjectMembership,
    ProjectRole,
)

logger = structlog.get_logger()


class ProjectService:
    """Project operations. Project access is always a subset of team access."""

    def __init__(self, repo: WorkspaceRepository, audit: AuditRecorder | None = None) -> None:
        """Initialize with workspace storage and an audit recorder."""
        self._repo = repo
        self._authz = Authorizer(repo)
        self._audit = audit or AuditRecorder()

    async def create_project(
        self,
        actor_id: UUID,
        team_id: UUID,
        name: str,
        description: str | None = None,
    ) -> Project:
        """Create a project under a team.

        The creator and, if different, the team OWNER are seeded as project
        ADMINs in the same transaction as the project row.

        Raises:
            NotFoundError: If the team does not exist.
            UnauthorizedError: If the actor is not a team OWNER or ADMIN.
            ConflictError: If the team already has a project with the name.
        """
        await self._authz.project_creation(actor_id, team_id)

        if await self._repo.project_name_taken(team_id, name):
            raise ConflictError("Project with this name already exists in the team")

        members: list[tuple[UUID, ProjectRole]] = [(actor_id, ProjectRole.ADMIN)]
        owner = await self._repo.get_team_owner(team_id)
        if owner and owner.user_id != actor_id:
            members.append((owner.user_id, ProjectRole.ADMIN))

        project = await self._repo.create_project(
            team_id, name, description, members=members, added_by=actor_id
        )
        logger.info("project_created", project_id=str(project.id), team_id=str(team_id))
        await self._audit.record(
            actor_id,
            AuditAction.CREATE_PROJECT,
            EntityType.PROJECT,
            project.id,
            metadata={"team_id": str(team_id), "name": name},
        )
        return project

    async def get_project(self, actor_id: UUID, project_id: UUID) -> Project:
        """Get a project the actor is a member of."""
        access = await self._authz.project(actor_id, project_id, ProjectAction.READ)
        return access.project

    async def update_project(
        self,
        actor_id: UUID,
        project_id: UUID,
        name: str | None = None,
        description: str | None = None,
    ) -> Project:
        """Update a project's name or description. Requires project ADMIN."""
        access = await self._authz.project(actor_id, project_id, ProjectAction.UPDATE_PROJECT)
        if name is not None and name != access.project.name:
            taken = await self._repo.project_name_taken(
                access.project.team_id, name, exclude_project_id=project_id
            )
            if taken:
                raise ConflictError("Project with this name already exists in the team")

        project = await self._repo.update_project(project_id, name=name, description=description)
        if not project:
            raise NotFoundError("Project not found")

        await self._audit.record(
            actor_id,
            AuditAction.UPDATE_PROJECT,
            EntityType.PROJECT,
            project_id,
            metadata={"name": name, "description": description},
        )
        return project

    async def delete_project(self, actor_id: UUID, project_id: UUID) -> CascadeResult:
        """Soft-delete a project and its documents. Requires project ADMIN."""
        await self._authz.project(actor_id, project_id, ProjectAction.DELETE_PROJECT)

        result = await self._repo.delete_project(project_id)
        if result is None:
            raise NotFoundError("Project not found")

        logger.info("project_deleted", project_id=str(project_id), documents=result.documents)
        await self._audit.record(
            actor_id,
            AuditAction.DELETE_PROJECT,
            EntityType.PROJECT,
            project_id,
            metadata={"documents": result.documents},
        )
        return result

    async def list_projects_by_team(
        self,
        actor_id: UUID,
        team_id: UUID,
        cursor: str | None = None,
        limit: Any = None,
    ) -> Page[Project]:
        """List the team's projects that the actor is a member of."""
        await self._authz.team(actor_id, team_id, TeamAction.READ)
        request = page_request(cursor, limit)
        rows = await self._repo.list_member_projects(
            team_id, actor_id, request.after, request.fetch_size
        )
        return build_page(rows, request.limit)

    async def list_members(
        self,
        actor_id: UUID,
        project_id: UUID,
        cursor: str | None = None,
        limit: Any = None,
    ) -> Page[ProjectMembership]:
        """List a project's members. Any member may list."""
        await self._authz.project(actor_id, project_id, ProjectAction.READ)
        request = page_request(cursor, limit)
        rows = await self._repo.list_project_members(
            project_id, request.after, request.fetch_size
        )
        return build_page(rows, request.limit)

    async def add_member(
        self,
        actor_id: UUID,
        project_id: UUID,
        user_id: UUID,
        role: ProjectRole = ProjectRole.MEMBER,
    ) -> ProjectMembership:
        """Add a team member to a project. Requires project ADMIN.

        Raises:
            BadRequestError: If the user is not a member of the owning team.
            ConflictError: If the user is already a project member.
        """
        access = await self._authz.project(actor_id, project_id, ProjectAction.ADD_MEMBER)

        if await self._repo.get_project_membership(project_id, user_id):
            raise ConflictError("User is already a member of the project")
        if not await self._repo.get_team_membership(access.project.team_id, user_id):
            raise BadRequestError("User is not a member of the team")

        membership = await self._repo.add_project_member(
            project_id, user_id, role, added_by=actor_id
        )
        await self._audit.record(
            actor_id,
            AuditAction.ADD_PROJECT_MEMBER,
            EntityType.PROJECT,
            project_id,
            metadata={"user_id": str(user_id), "role": role.value},
        )
        return membership

    async def remove_member(self, actor_id: UUID, project_id: UUID, user_id: UUID) -> None:
        """Remove a project member. Requires project ADMIN."""
        await self._authz.project(
            actor_id, project_id, ProjectAction.REMOVE_MEMBER, target_user_id=user_id
        )

        if not await self._repo.remove_project_member(project_id, user_id):
            raise NotFoundError("User is not a member of the project")

        await self._audit.record(
            actor_id,
            AuditAction.REMOVE_PROJECT_MEMBER,
            EntityType.PROJECT,
            project_id,
            metadata={"user_id": str(user_id)},
        )

    async def update_member_role(
        self,
        actor_id: UUID,
        project_id: UUID,
        user_id: UUID,
        role: ProjectRole,
    ) -> ProjectMembership:
        """Change a project member's role. Requires project ADMIN."""
        await self._authz.project(
            actor_id, project_id, ProjectAction.CHANGE_ROLE, target_user_id=user_id
        )

        membership = await self._repo.update_project_member_role(project_id, user_id, role)
        if membership is None:
            raise NotFoundError("User is not a member of the project")

        await self._audit.record(
            actor_id,
            AuditAction.UPDATE_PROJECT_MEMBER_ROLE,
            EntityType.PROJECT,
            project_id,
            metadata={"user_id": str(user_id), "role": role.value},
        )
        return membership
