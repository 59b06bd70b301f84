"""Team lifecycle: create, update, delete and membership changes."""

from __future__ import annotations

from typing import Any
from uuid import UUID

import structlog

from teamspace.core.audit.recorder import AuditRecorder
from teamspace.core.audit.types import AuditAction, EntityType
from teamspace.core.auth.repository import AuthRepository
from teamspace.core.exceptions import ConflictError, NotFoundError
from teamspace.core.pagination import Page, build_page, page_request
from teamspace.core.rbac.authorizer import Authorizer
from teamspace.core.rbac.policy import MANAGEABLE_TEAM_ROLES, TeamAction
from teamspace.core.rbac.repository import WorkspaceRepository
from teamspace.core.rbac.types import CascadeResult, Team, TeamMembership, TeamRole

logger = structlog.get_logger()


class TeamService:
    """Team operations, each gated by a fresh role check."""

    def __init__(
        self,
        repo: WorkspaceRepository,
        identities: AuthRepository,
        audit: AuditRecorder | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            repo: Workspace storage.
            identities: Identity lookup, used to validate new members.
            audit: Audit recorder.
        """
        self._repo = repo
        self._identities = identities
        self._authz = Authorizer(repo)
        self._audit = audit or AuditRecorder()

    async def create_team(
        self, actor_id: UUID, name: str, description: str | None = None
    ) -> Team:
        """Create a team with the actor as its OWNER.

        Raises:
            ConflictError: If one of the actor's teams already has the name.
        """
        if await self._repo.team_name_taken(actor_id, name):
            raise ConflictError("Team with this name already exists")

        team, _ = await self._repo.create_team(name, description, actor_id)
        logger.info("team_created", team_id=str(team.id), owner_id=str(actor_id))
        await self._audit.record(
            actor_id, AuditAction.CREATE_TEAM, EntityType.TEAM, team.id, metadata={"name": name}
        )
        return team

    async def get_team(self, actor_id: UUID, team_id: UUID) -> Team:
        """Get a team the actor belongs to."""
        access = await self._authz.team(actor_id, team_id, TeamAction.READ)
        return access.team

    async def update_team(
        self,
        actor_id: UUID,
        team_id: UUID,
        name: str | None = None,
        description: str | None = None,
    ) -> Team:
        """Rename or re-describe a team. Requires OWNER or ADMIN.

        Raises:
            ConflictError: If the new name collides with another of the actor's teams.
        """
        access = await self._authz.team(actor_id, team_id, TeamAction.UPDATE_TEAM)
        if name is not None and name != access.team.name:
            if await self._repo.team_name_taken(actor_id, name, exclude_team_id=team_id):
                raise ConflictError("Team with this name already exists")

        team = await self._repo.update_team(team_id, name=name, description=description)
        if not team:
            raise NotFoundError("Team not found")

        await self._audit.record(
            actor_id,
            AuditAction.UPDATE_TEAM,
            EntityType.TEAM,
            team_id,
            metadata={"name": name, "description": description},
        )
        return team

    async def delete_team(self, actor_id: UUID, team_id: UUID) -> CascadeResult:
        """Soft-delete a team with its projects and documents. Requires OWNER."""
        await self._authz.team(actor_id, team_id, TeamAction.DELETE_TEAM)

        result = await self._repo.delete_team(team_id)
        if result is None:
            raise NotFoundError("Team not found")

        logger.info(
            "team_deleted",
            team_id=str(team_id),
            projects=result.projects,
            documents=result.documents,
        )
        await self._audit.record(
            actor_id,
            AuditAction.DELETE_TEAM,
            EntityType.TEAM,
            team_id,
            metadata={"projects": result.projects, "documents": result.documents},
        )
        return result

    async def list_user_teams(
        self, actor_id: UUID, cursor: str | None = None, limit: Any = None
    ) -> Page[Team]:
        """List the actor's teams, newest first."""
        request = page_request(cursor, limit)
        rows = await self._repo.list_user_teams(actor_id, request.after, request.fetch_size)
        return build_page(rows, request.limit)

    async def list_team_members(
        self,
        actor_id: UUID,
        team_id: UUID,
        cursor: str | None = None,
        limit: Any = None,
    ) -> Page[TeamMembership]:
        """List a team's members. Any member may list."""
        await self._authz.team(actor_id, team_id, TeamAction.READ)
        request = page_request(cursor, limit)
        rows = await self._repo.list_team_members(team_id, request.after, request.fetch_size)
        return build_page(rows, request.limit)

    async def add_member(
        self,
        actor_id: UUID,
        team_id: UUID,
        user_id: UUID,
        role: TeamRole = TeamRole.MEMBER,
    ) -> TeamMembership:
        """Add an existing identity to a team.

        Only the OWNER may add ADMINs; nobody may add an OWNER.

        Raises:
            NotFoundError: If the team or identity does not exist.
            ConflictError: If the identity is already a member.
        """
        await self._authz.team(actor_id, team_id, TeamAction.ADD_MEMBER, new_role=role)

        if not await self._identities.get_user_by_id(user_id):
            raise NotFoundError("User not found")
        if await self._repo.get_team_membership(team_id, user_id):
            raise ConflictError("User is already a member of the team")

        membership = await self._repo.add_team_member(team_id, user_id, role, added_by=actor_id)
        await self._audit.record(
            actor_id,
            AuditAction.ADD_TEAM_MEMBER,
            EntityType.TEAM,
            team_id,
            metadata={"user_id": str(user_id), "role": role.value},
        )
        return membership

    async def remove_member(self, actor_id: UUID, team_id: UUID, user_id: UUID) -> None:
        """Remove a member along with their memberships in the team's projects."""
        access = await self._authz.team(
            actor_id, team_id, TeamAction.REMOVE_MEMBER, target_user_id=user_id
        )

        # The target role is re-checked atomically with the delete
        removable = MANAGEABLE_TEAM_ROLES[access.actor.role]
        if not await self._repo.remove_team_member(team_id, user_id, removable):
            raise NotFoundError("Team member not found")

        logger.info("team_member_removed", team_id=str(team_id), user_id=str(user_id))
        await self._audit.record(
            actor_id,
            AuditAction.REMOVE_TEAM_MEMBER,
            EntityType.TEAM,
            team_id,
            metadata={"user_id": str(user_id)},
        )

    async def update_member_role(
        self,
        actor_id: UUID,
        team_id: UUID,
        user_id: UUID,
        role: TeamRole,
    ) -> TeamMembership:
        """Change a member's role.

        Granting OWNER hands ownership over: the target becomes OWNER and
        the acting owner becomes ADMIN in the same transaction.

        Raises:
            NotFoundError: If the team or membership does not exist.
            UnauthorizedError: If the role transition is not allowed.
            ConflictError: If ownership or the member's role changed concurrently.
        """
        access = await self._authz.team(
            actor_id, team_id, TeamAction.CHANGE_ROLE, target_user_id=user_id, new_role=role
        )

        if role is TeamRole.OWNER:
            membership = await self._repo.transfer_team_ownership(team_id, actor_id, user_id)
            if membership is None:
                raise ConflictError("Team ownership changed concurrently")
            logger.info(
                "team_ownership_transferred",
                team_id=str(team_id),
                from_user_id=str(actor_id),
                to_user_id=str(user_id),
            )
            await self._audit.record(
                actor_id,
                AuditAction.TRANSFER_TEAM_OWNERSHIP,
                EntityType.TEAM,
                team_id,
                metadata={"user_id": str(user_id)},
            )
            return membership

        updated = await self._repo.update_team_member_role(
            team_id, user_id, role, from_roles=MANAGEABLE_TEAM_ROLES[access.actor.role]
        )
        if updated is None:
            raise NotFoundError("Team member not found")

        await self._audit.record(
            actor_id,
            AuditAction.UPDATE_TEAM_MEMBER_ROLE,
            EntityType.TEAM,
            team_id,
            metadata={"user_id": str(user_id), "role": role.value},
        )
        return updated
