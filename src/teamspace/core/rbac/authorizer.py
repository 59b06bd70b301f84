"""Boundary check: re-read memberships, then consult the policy."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

import structlog

from teamspace.core.exceptions import NotFoundError
from teamspace.core.rbac.policy import (
    Decision,
    ProjectAction,
    TeamAction,
    can_act_on_project,
    can_act_on_team,
    can_create_project,
)
from teamspace.core.rbac.repository import WorkspaceRepository
from teamspace.core.rbac.types import (
    Document,
    Project,
    ProjectMembership,
    Team,
    TeamMembership,
    TeamRole,
)

logger = structlog.get_logger()


@dataclass
class TeamAccess:
    """Result of a granted team check, loaded during the check."""

    team: Team
    actor: TeamMembership
    target: TeamMembership | None = None


@dataclass
class ProjectAccess:
    """Result of a granted project check, loaded during the check."""

    project: Project
    actor: ProjectMembership
    target: ProjectMembership | None = None


@dataclass
class DocumentAccess:
    """Result of a granted document check, loaded during the check."""

    document: Document
    project: Project
    actor: ProjectMembership


class Authorizer:
    """Loads the current membership state for a request and applies the policy.

    Memberships are fetched on every call and handed to the pure policy
    functions as plain arguments. Nothing is cached on this object, so a
    role changed by a concurrent request is seen by the next check.
    """

    def __init__(self, repo: WorkspaceRepository) -> None:
        """Initialize with workspace storage."""
        self._repo = repo

    async def team(
        self,
        actor_id: UUID,
        team_id: UUID,
        action: TeamAction,
        target_user_id: UUID | None = None,
        new_role: TeamRole | None = None,
    ) -> TeamAccess:
        """Authorize a team action.

        Raises:
            NotFoundError: If the team or targeted membership does not exist.
            UnauthorizedError: If the policy denies the action.
        """
        team = await self._repo.get_team(team_id)
        if not team:
            raise NotFoundError("Team not found")

        actor = await self._repo.get_team_membership(team_id, actor_id)
        target = None
        if target_user_id is not None:
            target = await self._repo.get_team_membership(team_id, target_user_id)

        self._enforce(
            can_act_on_team(actor, target, action, new_role),
            scope="team",
            scope_id=team_id,
            actor_id=actor_id,
            action=action.value,
        )
        assert actor is not None
        return TeamAccess(team=team, actor=actor, target=target)

    async def project_creation(self, actor_id: UUID, team_id: UUID) -> TeamAccess:
        """Authorize creating a project under a team.

        Raises:
            NotFoundError: If the team does not exist.
            UnauthorizedError: If the actor is not a team OWNER or ADMIN.
        """
        team = await self._repo.get_team(team_id)
        if not team:
            raise NotFoundError("Team not found")

        actor = await self._repo.get_team_membership(team_id, actor_id)
        self._enforce(
            can_create_project(actor),
            scope="team",
            scope_id=team_id,
            actor_id=actor_id,
            action=TeamAction.CREATE_PROJECT.value,
        )
        assert actor is not None
        return TeamAccess(team=team, actor=actor)

    async def project(
        self,
        actor_id: UUID,
        project_id: UUID,
        action: ProjectAction,
        target_user_id: UUID | None = None,
    ) -> ProjectAccess:
        """Authorize a project action.

        Raises:
            NotFoundError: If the project or targeted membership does not exist.
            UnauthorizedError: If the policy denies the action.
        """
        project = await self._repo.get_project(project_id)
        if not project:
            raise NotFoundError("Project not found")

        actor = await self._repo.get_project_membership(project_id, actor_id)
        target = None
        if target_user_id is not None:
            target = await self._repo.get_project_membership(project_id, target_user_id)

        self._enforce(
            can_act_on_project(actor, action, target),
            scope="project",
            scope_id=project_id,
            actor_id=actor_id,
            action=action.value,
        )
        assert actor is not None
        return ProjectAccess(project=project, actor=actor, target=target)

    async def document(
        self,
        actor_id: UUID,
        document_id: UUID,
        action: ProjectAction,
        project_id: UUID | None = None,
    ) -> DocumentAccess:
        """Authorize an action on a document through its project membership.

        Args:
            actor_id: Acting identity.
            document_id: Document being acted on.
            action: Requested action.
            project_id: If given, the document must belong to this project.

        Raises:
            NotFoundError: If the document is absent, deleted, or not in the project.
            UnauthorizedError: If the policy denies the action.
        """
        document = await self._repo.get_document(document_id)
        if not document or (project_id is not None and document.project_id != project_id):
            raise NotFoundError("Document not found")

        access = await self.project(actor_id, document.project_id, action)
        return DocumentAccess(document=document, project=access.project, actor=access.actor)

    def _enforce(self, decision: Decision, **context: object) -> None:
        if not decision.allowed:
            logger.info(
                "authorization_denied",
                rule=decision.rule.value if decision.rule else None,
                **{k: str(v) for k, v in context.items()},
            )
        decision.raise_for_denial()
