"""Workspace repository protocol: teams, projects, documents and memberships."""

from typing import Protocol, runtime_checkable
from uuid import UUID

from teamspace.core.pagination import CursorKey
from teamspace.core.rbac.types import (
    CascadeResult,
    Document,
    Project,
    ProjectMembership,
    ProjectRole,
    Team,
    TeamMembership,
    TeamRole,
)


@runtime_checkable
class WorkspaceRepository(Protocol):
    """Protocol for workspace storage.

    Reads never return soft-deleted entities, nor entities whose parent is
    soft-deleted. Methods documented as atomic run in a single storage
    transaction. List methods return up to ``limit`` rows ordered by
    ``created_at`` then ``id``, both descending, strictly after the cursor
    key ``after`` when given. The key is compared directly, so the row it
    came from may since have been deleted. Inserts that would break a
    unique constraint raise ConflictError.
    """

    # Teams
    async def get_team(self, team_id: UUID) -> Team | None:
        """Get an active team."""
        ...

    async def team_name_taken(
        self, user_id: UUID, name: str, exclude_team_id: UUID | None = None
    ) -> bool:
        """Whether any active team the user belongs to already has this name."""
        ...

    async def create_team(
        self, name: str, description: str | None, owner_id: UUID
    ) -> tuple[Team, TeamMembership]:
        """Create a team and its OWNER membership atomically."""
        ...

    async def update_team(
        self, team_id: UUID, name: str | None = None, description: str | None = None
    ) -> Team | None:
        """Update mutable team fields. None leaves a field unchanged."""
        ...

    async def delete_team(self, team_id: UUID) -> CascadeResult | None:
        """Soft-delete a team, its projects and their documents atomically.

        Returns None if the team was not active.
        """
        ...

    async def list_user_teams(
        self, user_id: UUID, after: CursorKey | None, limit: int
    ) -> list[Team]:
        """List active teams the user is a member of."""
        ...

    # Team memberships
    async def get_team_membership(self, team_id: UUID, user_id: UUID) -> TeamMembership | None:
        """Get a user's membership in a team."""
        ...

    async def add_team_member(
        self, team_id: UUID, user_id: UUID, role: TeamRole, added_by: UUID
    ) -> TeamMembership:
        """Insert a team membership."""
        ...

    async def update_team_member_role(
        self,
        team_id: UUID,
        user_id: UUID,
        role: TeamRole,
        from_roles: frozenset[TeamRole] | None = None,
    ) -> TeamMembership | None:
        """Change a non-OWNER membership's role.

        OWNER memberships only change through ``transfer_team_ownership``;
        returns None if the membership is absent or is the OWNER. When
        ``from_roles`` is given, the current role is re-checked in the same
        atomic step and ConflictError is raised if it is not among them,
        including when the member has since become the OWNER.
        """
        ...

    async def transfer_team_ownership(
        self, team_id: UUID, from_user_id: UUID, to_user_id: UUID
    ) -> TeamMembership | None:
        """Make ``to_user_id`` OWNER and demote ``from_user_id`` to ADMIN atomically.

        Only succeeds while ``from_user_id`` is still the OWNER. Returns the
        new owner's membership, or None if the transfer did not apply.
        """
        ...

    async def remove_team_member(
        self, team_id: UUID, user_id: UUID, removable_roles: frozenset[TeamRole]
    ) -> bool:
        """Delete a team membership and the user's memberships in the team's projects.

        The member's current role is re-read in the same atomic step as the
        delete. Returns False if the membership is absent and raises
        ConflictError if its role is no longer in ``removable_roles``.
        """
        ...

    async def list_team_members(
        self, team_id: UUID, after: CursorKey | None, limit: int
    ) -> list[TeamMembership]:
        """List a team's memberships."""
        ...

    async def get_team_owner(self, team_id: UUID) -> TeamMembership | None:
        """Get the team's OWNER membership."""
        ...

    # Projects
    async def get_project(self, project_id: UUID) -> Project | None:
        """Get an active project of an active team."""
        ...

    async def project_name_taken(
        self, team_id: UUID, name: str, exclude_project_id: UUID | None = None
    ) -> bool:
        """Whether an active project in the team already has this name."""
        ...

    async def create_project(
        self,
        team_id: UUID,
        name: str,
        description: str | None,
        members: list[tuple[UUID, ProjectRole]],
        added_by: UUID,
    ) -> Project:
        """Create a project with its seeded memberships atomically."""
        ...

    async def update_project(
        self, project_id: UUID, name: str | None = None, description: str | None = None
    ) -> Project | None:
        """Update mutable project fields. None leaves a field unchanged."""
        ...

    async def delete_project(self, project_id: UUID) -> CascadeResult | None:
        """Soft-delete a project and its documents atomically."""
        ...

    async def list_member_projects(
        self, team_id: UUID, user_id: UUID, after: CursorKey | None, limit: int
    ) -> list[Project]:
        """List active projects of a team that the user is a member of."""
        ...

    # Project memberships
    async def get_project_membership(
        self, project_id: UUID, user_id: UUID
    ) -> ProjectMembership | None:
        """Get a user's membership in a project."""
        ...

    async def add_project_member(
        self, project_id: UUID, user_id: UUID, role: ProjectRole, added_by: UUID
    ) -> ProjectMembership:
        """Insert a project membership."""
        ...

    async def update_project_member_role(
        self, project_id: UUID, user_id: UUID, role: ProjectRole
    ) -> ProjectMembership | None:
        """Change a project membership's role."""
        ...

    async def remove_project_member(self, project_id: UUID, user_id: UUID) -> bool:
        """Delete a project membership."""
        ...

    async def list_project_members(
        self, project_id: UUID, after: CursorKey | None, limit: int
    ) -> list[ProjectMembership]:
        """List a project's memberships."""
        ...

    # Documents
    async def get_document(self, document_id: UUID) -> Document | None:
        """Get an active document whose project and team are active."""
        ...

    async def document_title_taken(
        self, project_id: UUID, title: str, exclude_document_id: UUID | None = None
    ) -> bool:
        """Whether an active document in the project already has this title."""
        ...

    async def create_document(
        self, project_id: UUID, title: str, content: str, author_id: UUID
    ) -> Document:
        """Insert a document."""
        ...

    async def update_document(
        self, document_id: UUID, title: str | None = None, content: str | None = None
    ) -> Document | None:
        """Update mutable document fields. None leaves a field unchanged."""
        ...

    async def delete_document(self, document_id: UUID) -> bool:
        """Soft-delete a document."""
        ...

    async def list_documents(
        self, project_id: UUID, after: CursorKey | None, limit: int
    ) -> list[Document]:
        """List active documents of a project."""
        ...
