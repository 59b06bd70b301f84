"""Tests for TeamService over the in-memory store."""

from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest
from teamspace.adapters.db.memory import InMemoryStore
from teamspace.core.audit.types import AuditAction, AuditLogFilter
from teamspace.core.auth.types import Identity
from teamspace.core.exceptions import ConflictError, NotFoundError, UnauthorizedError
from teamspace.core.rbac.policy import Rule
from teamspace.core.rbac.types import Team, TeamMembership, TeamRole
from teamspace.core.workspace.documents import DocumentService
from teamspace.core.workspace.projects import ProjectService
from teamspace.core.workspace.teams import TeamService

from tests.conftest import MakeUser


@pytest.fixture
async def owner(make_user: MakeUser) -> Identity:
    """The team owner."""
    return await make_user("Olivia")


@pytest.fixture
async def team(team_service: TeamService, owner: Identity) -> Team:
    """A team owned by ``owner``."""
    return await team_service.create_team(owner.id, "Acme", "Rockets")


class TestCreateTeam:
    """Tests for create_team."""

    async def test_creator_becomes_owner(
        self, team: Team, owner: Identity, store: InMemoryStore
    ) -> None:
        """The creator holds the single OWNER membership."""
        membership = await store.get_team_membership(team.id, owner.id)

        assert membership is not None
        assert membership.role is TeamRole.OWNER
        assert (await store.get_team_owner(team.id)) == membership

    async def test_duplicate_name_for_same_owner(
        self, team: Team, team_service: TeamService, owner: Identity
    ) -> None:
        """One user cannot have two teams with the same name."""
        with pytest.raises(ConflictError, match="Team with this name already exists"):
            await team_service.create_team(owner.id, "Acme")

    async def test_same_name_for_other_user(
        self, team: Team, team_service: TeamService, make_user: MakeUser
    ) -> None:
        """Team names are scoped to the user, not global."""
        other = await make_user()

        created = await team_service.create_team(other.id, "Acme")

        assert created.id != team.id

    async def test_name_reusable_after_delete(
        self, team: Team, team_service: TeamService, owner: Identity
    ) -> None:
        """Deleted teams release their name."""
        await team_service.delete_team(owner.id, team.id)

        recreated = await team_service.create_team(owner.id, "Acme")

        assert recreated.id != team.id

    async def test_audited(self, team: Team, store: InMemoryStore) -> None:
        """Creation is recorded."""
        events = await store.list_events(
            AuditLogFilter(action=AuditAction.CREATE_TEAM), None, 10
        )

        assert [e.entity_id for e in events] == [team.id]


class TestUpdateTeam:
    """Tests for update_team."""

    async def test_admin_renames(
        self, team: Team, team_service: TeamService, owner: Identity, make_user: MakeUser
    ) -> None:
        """ADMINs may update the team."""
        admin = await make_user()
        await team_service.add_member(owner.id, team.id, admin.id, TeamRole.ADMIN)

        updated = await team_service.update_team(admin.id, team.id, name="Acme 2")

        assert updated.name == "Acme 2"
        assert updated.description == "Rockets"

    async def test_member_cannot_update(
        self, team: Team, team_service: TeamService, owner: Identity, make_user: MakeUser
    ) -> None:
        """MEMBERs are below the floor."""
        member = await make_user()
        await team_service.add_member(owner.id, team.id, member.id)

        with pytest.raises(UnauthorizedError):
            await team_service.update_team(member.id, team.id, description="x")

    async def test_rename_to_taken_name(
        self, team: Team, team_service: TeamService, owner: Identity
    ) -> None:
        """Renaming onto another of the user's teams conflicts."""
        other = await team_service.create_team(owner.id, "Beta")

        with pytest.raises(ConflictError):
            await team_service.update_team(owner.id, other.id, name="Acme")

    async def test_rename_to_same_name(
        self, team: Team, team_service: TeamService, owner: Identity
    ) -> None:
        """Keeping the current name is not a conflict."""
        updated = await team_service.update_team(owner.id, team.id, name="Acme")

        assert updated.name == "Acme"


class TestDeleteTeam:
    """Tests for delete_team."""

    async def test_cascades(
        self,
        team: Team,
        team_service: TeamService,
        project_service: ProjectService,
        document_service: DocumentService,
        owner: Identity,
        store: InMemoryStore,
    ) -> None:
        """Projects and documents go with the team."""
        project = await project_service.create_project(owner.id, team.id, "Core")
        document = await document_service.create_document(owner.id, project.id, "Spec")

        result = await team_service.delete_team(owner.id, team.id)

        assert (result.projects, result.documents) == (1, 1)
        assert await store.get_team(team.id) is None
        assert await store.get_project(project.id) is None
        assert await store.get_document(document.id) is None

    async def test_admin_cannot_delete(
        self, team: Team, team_service: TeamService, owner: Identity, make_user: MakeUser
    ) -> None:
        """Only the OWNER deletes."""
        admin = await make_user()
        await team_service.add_member(owner.id, team.id, admin.id, TeamRole.ADMIN)

        with pytest.raises(UnauthorizedError, match="Only the team owner can delete"):
            await team_service.delete_team(admin.id, team.id)

    async def test_deleted_team_is_not_found(
        self, team: Team, team_service: TeamService, owner: Identity
    ) -> None:
        """A second delete sees nothing."""
        await team_service.delete_team(owner.id, team.id)

        with pytest.raises(NotFoundError):
            await team_service.delete_team(owner.id, team.id)
        with pytest.raises(NotFoundError):
            await team_service.get_team(owner.id, team.id)


class TestListTeams:
    """Tests for list_user_teams."""

    async def test_lists_only_own_active_teams(
        self, team: Team, team_service: TeamService, owner: Identity, make_user: MakeUser
    ) -> None:
        """Deleted teams and other users' teams are excluded."""
        stranger = await make_user()
        await team_service.create_team(stranger.id, "Elsewhere")
        gone = await team_service.create_team(owner.id, "Gone")
        await team_service.delete_team(owner.id, gone.id)

        page = await team_service.list_user_teams(owner.id)

        assert [t.id for t in page.data] == [team.id]
        assert page.page_info.has_next_page is False

    async def test_pages_cover_everything_once(
        self, team_service: TeamService, make_user: MakeUser
    ) -> None:
        """Walking the cursors visits every team exactly once."""
        user = await make_user()
        created = {(await team_service.create_team(user.id, f"T{i}")).id for i in range(7)}

        seen = []
        cursor = None
        while True:
            page = await team_service.list_user_teams(user.id, cursor=cursor, limit=3)
            seen.extend(t.id for t in page.data)
            if not page.page_info.has_next_page:
                break
            cursor = page.page_info.end_cursor

        assert len(seen) == 7
        assert set(seen) == created


class TestMembers:
    """Tests for member management."""

    async def test_add_member(
        self, team: Team, team_service: TeamService, owner: Identity, make_user: MakeUser
    ) -> None:
        """Added members appear in the member list."""
        member = await make_user()

        membership = await team_service.add_member(owner.id, team.id, member.id)
        page = await team_service.list_team_members(owner.id, team.id)

        assert membership.role is TeamRole.MEMBER
        assert membership.added_by == owner.id
        assert {m.user_id for m in page.data} == {owner.id, member.id}

    async def test_add_unknown_user(
        self, team: Team, team_service: TeamService, owner: Identity
    ) -> None:
        """Only existing identities can be added."""
        with pytest.raises(NotFoundError, match="User not found"):
            await team_service.add_member(owner.id, team.id, uuid4())

    async def test_add_twice(
        self, team: Team, team_service: TeamService, owner: Identity, make_user: MakeUser
    ) -> None:
        """Membership is unique per (team, user)."""
        member = await make_user()
        await team_service.add_member(owner.id, team.id, member.id)

        with pytest.raises(ConflictError):
            await team_service.add_member(owner.id, team.id, member.id)

    async def test_add_as_owner_denied(
        self, team: Team, team_service: TeamService, owner: Identity, make_user: MakeUser
    ) -> None:
        """Nobody is added directly as OWNER."""
        member = await make_user()

        with pytest.raises(UnauthorizedError) as exc_info:
            await team_service.add_member(owner.id, team.id, member.id, TeamRole.OWNER)

        assert exc_info.value.rule is Rule.OWNER_NOT_ASSIGNABLE

    async def test_non_member_cannot_list(
        self, team: Team, team_service: TeamService, make_user: MakeUser
    ) -> None:
        """Outsiders cannot see members."""
        outsider = await make_user()

        with pytest.raises(UnauthorizedError):
            await team_service.list_team_members(outsider.id, team.id)

    async def test_remove_member_drops_project_memberships(
        self,
        team: Team,
        team_service: TeamService,
        project_service: ProjectService,
        owner: Identity,
        make_user: MakeUser,
        store: InMemoryStore,
    ) -> None:
        """Leaving a team also leaves its projects."""
        member = await make_user()
        await team_service.add_member(owner.id, team.id, member.id)
        project = await project_service.create_project(owner.id, team.id, "Core")
        await project_service.add_member(owner.id, project.id, member.id)

        await team_service.remove_member(owner.id, team.id, member.id)

        assert await store.get_team_membership(team.id, member.id) is None
        assert await store.get_project_membership(project.id, member.id) is None

    async def test_remove_missing_member(
        self, team: Team, team_service: TeamService, owner: Identity
    ) -> None:
        """Removing a non-member is not found."""
        with pytest.raises(NotFoundError, match="Team member not found"):
            await team_service.remove_member(owner.id, team.id, uuid4())

    async def test_owner_cannot_remove_self(
        self, team: Team, team_service: TeamService, owner: Identity
    ) -> None:
        """The OWNER never leaves the team by removal."""
        with pytest.raises(UnauthorizedError) as exc_info:
            await team_service.remove_member(owner.id, team.id, owner.id)

        assert exc_info.value.rule is Rule.SELF_ACTION

    async def test_admin_removal_loses_to_ownership_transfer(
        self,
        team: Team,
        team_service: TeamService,
        owner: Identity,
        make_user: MakeUser,
        store: InMemoryStore,
    ) -> None:
        """A removal authorized against a stale role does not delete the new owner."""
        admin = await make_user()
        member = await make_user()
        await team_service.add_member(owner.id, team.id, admin.id, TeamRole.ADMIN)
        await team_service.add_member(owner.id, team.id, member.id)
        read_membership = store.get_team_membership

        async def read_then_transfer(team_id: UUID, user_id: UUID) -> TeamMembership | None:
            membership = await read_membership(team_id, user_id)
            if user_id == member.id:
                await store.transfer_team_ownership(team_id, owner.id, member.id)
            return membership

        store.get_team_membership = read_then_transfer  # type: ignore[method-assign]

        with pytest.raises(ConflictError, match="changed concurrently"):
            await team_service.remove_member(admin.id, team.id, member.id)

        new_owner = await store.get_team_owner(team.id)
        assert new_owner is not None and new_owner.user_id == member.id


class TestRoles:
    """Tests for update_member_role."""

    async def test_owner_promotes_to_admin(
        self, team: Team, team_service: TeamService, owner: Identity, make_user: MakeUser
    ) -> None:
        """OWNER assigns ADMIN."""
        member = await make_user()
        await team_service.add_member(owner.id, team.id, member.id)

        updated = await team_service.update_member_role(
            owner.id, team.id, member.id, TeamRole.ADMIN
        )

        assert updated.role is TeamRole.ADMIN

    async def test_ownership_transfer(
        self,
        team: Team,
        team_service: TeamService,
        owner: Identity,
        make_user: MakeUser,
        store: InMemoryStore,
    ) -> None:
        """Granting OWNER demotes the previous owner to ADMIN."""
        member = await make_user()
        await team_service.add_member(owner.id, team.id, member.id)

        updated = await team_service.update_member_role(
            owner.id, team.id, member.id, TeamRole.OWNER
        )

        previous = await store.get_team_membership(team.id, owner.id)
        assert updated.role is TeamRole.OWNER
        assert previous is not None and previous.role is TeamRole.ADMIN
        page = await team_service.list_team_members(member.id, team.id)
        assert [m.role for m in page.data].count(TeamRole.OWNER) == 1

    async def test_admin_cannot_promote_to_admin(
        self, team: Team, team_service: TeamService, owner: Identity, make_user: MakeUser
    ) -> None:
        """Only the OWNER grants ADMIN."""
        admin = await make_user()
        member = await make_user()
        await team_service.add_member(owner.id, team.id, admin.id, TeamRole.ADMIN)
        await team_service.add_member(owner.id, team.id, member.id)

        with pytest.raises(UnauthorizedError) as exc_info:
            await team_service.update_member_role(admin.id, team.id, member.id, TeamRole.ADMIN)

        assert exc_info.value.rule is Rule.ADMIN_GRANT_REQUIRES_OWNER

    async def test_lost_transfer_race(
        self,
        team: Team,
        team_service: TeamService,
        owner: Identity,
        make_user: MakeUser,
        store: InMemoryStore,
    ) -> None:
        """If ownership moved under us, the transfer conflicts."""
        member = await make_user()
        await team_service.add_member(owner.id, team.id, member.id)
        store.transfer_team_ownership = AsyncMock(return_value=None)  # type: ignore[method-assign]

        with pytest.raises(ConflictError, match="changed concurrently"):
            await team_service.update_member_role(owner.id, team.id, member.id, TeamRole.OWNER)

    async def test_admin_role_change_loses_to_promotion(
        self,
        team: Team,
        team_service: TeamService,
        owner: Identity,
        make_user: MakeUser,
        store: InMemoryStore,
    ) -> None:
        """An admin cannot re-role a member the owner just promoted to ADMIN."""
        admin = await make_user()
        member = await make_user()
        await team_service.add_member(owner.id, team.id, admin.id, TeamRole.ADMIN)
        await team_service.add_member(owner.id, team.id, member.id)
        read_membership = store.get_team_membership

        async def read_then_promote(team_id: UUID, user_id: UUID) -> TeamMembership | None:
            membership = await read_membership(team_id, user_id)
            if user_id == member.id:
                await store.update_team_member_role(team_id, member.id, TeamRole.ADMIN)
            return membership

        store.get_team_membership = read_then_promote  # type: ignore[method-assign]

        with pytest.raises(ConflictError, match="changed concurrently"):
            await team_service.update_member_role(admin.id, team.id, member.id, TeamRole.MEMBER)

        current = await read_membership(team.id, member.id)
        assert current is not None and current.role is TeamRole.ADMIN
