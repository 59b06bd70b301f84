"""Tests for ProjectService over the in-memory store."""

from uuid import uuid4

import pytest
from teamspace.adapters.db.memory import InMemoryStore
from teamspace.core.auth.types import Identity
from teamspace.core.exceptions import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
)
from teamspace.core.rbac.policy import Rule
from teamspace.core.rbac.types import Project, ProjectRole, Team, TeamRole
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
    """The owning team."""
    return await team_service.create_team(owner.id, "Acme")


@pytest.fixture
async def project(project_service: ProjectService, team: Team, owner: Identity) -> Project:
    """A project created by the team owner."""
    return await project_service.create_project(owner.id, team.id, "Core", "Main line")


async def _team_member(
    team_service: TeamService,
    make_user: MakeUser,
    owner: Identity,
    team: Team,
    role: TeamRole = TeamRole.MEMBER,
) -> Identity:
    user = await make_user()
    await team_service.add_member(owner.id, team.id, user.id, role)
    return user


class TestCreateProject:
    """Tests for create_project."""

    async def test_creator_is_project_admin(
        self, project: Project, owner: Identity, store: InMemoryStore
    ) -> None:
        """The creator is seeded as project ADMIN."""
        membership = await store.get_project_membership(project.id, owner.id)

        assert membership is not None
        assert membership.role is ProjectRole.ADMIN

    async def test_admin_creator_seeds_owner_too(
        self,
        team: Team,
        owner: Identity,
        team_service: TeamService,
        project_service: ProjectService,
        make_user: MakeUser,
        store: InMemoryStore,
    ) -> None:
        """A team ADMIN's project also gets the team OWNER as ADMIN."""
        admin = await _team_member(team_service, make_user, owner, team, TeamRole.ADMIN)

        project = await project_service.create_project(admin.id, team.id, "Side")

        for user_id in (admin.id, owner.id):
            membership = await store.get_project_membership(project.id, user_id)
            assert membership is not None
            assert membership.role is ProjectRole.ADMIN

    async def test_team_member_cannot_create(
        self,
        team: Team,
        owner: Identity,
        team_service: TeamService,
        project_service: ProjectService,
        make_user: MakeUser,
    ) -> None:
        """Team MEMBERs cannot create projects."""
        member = await _team_member(team_service, make_user, owner, team)

        with pytest.raises(UnauthorizedError) as exc_info:
            await project_service.create_project(member.id, team.id, "Nope")

        assert exc_info.value.rule is Rule.INSUFFICIENT_ROLE

    async def test_duplicate_name_in_team(
        self, project: Project, team: Team, owner: Identity, project_service: ProjectService
    ) -> None:
        """Project names are unique within a team."""
        with pytest.raises(ConflictError, match="already exists in the team"):
            await project_service.create_project(owner.id, team.id, "Core")

    async def test_same_name_in_other_team(
        self,
        project: Project,
        owner: Identity,
        team_service: TeamService,
        project_service: ProjectService,
    ) -> None:
        """Names may repeat across teams."""
        other_team = await team_service.create_team(owner.id, "Other")

        created = await project_service.create_project(owner.id, other_team.id, "Core")

        assert created.team_id == other_team.id

    async def test_missing_team(self, owner: Identity, project_service: ProjectService) -> None:
        """Creating under an unknown team is not found."""
        with pytest.raises(NotFoundError, match="Team not found"):
            await project_service.create_project(owner.id, uuid4(), "Core")


class TestReadUpdateDelete:
    """Tests for get, update and delete."""

    async def test_team_member_without_project_membership(
        self,
        project: Project,
        team: Team,
        owner: Identity,
        team_service: TeamService,
        project_service: ProjectService,
        make_user: MakeUser,
    ) -> None:
        """Team membership does not imply project access."""
        member = await _team_member(team_service, make_user, owner, team)

        with pytest.raises(UnauthorizedError, match="not a member of the project"):
            await project_service.get_project(member.id, project.id)

    async def test_update(
        self, project: Project, owner: Identity, project_service: ProjectService
    ) -> None:
        """Project ADMIN updates fields; omitted fields stay."""
        updated = await project_service.update_project(owner.id, project.id, name="Core v2")

        assert updated.name == "Core v2"
        assert updated.description == "Main line"

    async def test_editor_cannot_update(
        self,
        project: Project,
        team: Team,
        owner: Identity,
        team_service: TeamService,
        project_service: ProjectService,
        make_user: MakeUser,
    ) -> None:
        """EDITORs edit documents, not projects."""
        editor = await _team_member(team_service, make_user, owner, team)
        await project_service.add_member(owner.id, project.id, editor.id, ProjectRole.EDITOR)

        with pytest.raises(UnauthorizedError):
            await project_service.update_project(editor.id, project.id, name="x")

    async def test_delete_cascades_documents(
        self,
        project: Project,
        owner: Identity,
        project_service: ProjectService,
        document_service: DocumentService,
        store: InMemoryStore,
    ) -> None:
        """Deleting a project soft-deletes its documents."""
        doc = await document_service.create_document(owner.id, project.id, "Spec")

        result = await project_service.delete_project(owner.id, project.id)

        assert (result.projects, result.documents) == (1, 1)
        assert await store.get_document(doc.id) is None
        with pytest.raises(NotFoundError):
            await project_service.get_project(owner.id, project.id)

    async def test_name_reusable_after_delete(
        self, project: Project, team: Team, owner: Identity, project_service: ProjectService
    ) -> None:
        """Soft-deleted projects release their name."""
        await project_service.delete_project(owner.id, project.id)

        recreated = await project_service.create_project(owner.id, team.id, "Core")

        assert recreated.id != project.id


class TestListProjects:
    """Tests for list_projects_by_team."""

    async def test_only_member_projects(
        self,
        project: Project,
        team: Team,
        owner: Identity,
        team_service: TeamService,
        project_service: ProjectService,
        make_user: MakeUser,
    ) -> None:
        """Team members only see the projects they belong to."""
        member = await _team_member(team_service, make_user, owner, team)
        visible = await project_service.create_project(owner.id, team.id, "Visible")
        await project_service.add_member(owner.id, visible.id, member.id)

        page = await project_service.list_projects_by_team(member.id, team.id)
        owner_page = await project_service.list_projects_by_team(owner.id, team.id)

        assert [p.id for p in page.data] == [visible.id]
        assert {p.id for p in owner_page.data} == {project.id, visible.id}

    async def test_outsider_denied(
        self, team: Team, project_service: ProjectService, make_user: MakeUser
    ) -> None:
        """Non-members of the team cannot list."""
        outsider = await make_user()

        with pytest.raises(UnauthorizedError):
            await project_service.list_projects_by_team(outsider.id, team.id)


class TestProjectMembers:
    """Tests for project membership management."""

    async def test_add_requires_team_membership(
        self,
        project: Project,
        owner: Identity,
        project_service: ProjectService,
        make_user: MakeUser,
    ) -> None:
        """Only members of the owning team can join a project."""
        outsider = await make_user()

        with pytest.raises(BadRequestError, match="not a member of the team"):
            await project_service.add_member(owner.id, project.id, outsider.id)

    async def test_add_twice(
        self,
        project: Project,
        team: Team,
        owner: Identity,
        team_service: TeamService,
        project_service: ProjectService,
        make_user: MakeUser,
    ) -> None:
        """Membership is unique per (project, user)."""
        member = await _team_member(team_service, make_user, owner, team)
        await project_service.add_member(owner.id, project.id, member.id)

        with pytest.raises(ConflictError):
            await project_service.add_member(owner.id, project.id, member.id)

    async def test_change_role_and_list(
        self,
        project: Project,
        team: Team,
        owner: Identity,
        team_service: TeamService,
        project_service: ProjectService,
        make_user: MakeUser,
    ) -> None:
        """Role changes are visible in the member list."""
        member = await _team_member(team_service, make_user, owner, team)
        await project_service.add_member(owner.id, project.id, member.id)

        await project_service.update_member_role(
            owner.id, project.id, member.id, ProjectRole.EDITOR
        )
        page = await project_service.list_members(member.id, project.id)

        roles = {m.user_id: m.role for m in page.data}
        assert roles == {owner.id: ProjectRole.ADMIN, member.id: ProjectRole.EDITOR}

    async def test_change_role_of_non_member(
        self, project: Project, owner: Identity, project_service: ProjectService
    ) -> None:
        """Targets must be project members."""
        with pytest.raises(NotFoundError, match="not a member of the project"):
            await project_service.update_member_role(
                owner.id, project.id, uuid4(), ProjectRole.EDITOR
            )

    async def test_remove(
        self,
        project: Project,
        team: Team,
        owner: Identity,
        team_service: TeamService,
        project_service: ProjectService,
        make_user: MakeUser,
        store: InMemoryStore,
    ) -> None:
        """Removed members lose access; they stay in the team."""
        member = await _team_member(team_service, make_user, owner, team)
        await project_service.add_member(owner.id, project.id, member.id)

        await project_service.remove_member(owner.id, project.id, member.id)

        assert await store.get_project_membership(project.id, member.id) is None
        assert await store.get_team_membership(team.id, member.id) is not None
        with pytest.raises(UnauthorizedError):
            await project_service.get_project(member.id, project.id)

    async def test_member_cannot_remove(
        self,
        project: Project,
        team: Team,
        owner: Identity,
        team_service: TeamService,
        project_service: ProjectService,
        make_user: MakeUser,
    ) -> None:
        """Plain project MEMBERs cannot manage membership."""
        member = await _team_member(team_service, make_user, owner, team)
        await project_service.add_member(owner.id, project.id, member.id)

        with pytest.raises(UnauthorizedError):
            await project_service.remove_member(member.id, project.id, owner.id)
