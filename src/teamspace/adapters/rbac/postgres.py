"""PostgreSQL implementation of WorkspaceRepository."""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

import asyncpg

from teamspace.adapters.db.app_db import AppDatabase, affected_rows
from teamspace.core.exceptions import ConflictError
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

logger = logging.getLogger(__name__)

_TEAM_COLUMNS = "t.id, t.name, t.description, t.created_at, t.updated_at, t.deleted_at"
_TEAM_MEMBER_COLUMNS = "tm.id, tm.team_id, tm.user_id, tm.role, tm.added_by, tm.created_at"
_PROJECT_COLUMNS = (
    "p.id, p.team_id, p.name, p.description, p.created_at, p.updated_at, p.deleted_at"
)
_PROJECT_MEMBER_COLUMNS = (
    "pm.id, pm.project_id, pm.user_id, pm.role, pm.added_by, pm.created_at"
)
_DOCUMENT_COLUMNS = (
    "d.id, d.project_id, d.title, d.content, d.author_id, "
    "d.created_at, d.updated_at, d.deleted_at"
)


class PostgresWorkspaceRepository:
    """PostgreSQL implementation of the workspace repository.

    Soft-deleted rows are filtered in every read by joining up to the team,
    so a deleted parent hides its children even before the cascade reaches
    them.
    """

    def __init__(self, db: AppDatabase) -> None:
        """Initialize with database connection.

        Args:
            db: Application database instance.
        """
        self._db = db

    def _row_to_team(self, row: dict[str, Any]) -> Team:
        """Convert database row to Team."""
        return Team(
            id=row["id"],
            name=row["name"],
            description=row.get("description"),
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
            deleted_at=row.get("deleted_at"),
        )

    def _row_to_team_member(self, row: dict[str, Any]) -> TeamMembership:
        """Convert database row to TeamMembership."""
        return TeamMembership(
            id=row["id"],
            team_id=row["team_id"],
            user_id=row["user_id"],
            role=TeamRole(row["role"]),
            added_by=row.get("added_by"),
            created_at=row["created_at"],
        )

    def _row_to_project(self, row: dict[str, Any]) -> Project:
        """Convert database row to Project."""
        return Project(
            id=row["id"],
            team_id=row["team_id"],
            name=row["name"],
            description=row.get("description"),
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
            deleted_at=row.get("deleted_at"),
        )

    def _row_to_project_member(self, row: dict[str, Any]) -> ProjectMembership:
        """Convert database row to ProjectMembership."""
        return ProjectMembership(
            id=row["id"],
            project_id=row["project_id"],
            user_id=row["user_id"],
            role=ProjectRole(row["role"]),
            added_by=row.get("added_by"),
            created_at=row["created_at"],
        )

    def _row_to_document(self, row: dict[str, Any]) -> Document:
        """Convert database row to Document."""
        return Document(
            id=row["id"],
            project_id=row["project_id"],
            title=row["title"],
            content=row["content"],
            author_id=row["author_id"],
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
            deleted_at=row.get("deleted_at"),
        )

    async def _fetch_page(
        self,
        query: str,
        args: list[Any],
        alias: str,
        after: CursorKey | None,
        limit: int,
    ) -> list[dict[str, Any]]:
        """Append the keyset filter, ordering and limit to a list query.

        The cursor carries the anchor's (created_at, id), so the anchor row
        is never read back and may have been removed since.
        """
        if after is not None:
            n = len(args)
            query += f" AND ({alias}.created_at, {alias}.id) < (${n + 1}, ${n + 2})"
            args = [*args, after.created_at, after.id]

        query += f" ORDER BY {alias}.created_at DESC, {alias}.id DESC LIMIT ${len(args) + 1}"
        return await self._db.fetch_all(query, *args, limit)

    # Teams
    async def get_team(self, team_id: UUID) -> Team | None:
        """Get an active team."""
        row = await self._db.fetch_one(
            f"SELECT {_TEAM_COLUMNS} FROM teams t WHERE t.id = $1 AND t.deleted_at IS NULL",
            team_id,
        )
        return self._row_to_team(row) if row else None

    async def team_name_taken(
        self, user_id: UUID, name: str, exclude_team_id: UUID | None = None
    ) -> bool:
        """Whether one of the user's active teams has this name."""
        taken = await self._db.fetch_value(
            """
            SELECT EXISTS (
                SELECT 1 FROM teams t
                JOIN team_members tm ON tm.team_id = t.id
                WHERE tm.user_id = $1 AND t.name = $2 AND t.deleted_at IS NULL
                  AND ($3::uuid IS NULL OR t.id <> $3)
            )
            """,
            user_id,
            name,
            exclude_team_id,
        )
        return bool(taken)

    async def create_team(
        self, name: str, description: str | None, owner_id: UUID
    ) -> tuple[Team, TeamMembership]:
        """Create a team and its OWNER membership in one transaction.

        Name uniqueness is scoped to the owner's teams, which no index can
        express, so creations by the same owner are serialized with an
        advisory lock and the name is re-checked under it.
        """
        async with self._db.transaction() as conn:
            await conn.execute("SELECT pg_advisory_xact_lock(hashtext($1))", str(owner_id))
            taken = await conn.fetchval(
                """
                SELECT EXISTS (
                    SELECT 1 FROM teams t
                    JOIN team_members tm ON tm.team_id = t.id
                    WHERE tm.user_id = $1 AND t.name = $2 AND t.deleted_at IS NULL
                )
                """,
                owner_id,
                name,
            )
            if taken:
                raise ConflictError("Team with this name already exists")

            team_row = await conn.fetchrow(
                """
                INSERT INTO teams (name, description) VALUES ($1, $2)
                RETURNING id, name, description, created_at, updated_at, deleted_at
                """,
                name,
                description,
            )
            assert team_row is not None, "INSERT RETURNING should always return a row"
            member_row = await conn.fetchrow(
                """
                INSERT INTO team_members (team_id, user_id, role, added_by)
                VALUES ($1, $2, $3, $2)
                RETURNING id, team_id, user_id, role, added_by, created_at
                """,
                team_row["id"],
                owner_id,
                TeamRole.OWNER.value,
            )
            assert member_row is not None, "INSERT RETURNING should always return a row"
            return self._row_to_team(dict(team_row)), self._row_to_team_member(dict(member_row))

    async def update_team(
        self, team_id: UUID, name: str | None = None, description: str | None = None
    ) -> Team | None:
        """Update mutable team fields."""
        row = await self._db.fetch_one(
            """
            UPDATE teams t SET name = COALESCE($2, t.name),
                description = COALESCE($3, t.description),
                updated_at = NOW()
            WHERE t.id = $1 AND t.deleted_at IS NULL
            RETURNING t.id, t.name, t.description, t.created_at, t.updated_at, t.deleted_at
            """,
            team_id,
            name,
            description,
        )
        return self._row_to_team(row) if row else None

    async def delete_team(self, team_id: UUID) -> CascadeResult | None:
        """Soft-delete a team, its projects and their documents in one transaction."""
        async with self._db.transaction() as conn:
            deleted_at: datetime | None = await conn.fetchval(
                """
                UPDATE teams SET deleted_at = NOW()
                WHERE id = $1 AND deleted_at IS NULL
                RETURNING deleted_at
                """,
                team_id,
            )
            if deleted_at is None:
                return None

            project_rows = await conn.fetch(
                """
                UPDATE projects SET deleted_at = $2
                WHERE team_id = $1 AND deleted_at IS NULL
                RETURNING id
                """,
                team_id,
                deleted_at,
            )
            project_ids = [row["id"] for row in project_rows]
            status = await conn.execute(
                """
                UPDATE documents SET deleted_at = $2
                WHERE project_id = ANY($1::uuid[]) AND deleted_at IS NULL
                """,
                project_ids,
                deleted_at,
            )
            return CascadeResult(projects=len(project_ids), documents=affected_rows(status))

    async def list_user_teams(
        self, user_id: UUID, after: CursorKey | None, limit: int
    ) -> list[Team]:
        """List active teams the user is a member of."""
        rows = await self._fetch_page(
            f"""
            SELECT {_TEAM_COLUMNS} FROM teams t
            JOIN team_members tm ON tm.team_id = t.id
            WHERE tm.user_id = $1 AND t.deleted_at IS NULL
            """,
            [user_id],
            "t",
            after,
            limit,
        )
        return [self._row_to_team(row) for row in rows]

    # Team memberships
    async def get_team_membership(self, team_id: UUID, user_id: UUID) -> TeamMembership | None:
        """Get a user's membership in a team."""
        row = await self._db.fetch_one(
            f"""
            SELECT {_TEAM_MEMBER_COLUMNS} FROM team_members tm
            WHERE tm.team_id = $1 AND tm.user_id = $2
            """,
            team_id,
            user_id,
        )
        return self._row_to_team_member(row) if row else None

    async def add_team_member(
        self, team_id: UUID, user_id: UUID, role: TeamRole, added_by: UUID
    ) -> TeamMembership:
        """Insert a team membership."""
        try:
            row = await self._db.fetch_one(
                """
                INSERT INTO team_members (team_id, user_id, role, added_by)
                VALUES ($1, $2, $3, $4)
                RETURNING id, team_id, user_id, role, added_by, created_at
                """,
                team_id,
                user_id,
                role.value,
                added_by,
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError("User is already a member of the team") from None
        assert row is not None, "INSERT RETURNING should always return a row"
        return self._row_to_team_member(row)

    async def update_team_member_role(
        self,
        team_id: UUID,
        user_id: UUID,
        role: TeamRole,
        from_roles: frozenset[TeamRole] | None = None,
    ) -> TeamMembership | None:
        """Change a non-OWNER membership's role."""
        if role is TeamRole.OWNER:
            return None
        if from_roles is None:
            row = await self._db.fetch_one(
                """
                UPDATE team_members SET role = $3
                WHERE team_id = $1 AND user_id = $2 AND role <> 'OWNER'
                RETURNING id, team_id, user_id, role, added_by, created_at
                """,
                team_id,
                user_id,
                role.value,
            )
            return self._row_to_team_member(row) if row else None

        async with self._db.transaction() as conn:
            current = await conn.fetchval(
                """
                SELECT role FROM team_members
                WHERE team_id = $1 AND user_id = $2
                FOR UPDATE
                """,
                team_id,
                user_id,
            )
            if current is None:
                return None
            if TeamRole(current) not in from_roles:
                raise ConflictError("Team member's role changed concurrently")
            if current == TeamRole.OWNER.value:
                return None

            updated = await conn.fetchrow(
                """
                UPDATE team_members SET role = $3
                WHERE team_id = $1 AND user_id = $2
                RETURNING id, team_id, user_id, role, added_by, created_at
                """,
                team_id,
                user_id,
                role.value,
            )
            assert updated is not None, "locked row should still exist"
            return self._row_to_team_member(dict(updated))

    async def transfer_team_ownership(
        self, team_id: UUID, from_user_id: UUID, to_user_id: UUID
    ) -> TeamMembership | None:
        """Move the OWNER role to another member in one transaction."""
        if from_user_id == to_user_id:
            return None
        async with self._db.transaction() as conn:
            rows = await conn.fetch(
                """
                SELECT user_id, role FROM team_members
                WHERE team_id = $1 AND user_id = ANY($2::uuid[])
                FOR UPDATE
                """,
                team_id,
                [from_user_id, to_user_id],
            )
            roles = {row["user_id"]: row["role"] for row in rows}
            if roles.get(from_user_id) != TeamRole.OWNER.value or to_user_id not in roles:
                return None

            await conn.execute(
                "UPDATE team_members SET role = $3 WHERE team_id = $1 AND user_id = $2",
                team_id,
                from_user_id,
                TeamRole.ADMIN.value,
            )
            row = await conn.fetchrow(
                """
                UPDATE team_members SET role = $3
                WHERE team_id = $1 AND user_id = $2
                RETURNING id, team_id, user_id, role, added_by, created_at
                """,
                team_id,
                to_user_id,
                TeamRole.OWNER.value,
            )
            assert row is not None, "locked row should still exist"
            return self._row_to_team_member(dict(row))

    async def remove_team_member(
        self, team_id: UUID, user_id: UUID, removable_roles: frozenset[TeamRole]
    ) -> bool:
        """Delete a team membership and the user's project memberships in the team.

        The row is locked before its role is checked, which serializes the
        delete against a concurrent ownership transfer to the same member.
        """
        async with self._db.transaction() as conn:
            current = await conn.fetchval(
                """
                SELECT role FROM team_members
                WHERE team_id = $1 AND user_id = $2
                FOR UPDATE
                """,
                team_id,
                user_id,
            )
            if current is None:
                return False
            if TeamRole(current) not in removable_roles:
                raise ConflictError("Team member's role changed concurrently")

            await conn.execute(
                "DELETE FROM team_members WHERE team_id = $1 AND user_id = $2",
                team_id,
                user_id,
            )

            status = await conn.execute(
                """
                DELETE FROM project_members pm USING projects p
                WHERE pm.project_id = p.id AND p.team_id = $1 AND pm.user_id = $2
                """,
                team_id,
                user_id,
            )
            logger.debug(
                f"Removed user {user_id} from team {team_id} "
                f"and {affected_rows(status)} of its projects"
            )
            return True

    async def list_team_members(
        self, team_id: UUID, after: CursorKey | None, limit: int
    ) -> list[TeamMembership]:
        """List a team's memberships."""
        rows = await self._fetch_page(
            f"SELECT {_TEAM_MEMBER_COLUMNS} FROM team_members tm WHERE tm.team_id = $1",
            [team_id],
            "tm",
            after,
            limit,
        )
        return [self._row_to_team_member(row) for row in rows]

    async def get_team_owner(self, team_id: UUID) -> TeamMembership | None:
        """Get the team's OWNER membership."""
        row = await self._db.fetch_one(
            f"""
            SELECT {_TEAM_MEMBER_COLUMNS} FROM team_members tm
            WHERE tm.team_id = $1 AND tm.role = 'OWNER'
            """,
            team_id,
        )
        return self._row_to_team_member(row) if row else None

    # Projects
    async def get_project(self, project_id: UUID) -> Project | None:
        """Get an active project of an active team."""
        row = await self._db.fetch_one(
            f"""
            SELECT {_PROJECT_COLUMNS} FROM projects p
            JOIN teams t ON t.id = p.team_id
            WHERE p.id = $1 AND p.deleted_at IS NULL AND t.deleted_at IS NULL
            """,
            project_id,
        )
        return self._row_to_project(row) if row else None

    async def project_name_taken(
        self, team_id: UUID, name: str, exclude_project_id: UUID | None = None
    ) -> bool:
        """Whether an active project in the team has this name."""
        taken = await self._db.fetch_value(
            """
            SELECT EXISTS (
                SELECT 1 FROM projects
                WHERE team_id = $1 AND name = $2 AND deleted_at IS NULL
                  AND ($3::uuid IS NULL OR id <> $3)
            )
            """,
            team_id,
            name,
            exclude_project_id,
        )
        return bool(taken)

    async def create_project(
        self,
        team_id: UUID,
        name: str,
        description: str | None,
        members: list[tuple[UUID, ProjectRole]],
        added_by: UUID,
    ) -> Project:
        """Create a project with its seeded memberships in one transaction."""
        async with self._db.transaction() as conn:
            active = await conn.fetchval(
                "SELECT id FROM teams WHERE id = $1 AND deleted_at IS NULL FOR SHARE",
                team_id,
            )
            if active is None:
                raise ConflictError("Team is no longer active")

            try:
                row = await conn.fetchrow(
                    """
                    INSERT INTO projects (team_id, name, description) VALUES ($1, $2, $3)
                    RETURNING id, team_id, name, description, created_at, updated_at, deleted_at
                    """,
                    team_id,
                    name,
                    description,
                )
                assert row is not None, "INSERT RETURNING should always return a row"
                for user_id, role in members:
                    await conn.execute(
                        """
                        INSERT INTO project_members (project_id, user_id, role, added_by)
                        VALUES ($1, $2, $3, $4)
                        """,
                        row["id"],
                        user_id,
                        role.value,
                        added_by,
                    )
            except asyncpg.UniqueViolationError:
                raise ConflictError("Project with this name already exists in the team") from None
            return self._row_to_project(dict(row))

    async def update_project(
        self, project_id: UUID, name: str | None = None, description: str | None = None
    ) -> Project | None:
        """Update mutable project fields."""
        try:
            row = await self._db.fetch_one(
                f"""
                UPDATE projects p SET name = COALESCE($2, p.name),
                    description = COALESCE($3, p.description),
                    updated_at = NOW()
                FROM teams t
                WHERE p.id = $1 AND p.deleted_at IS NULL
                  AND t.id = p.team_id AND t.deleted_at IS NULL
                RETURNING {_PROJECT_COLUMNS}
                """,
                project_id,
                name,
                description,
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError("Project with this name already exists in the team") from None
        return self._row_to_project(row) if row else None

    async def delete_project(self, project_id: UUID) -> CascadeResult | None:
        """Soft-delete a project and its documents in one transaction."""
        async with self._db.transaction() as conn:
            deleted_at: datetime | None = await conn.fetchval(
                """
                UPDATE projects SET deleted_at = NOW()
                WHERE id = $1 AND deleted_at IS NULL
                RETURNING deleted_at
                """,
                project_id,
            )
            if deleted_at is None:
                return None

            status = await conn.execute(
                """
                UPDATE documents SET deleted_at = $2
                WHERE project_id = $1 AND deleted_at IS NULL
                """,
                project_id,
                deleted_at,
            )
            return CascadeResult(projects=1, documents=affected_rows(status))

    async def list_member_projects(
        self, team_id: UUID, user_id: UUID, after: CursorKey | None, limit: int
    ) -> list[Project]:
        """List active projects of a team that the user is a member of."""
        rows = await self._fetch_page(
            f"""
            SELECT {_PROJECT_COLUMNS} FROM projects p
            JOIN teams t ON t.id = p.team_id
            JOIN project_members pm ON pm.project_id = p.id
            WHERE p.team_id = $1 AND pm.user_id = $2
              AND p.deleted_at IS NULL AND t.deleted_at IS NULL
            """,
            [team_id, user_id],
            "p",
            after,
            limit,
        )
        return [self._row_to_project(row) for row in rows]

    # Project memberships
    async def get_project_membership(
        self, project_id: UUID, user_id: UUID
    ) -> ProjectMembership | None:
        """Get a user's membership in a project."""
        row = await self._db.fetch_one(
            f"""
            SELECT {_PROJECT_MEMBER_COLUMNS} FROM project_members pm
            WHERE pm.project_id = $1 AND pm.user_id = $2
            """,
            project_id,
            user_id,
        )
        return self._row_to_project_member(row) if row else None

    async def add_project_member(
        self, project_id: UUID, user_id: UUID, role: ProjectRole, added_by: UUID
    ) -> ProjectMembership:
        """Insert a project membership."""
        try:
            row = await self._db.fetch_one(
                """
                INSERT INTO project_members (project_id, user_id, role, added_by)
                VALUES ($1, $2, $3, $4)
                RETURNING id, project_id, user_id, role, added_by, created_at
                """,
                project_id,
                user_id,
                role.value,
                added_by,
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError("User is already a member of the project") from None
        assert row is not None, "INSERT RETURNING should always return a row"
        return self._row_to_project_member(row)

    async def update_project_member_role(
        self, project_id: UUID, user_id: UUID, role: ProjectRole
    ) -> ProjectMembership | None:
        """Change a project membership's role."""
        row = await self._db.fetch_one(
            """
            UPDATE project_members SET role = $3
            WHERE project_id = $1 AND user_id = $2
            RETURNING id, project_id, user_id, role, added_by, created_at
            """,
            project_id,
            user_id,
            role.value,
        )
        return self._row_to_project_member(row) if row else None

    async def remove_project_member(self, project_id: UUID, user_id: UUID) -> bool:
        """Delete a project membership."""
        result = await self._db.execute(
            "DELETE FROM project_members WHERE project_id = $1 AND user_id = $2",
            project_id,
            user_id,
        )
        return result == "DELETE 1"

    async def list_project_members(
        self, project_id: UUID, after: CursorKey | None, limit: int
    ) -> list[ProjectMembership]:
        """List a project's memberships."""
        rows = await self._fetch_page(
            f"SELECT {_PROJECT_MEMBER_COLUMNS} FROM project_members pm WHERE pm.project_id = $1",
            [project_id],
            "pm",
            after,
            limit,
        )
        return [self._row_to_project_member(row) for row in rows]

    # Documents
    async def get_document(self, document_id: UUID) -> Document | None:
        """Get an active document whose project and team are active."""
        row = await self._db.fetch_one(
            f"""
            SELECT {_DOCUMENT_COLUMNS} FROM documents d
            JOIN projects p ON p.id = d.project_id
            JOIN teams t ON t.id = p.team_id
            WHERE d.id = $1
              AND d.deleted_at IS NULL AND p.deleted_at IS NULL AND t.deleted_at IS NULL
            """,
            document_id,
        )
        return self._row_to_document(row) if row else None

    async def document_title_taken(
        self, project_id: UUID, title: str, exclude_document_id: UUID | None = None
    ) -> bool:
        """Whether an active document in the project has this title."""
        taken = await self._db.fetch_value(
            """
            SELECT EXISTS (
                SELECT 1 FROM documents
                WHERE project_id = $1 AND title = $2 AND deleted_at IS NULL
                  AND ($3::uuid IS NULL OR id <> $3)
            )
            """,
            project_id,
            title,
            exclude_document_id,
        )
        return bool(taken)

    async def create_document(
        self, project_id: UUID, title: str, content: str, author_id: UUID
    ) -> Document:
        """Insert a document."""
        try:
            row = await self._db.fetch_one(
                """
                INSERT INTO documents (project_id, title, content, author_id)
                VALUES ($1, $2, $3, $4)
                RETURNING id, project_id, title, content, author_id,
                          created_at, updated_at, deleted_at
                """,
                project_id,
                title,
                content,
                author_id,
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError("Document with the same title already exists") from None
        assert row is not None, "INSERT RETURNING should always return a row"
        return self._row_to_document(row)

    async def update_document(
        self, document_id: UUID, title: str | None = None, content: str | None = None
    ) -> Document | None:
        """Update mutable document fields."""
        try:
            row = await self._db.fetch_one(
                """
                UPDATE documents SET title = COALESCE($2, title),
                    content = COALESCE($3, content),
                    updated_at = NOW()
                WHERE id = $1 AND deleted_at IS NULL
                RETURNING id, project_id, title, content, author_id,
                          created_at, updated_at, deleted_at
                """,
                document_id,
                title,
                content,
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError("Document with the same title already exists") from None
        return self._row_to_document(row) if row else None

    async def delete_document(self, document_id: UUID) -> bool:
        """Soft-delete a document."""
        result = await self._db.execute(
            "UPDATE documents SET deleted_at = NOW() WHERE id = $1 AND deleted_at IS NULL",
            document_id,
        )
        return result == "UPDATE 1"

    async def list_documents(
        self, project_id: UUID, after: CursorKey | None, limit: int
    ) -> list[Document]:
        """List active documents of a project."""
        rows = await self._fetch_page(
            f"""
            SELECT {_DOCUMENT_COLUMNS} FROM documents d
            JOIN projects p ON p.id = d.project_id
            JOIN teams t ON t.id = p.team_id
            WHERE d.project_id = $1
              AND d.deleted_at IS NULL AND p.deleted_at IS NULL AND t.deleted_at IS NULL
            """,
            [project_id],
            "d",
            after,
            limit,
        )
        return [self._row_to_document(row) for row in rows]
