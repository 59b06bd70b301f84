"""Tests for workspace entity types."""

from datetime import UTC, datetime
from uuid import uuid4

from teamspace.core.rbac.types import Document, EntityState, Project, Team


class TestEntityState:
    """Lifecycle state follows deleted_at."""

    def test_team(self) -> None:
        """A team is ACTIVE until deleted_at is set."""
        team = Team(id=uuid4(), name="Acme", description=None, created_at=datetime.now(UTC))

        assert team.state is EntityState.ACTIVE
        team.deleted_at = datetime.now(UTC)
        assert team.state is EntityState.DELETED

    def test_project_and_document(self) -> None:
        """Children report DELETED the same way."""
        now = datetime.now(UTC)
        project = Project(
            id=uuid4(), team_id=uuid4(), name="Core", description=None, created_at=now
        )
        document = Document(
            id=uuid4(),
            project_id=project.id,
            title="Spec",
            content="",
            author_id=uuid4(),
            created_at=now,
            deleted_at=now,
        )

        assert project.state is EntityState.ACTIVE
        assert document.state is EntityState.DELETED
