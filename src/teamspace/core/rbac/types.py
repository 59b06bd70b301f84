"""RBAC domain types."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class TeamRole(str, Enum):
    """Team membership roles, highest privilege first."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class ProjectRole(str, Enum):
    """Project membership roles."""

    ADMIN = "ADMIN"
    EDITOR = "EDITOR"
    MEMBER = "MEMBER"


class EntityState(str, Enum):
    """Lifecycle state of a soft-deletable entity. DELETED is terminal."""

    ACTIVE = "ACTIVE"
    DELETED = "DELETED"


@dataclass
class Team:
    """A tenant boundary."""

    id: UUID
    name: str
    description: str | None
    created_at: datetime
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def state(self) -> EntityState:
        """ACTIVE until soft-deleted."""
        return EntityState.DELETED if self.deleted_at else EntityState.ACTIVE


@dataclass
class TeamMembership:
    """A user's role in a team."""

    id: UUID
    team_id: UUID
    user_id: UUID
    role: TeamRole
    added_by: UUID | None
    created_at: datetime


@dataclass
class Project:
    """A project owned by exactly one team."""

    id: UUID
    team_id: UUID
    name: str
    description: str | None
    created_at: datetime
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def state(self) -> EntityState:
        """ACTIVE until soft-deleted."""
        return EntityState.DELETED if self.deleted_at else EntityState.ACTIVE


@dataclass
class ProjectMembership:
    """A user's role in a project."""

    id: UUID
    project_id: UUID
    user_id: UUID
    role: ProjectRole
    added_by: UUID | None
    created_at: datetime


@dataclass
class Document:
    """A document owned by exactly one project."""

    id: UUID
    project_id: UUID
    title: str
    content: str
    author_id: UUID
    created_at: datetime
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def state(self) -> EntityState:
        """ACTIVE until soft-deleted."""
        return EntityState.DELETED if self.deleted_at else EntityState.ACTIVE


@dataclass
class CascadeResult:
    """Counts of rows soft-deleted by a cascading delete."""

    projects: int = 0
    documents: int = 0
