"""Project and project membership models."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamspace.models.base import BaseModel

if TYPE_CHECKING:
    from teamspace.models.document import Document
    from teamspace.models.team import Team


class Project(BaseModel):
    """A project belonging to one team."""

    __tablename__ = "projects"

    team_id: Mapped[UUID] = mapped_column(ForeignKey("teams.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    team: Mapped["Team"] = relationship(back_populates="projects")
    members: Mapped[list["ProjectMember"]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )
    documents: Mapped[list["Document"]] = relationship(back_populates="project")

    __table_args__ = (
        # Names are unique per team among projects that are not deleted
        Index(
            "uq_projects_team_id_name_active",
            "team_id",
            "name",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
        ),
        Index("ix_projects_team_id_created_at_id", "team_id", "created_at", "id"),
    )


class ProjectMember(BaseModel):
    """A user's role in a project: ADMIN, EDITOR or MEMBER."""

    __tablename__ = "project_members"

    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="MEMBER")
    added_by: Mapped[UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    # Relationships
    project: Mapped["Project"] = relationship(back_populates="members")

    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_members_project_id_user_id"),
        Index("ix_project_members_user_id", "user_id"),
    )
