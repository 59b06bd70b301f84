"""Team and team membership models."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamspace.models.base import BaseModel

if TYPE_CHECKING:
    from teamspace.models.project import Project
    from teamspace.models.user import User


class Team(BaseModel):
    """A tenant boundary.

    Name uniqueness is scoped to the teams a user belongs to and is
    enforced by the repository, not by an index.
    """

    __tablename__ = "teams"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    members: Mapped[list["TeamMember"]] = relationship(
        back_populates="team", cascade="all, delete-orphan"
    )
    projects: Mapped[list["Project"]] = relationship(back_populates="team")

    __table_args__ = (Index("ix_teams_created_at_id", "created_at", "id"),)


class TeamMember(BaseModel):
    """A user's role in a team: OWNER, ADMIN or MEMBER."""

    __tablename__ = "team_members"

    team_id: Mapped[UUID] = mapped_column(ForeignKey("teams.id"), nullable=False)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="MEMBER")
    added_by: Mapped[UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    # Relationships
    team: Mapped["Team"] = relationship(back_populates="members")
    user: Mapped["User"] = relationship(back_populates="team_memberships", foreign_keys=[user_id])

    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_members_team_id_user_id"),
        Index("ix_team_members_user_id", "user_id"),
        Index("ix_team_members_team_id_created_at_id", "team_id", "created_at", "id"),
    )
