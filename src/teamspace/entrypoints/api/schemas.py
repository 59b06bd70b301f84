"""Response models shared by the route modules."""

from datetime import datetime
from typing import Any, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from teamspace.core.pagination import Page
from teamspace.core.rbac.types import ProjectRole, TeamRole

M = TypeVar("M", bound=BaseModel)


class ApiModel(BaseModel):
    """Response model that can be built from core dataclasses."""

    model_config = ConfigDict(from_attributes=True)


class PageInfoResponse(ApiModel):
    """Cursor position of a page."""

    has_next_page: bool
    start_cursor: str | None
    end_cursor: str | None


class PageResponse(ApiModel, Generic[M]):
    """One page of a list endpoint."""

    data: list[M]
    page_info: PageInfoResponse


def page_response(page: Page[Any], item: type[M]) -> PageResponse[M]:
    """Convert a core page into its response model."""
    return PageResponse[item](  # type: ignore[valid-type]
        data=[item.model_validate(row) for row in page.data],
        page_info=PageInfoResponse(
            has_next_page=page.page_info.has_next_page,
            start_cursor=page.page_info.start_cursor,
            end_cursor=page.page_info.end_cursor,
        ),
    )


class TeamResponse(ApiModel):
    """Team response."""

    id: UUID
    name: str
    description: str | None
    created_at: datetime
    updated_at: datetime | None = None


class TeamMemberResponse(ApiModel):
    """Team membership response."""

    id: UUID
    team_id: UUID
    user_id: UUID
    role: TeamRole
    added_by: UUID | None
    created_at: datetime


class ProjectResponse(ApiModel):
    """Project response."""

    id: UUID
    team_id: UUID
    name: str
    description: str | None
    created_at: datetime
    updated_at: datetime | None = None


class ProjectMemberResponse(ApiModel):
    """Project membership response."""

    id: UUID
    project_id: UUID
    user_id: UUID
    role: ProjectRole
    added_by: UUID | None
    created_at: datetime


class DocumentResponse(ApiModel):
    """Document response."""

    id: UUID
    project_id: UUID
    title: str
    content: str
    author_id: UUID
    created_at: datetime
    updated_at: datetime | None = None


class CascadeResponse(ApiModel):
    """Counts of rows removed along with a deleted team or project."""

    projects: int
    documents: int
