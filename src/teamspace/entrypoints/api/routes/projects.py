"""Projects API routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from teamspace.core.rbac.types import ProjectRole
from teamspace.core.workspace.projects import ProjectService
from teamspace.entrypoints.api.deps import get_project_service
from teamspace.entrypoints.api.middleware.jwt_auth import JwtContext, verify_jwt
from teamspace.entrypoints.api.schemas import (
    CascadeResponse,
    PageResponse,
    ProjectMemberResponse,
    ProjectResponse,
    page_response,
)

router = APIRouter(tags=["projects"])

AuthDep = Annotated[JwtContext, Depends(verify_jwt)]
ProjectServiceDep = Annotated[ProjectService, Depends(get_project_service)]


class ProjectCreate(BaseModel):
    """Project creation request."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None


class ProjectUpdate(BaseModel):
    """Project update request. Omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None


class ProjectMemberAdd(BaseModel):
    """Add project member request."""

    user_id: UUID
    role: ProjectRole = ProjectRole.MEMBER


class ProjectMemberRoleUpdate(BaseModel):
    """Project role change request."""

    role: ProjectRole


@router.post(
    "/teams/{team_id}/projects",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_project(
    team_id: UUID,
    body: ProjectCreate,
    auth: AuthDep,
    service: ProjectServiceDep,
) -> ProjectResponse:
    """Create a project in a team. Requires team owner or admin."""
    project = await service.create_project(auth.user_uuid, team_id, body.name, body.description)
    return ProjectResponse.model_validate(project)


@router.get("/teams/{team_id}/projects", response_model=PageResponse[ProjectResponse])
async def list_team_projects(
    team_id: UUID,
    auth: AuthDep,
    service: ProjectServiceDep,
    cursor: str | None = None,
    limit: str | None = None,
) -> PageResponse[ProjectResponse]:
    """List the team's projects the caller is a member of."""
    page = await service.list_projects_by_team(
        auth.user_uuid, team_id, cursor=cursor, limit=limit
    )
    return page_response(page, ProjectResponse)


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID, auth: AuthDep, service: ProjectServiceDep
) -> ProjectResponse:
    """Get a project by ID."""
    project = await service.get_project(auth.user_uuid, project_id)
    return ProjectResponse.model_validate(project)


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    body: ProjectUpdate,
    auth: AuthDep,
    service: ProjectServiceDep,
) -> ProjectResponse:
    """Update a project's name or description."""
    project = await service.update_project(
        auth.user_uuid, project_id, name=body.name, description=body.description
    )
    return ProjectResponse.model_validate(project)


@router.delete("/projects/{project_id}", response_model=CascadeResponse)
async def delete_project(
    project_id: UUID, auth: AuthDep, service: ProjectServiceDep
) -> CascadeResponse:
    """Delete a project and its documents."""
    result = await service.delete_project(auth.user_uuid, project_id)
    return CascadeResponse.model_validate(result)


@router.get("/projects/{project_id}/members", response_model=PageResponse[ProjectMemberResponse])
async def list_project_members(
    project_id: UUID,
    auth: AuthDep,
    service: ProjectServiceDep,
    cursor: str | None = None,
    limit: str | None = None,
) -> PageResponse[ProjectMemberResponse]:
    """List a project's members."""
    page = await service.list_members(auth.user_uuid, project_id, cursor=cursor, limit=limit)
    return page_response(page, ProjectMemberResponse)


@router.post(
    "/projects/{project_id}/members",
    response_model=ProjectMemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_project_member(
    project_id: UUID,
    body: ProjectMemberAdd,
    auth: AuthDep,
    service: ProjectServiceDep,
) -> ProjectMemberResponse:
    """Add a team member to a project."""
    membership = await service.add_member(auth.user_uuid, project_id, body.user_id, body.role)
    return ProjectMemberResponse.model_validate(membership)


@router.patch("/projects/{project_id}/members/{user_id}", response_model=ProjectMemberResponse)
async def update_project_member_role(
    project_id: UUID,
    user_id: UUID,
    body: ProjectMemberRoleUpdate,
    auth: AuthDep,
    service: ProjectServiceDep,
) -> ProjectMemberResponse:
    """Change a project member's role."""
    membership = await service.update_member_role(
        auth.user_uuid, project_id, user_id, body.role
    )
    return ProjectMemberResponse.model_validate(membership)


@router.delete(
    "/projects/{project_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def remove_project_member(
    project_id: UUID,
    user_id: UUID,
    auth: AuthDep,
    service: ProjectServiceDep,
) -> Response:
    """Remove a user from a project."""
    await service.remove_member(auth.user_uuid, project_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
