"""Teams API routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from teamspace.core.rbac.types import TeamRole
from teamspace.core.workspace.teams import TeamService
from teamspace.entrypoints.api.deps import get_team_service
from teamspace.entrypoints.api.middleware.jwt_auth import JwtContext, verify_jwt
from teamspace.entrypoints.api.schemas import (
    CascadeResponse,
    PageResponse,
    TeamMemberResponse,
    TeamResponse,
    page_response,
)

router = APIRouter(prefix="/teams", tags=["teams"])

# Annotated types for dependency injection
AuthDep = Annotated[JwtContext, Depends(verify_jwt)]
TeamServiceDep = Annotated[TeamService, Depends(get_team_service)]


class TeamCreate(BaseModel):
    """Team creation request."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None


class TeamUpdate(BaseModel):
    """Team update request. Omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None


class TeamMemberAdd(BaseModel):
    """Add member request."""

    user_id: UUID
    role: TeamRole = TeamRole.MEMBER


class TeamMemberRoleUpdate(BaseModel):
    """Role change request."""

    role: TeamRole


@router.get("", response_model=PageResponse[TeamResponse])
async def list_teams(
    auth: AuthDep,
    service: TeamServiceDep,
    cursor: str | None = None,
    limit: str | None = None,
) -> PageResponse[TeamResponse]:
    """List the caller's teams, newest first."""
    page = await service.list_user_teams(auth.user_uuid, cursor=cursor, limit=limit)
    return page_response(page, TeamResponse)


@router.post("", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(body: TeamCreate, auth: AuthDep, service: TeamServiceDep) -> TeamResponse:
    """Create a team. The caller becomes its owner."""
    team = await service.create_team(auth.user_uuid, body.name, body.description)
    return TeamResponse.model_validate(team)


@router.get("/{team_id}", response_model=TeamResponse)
async def get_team(team_id: UUID, auth: AuthDep, service: TeamServiceDep) -> TeamResponse:
    """Get a team by ID."""
    team = await service.get_team(auth.user_uuid, team_id)
    return TeamResponse.model_validate(team)


@router.patch("/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: UUID,
    body: TeamUpdate,
    auth: AuthDep,
    service: TeamServiceDep,
) -> TeamResponse:
    """Update a team's name or description."""
    team = await service.update_team(
        auth.user_uuid, team_id, name=body.name, description=body.description
    )
    return TeamResponse.model_validate(team)


@router.delete("/{team_id}", response_model=CascadeResponse)
async def delete_team(team_id: UUID, auth: AuthDep, service: TeamServiceDep) -> CascadeResponse:
    """Delete a team with all of its projects and documents."""
    result = await service.delete_team(auth.user_uuid, team_id)
    return CascadeResponse.model_validate(result)


@router.get("/{team_id}/members", response_model=PageResponse[TeamMemberResponse])
async def list_team_members(
    team_id: UUID,
    auth: AuthDep,
    service: TeamServiceDep,
    cursor: str | None = None,
    limit: str | None = None,
) -> PageResponse[TeamMemberResponse]:
    """List a team's members."""
    page = await service.list_team_members(auth.user_uuid, team_id, cursor=cursor, limit=limit)
    return page_response(page, TeamMemberResponse)


@router.post(
    "/{team_id}/members",
    response_model=TeamMemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_team_member(
    team_id: UUID,
    body: TeamMemberAdd,
    auth: AuthDep,
    service: TeamServiceDep,
) -> TeamMemberResponse:
    """Add a user to a team."""
    membership = await service.add_member(auth.user_uuid, team_id, body.user_id, body.role)
    return TeamMemberResponse.model_validate(membership)


@router.patch("/{team_id}/members/{user_id}", response_model=TeamMemberResponse)
async def update_team_member_role(
    team_id: UUID,
    user_id: UUID,
    body: TeamMemberRoleUpdate,
    auth: AuthDep,
    service: TeamServiceDep,
) -> TeamMemberResponse:
    """Change a member's role. Granting OWNER transfers ownership."""
    membership = await service.update_member_role(auth.user_uuid, team_id, user_id, body.role)
    return TeamMemberResponse.model_validate(membership)


@router.delete("/{team_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_team_member(
    team_id: UUID,
    user_id: UUID,
    auth: AuthDep,
    service: TeamServiceDep,
) -> Response:
    """Remove a user from a team and from the team's projects."""
    await service.remove_member(auth.user_uuid, team_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
