"""Auth API routes for sign-up, sign-in, token refresh and logout."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, EmailStr, Field

from teamspace.core.auth.service import SessionManager
from teamspace.core.auth.types import LogoutResult, Profile, TokenPair
from teamspace.entrypoints.api.deps import get_client_ip, get_session_manager, get_user_agent
from teamspace.entrypoints.api.middleware.jwt_auth import JwtContext, optional_jwt, verify_jwt

router = APIRouter(prefix="/auth", tags=["auth"])

SessionDep = Annotated[SessionManager, Depends(get_session_manager)]
AuthDep = Annotated[JwtContext, Depends(verify_jwt)]
OptionalAuthDep = Annotated[JwtContext | None, Depends(optional_jwt)]


# Request/Response models
class SignUpRequest(BaseModel):
    """Sign-up request body."""

    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class SignInRequest(BaseModel):
    """Sign-in request body."""

    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    """Token refresh or logout request body."""

    refresh_token: str


class ChangePasswordRequest(BaseModel):
    """Password change request body."""

    current_password: str
    new_password: str = Field(..., min_length=8)


class LogoutResponse(BaseModel):
    """Logout outcome."""

    result: LogoutResult


class RevokedResponse(BaseModel):
    """Number of sessions ended."""

    revoked: int


@router.post("/sign-up", response_model=TokenPair, status_code=201)
async def sign_up(body: SignUpRequest, request: Request, service: SessionDep) -> TokenPair:
    """Register an identity and return its first credential pair."""
    return await service.sign_up(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        user_agent=get_user_agent(request),
        ip_address=get_client_ip(request),
    )


@router.post("/sign-in", response_model=TokenPair)
async def sign_in(body: SignInRequest, request: Request, service: SessionDep) -> TokenPair:
    """Authenticate with email and password."""
    return await service.sign_in(
        email=body.email,
        password=body.password,
        user_agent=get_user_agent(request),
        ip_address=get_client_ip(request),
    )


@router.post("/refresh", response_model=TokenPair)
async def refresh(body: RefreshRequest, request: Request, service: SessionDep) -> TokenPair:
    """Exchange a refresh token for a new pair. The presented token is revoked."""
    return await service.rotate(
        body.refresh_token,
        user_agent=get_user_agent(request),
        ip_address=get_client_ip(request),
    )


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    body: RefreshRequest, auth: OptionalAuthDep, service: SessionDep
) -> LogoutResponse:
    """Revoke one refresh token. Logging out twice is not an error."""
    result = await service.logout(
        body.refresh_token, identity_id=auth.user_uuid if auth else None
    )
    return LogoutResponse(result=result)


@router.post("/logout-all", response_model=RevokedResponse)
async def logout_all(auth: AuthDep, service: SessionDep) -> RevokedResponse:
    """Revoke every refresh token of the caller."""
    return RevokedResponse(revoked=await service.logout_all(auth.user_uuid))


@router.post("/change-password", response_model=RevokedResponse)
async def change_password(
    body: ChangePasswordRequest, auth: AuthDep, service: SessionDep
) -> RevokedResponse:
    """Change the caller's password and end all of their sessions."""
    revoked = await service.change_password(
        auth.user_uuid, body.current_password, body.new_password
    )
    return RevokedResponse(revoked=revoked)


@router.get("/me", response_model=Profile)
async def get_current_user(auth: AuthDep, service: SessionDep) -> Profile:
    """Get the caller's profile."""
    return await service.get_profile(auth.user_uuid)
