"""JWT authentication middleware."""

from dataclasses import dataclass
from uuid import UUID

import structlog
from fastapi import HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from teamspace.core.auth.jwt import ACCESS_TOKEN_TYPE, TokenError, decode_token
from teamspace.core.auth.types import PlatformRole

logger = structlog.get_logger()

# Use Bearer token authentication
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class JwtContext:
    """Context from a verified access token.

    Carries only identity claims. Team and project roles are never taken
    from the token; they are read from storage for each check.
    """

    user_id: str
    role: PlatformRole
    email: str
    display_name: str

    @property
    def user_uuid(self) -> UUID:
        """Get user ID as UUID."""
        return UUID(self.user_id)


async def verify_jwt(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
) -> JwtContext:
    """Verify an access token and return the caller's context.

    Args:
        request: The current request.
        credentials: Bearer token credentials.

    Returns:
        JwtContext with identity info.

    Raises:
        HTTPException: 401 if token is missing or invalid.
    """
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_token(credentials.credentials, expected_type=ACCESS_TOKEN_TYPE)
        context = JwtContext(
            user_id=str(UUID(payload.sub)),
            role=PlatformRole(payload.role),
            email=payload.email,
            display_name=f"{payload.first_name} {payload.last_name}".strip(),
        )
    except (TokenError, ValueError) as e:
        logger.warning("jwt_validation_failed", error=str(e))
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    # Store in request state for downstream use
    request.state.user = context

    logger.debug("jwt_verified", user_id=context.user_id, role=context.role.value)
    return context


async def optional_jwt(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
) -> JwtContext | None:
    """Optionally verify JWT, returning None if not provided."""
    if not credentials:
        return None

    try:
        return await verify_jwt(request, credentials)
    except HTTPException:
        return None
