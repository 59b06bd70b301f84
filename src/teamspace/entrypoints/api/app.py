"""FastAPI application definition."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from teamspace.core.exceptions import TeamspaceError, UnauthorizedError
from teamspace.entrypoints.api.deps import lifespan
from teamspace.entrypoints.api.routes import api_router

STATUS_BY_KIND = {
    "not_found": 404,
    "conflict": 409,
    "unauthorized": 401,
    "bad_request": 400,
}


async def teamspace_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a domain error as JSON with the status for its kind."""
    assert isinstance(exc, TeamspaceError)
    body: dict[str, str | None] = {"detail": exc.message, "kind": exc.kind}
    if isinstance(exc, UnauthorizedError) and exc.rule is not None:
        body["rule"] = exc.rule.value
    headers = {"WWW-Authenticate": "Bearer"} if exc.kind == "unauthorized" else None
    return JSONResponse(
        status_code=STATUS_BY_KIND.get(exc.kind, 500), content=body, headers=headers
    )


def create_app() -> FastAPI:
    """Build the application with routes, CORS and error handling."""
    application = FastAPI(
        title="teamspace",
        description="Multi-tenant team, project and document collaboration",
        version="1.0.0",
        lifespan=lifespan,
        redirect_slashes=False,  # Prevent 307 redirects that lose auth headers
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(TeamspaceError, teamspace_error_handler)
    application.include_router(api_router, prefix="/api/v1")

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return application


app = create_app()
