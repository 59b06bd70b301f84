"""API middleware."""

from teamspace.entrypoints.api.middleware.jwt_auth import JwtContext, optional_jwt, verify_jwt

__all__ = ["JwtContext", "optional_jwt", "verify_jwt"]
