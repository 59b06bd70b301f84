"""Auth domain types and utilities."""

from teamspace.core.auth.jwt import (
    TokenError,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from teamspace.core.auth.password import PasswordVerifier, hash_password, verify_password
from teamspace.core.auth.repository import AuthRepository
from teamspace.core.auth.service import SessionManager
from teamspace.core.auth.types import (
    CredentialState,
    Identity,
    LogoutResult,
    NewRefreshToken,
    PlatformRole,
    Profile,
    RefreshToken,
    TokenPair,
    TokenPayload,
)

__all__ = [
    "AuthRepository",
    "CredentialState",
    "Identity",
    "LogoutResult",
    "NewRefreshToken",
    "PasswordVerifier",
    "PlatformRole",
    "Profile",
    "RefreshToken",
    "SessionManager",
    "TokenError",
    "TokenPair",
    "TokenPayload",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
    "hash_password",
    "verify_password",
]
