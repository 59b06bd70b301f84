"""Auth domain types."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr


class PlatformRole(str, Enum):
    """Platform-level roles, independent of any team or project."""

    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class Identity(BaseModel):
    """A user account."""

    id: UUID
    email: EmailStr
    first_name: str
    last_name: str
    password_hash: str
    role: PlatformRole = PlatformRole.USER
    created_at: datetime
    updated_at: datetime | None = None

    @property
    def display_name(self) -> str:
        """First and last name joined."""
        return f"{self.first_name} {self.last_name}".strip()


class Profile(BaseModel):
    """Identity as exposed to callers, without the password hash."""

    id: UUID
    email: EmailStr
    first_name: str
    last_name: str
    role: PlatformRole
    created_at: datetime

    @classmethod
    def from_identity(cls, identity: Identity) -> "Profile":
        """Strip secrets from an identity."""
        return cls(
            id=identity.id,
            email=identity.email,
            first_name=identity.first_name,
            last_name=identity.last_name,
            role=identity.role,
            created_at=identity.created_at,
        )


class CredentialState(str, Enum):
    """Lifecycle state of a refresh credential row."""

    ACTIVE = "active"
    REVOKED = "revoked"


class RefreshToken(BaseModel):
    """Persisted refresh credential. Only the hash of the raw token is stored."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    user_id: UUID
    token_hash: str
    issued_at: datetime
    expires_at: datetime
    revoked_at: datetime | None = None
    user_agent: str | None = None
    ip_address: str | None = None

    @property
    def state(self) -> CredentialState:
        """Tagged state; expiry is checked separately against the clock."""
        return CredentialState.REVOKED if self.revoked_at else CredentialState.ACTIVE


class NewRefreshToken(BaseModel):
    """Fields for inserting a refresh credential row."""

    model_config = ConfigDict(frozen=True)

    user_id: UUID
    token_hash: str
    expires_at: datetime
    user_agent: str | None = None
    ip_address: str | None = None


class TokenPayload(BaseModel):
    """Signed token claims."""

    sub: str  # identity id
    type: str  # "access" or "refresh"
    role: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    jti: str | None = None
    exp: int  # expiration timestamp
    iat: int  # issued at timestamp


class TokenPair(BaseModel):
    """Credentials handed to the caller after sign-in, sign-up or rotation.

    The raw refresh token appears here exactly once and is never stored.
    """

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class LogoutResult(str, Enum):
    """Outcome of revoking a single refresh credential."""

    LOGGED_OUT = "logged_out"
    ALREADY_LOGGED_OUT = "already_logged_out"
