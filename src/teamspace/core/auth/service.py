"""Session manager: sign-up, sign-in and refresh-credential lifecycle."""

from datetime import UTC, datetime, timedelta
from uuid import UUID

import structlog

from teamspace.config import settings
from teamspace.core.audit.recorder import AuditRecorder
from teamspace.core.audit.types import AuditAction, EntityType
from teamspace.core.auth.jwt import (
    REFRESH_TOKEN_TYPE,
    TokenError,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from teamspace.core.auth.password import PasswordVerifier
from teamspace.core.auth.repository import AuthRepository
from teamspace.core.auth.tokens import hash_token, is_token_expired
from teamspace.core.auth.types import (
    Identity,
    LogoutResult,
    NewRefreshToken,
    Profile,
    TokenPair,
)
from teamspace.core.exceptions import ConflictError, NotFoundError, UnauthorizedError

logger = structlog.get_logger()


class SessionManager:
    """Issues, verifies, rotates and revokes credentials for identities.

    Refresh credentials are single-use: ``rotate`` revokes the presented
    credential and issues a successor in one storage transaction, so a
    replayed or concurrently reused token always loses.
    """

    def __init__(
        self,
        repo: AuthRepository,
        passwords: PasswordVerifier | None = None,
        audit: AuditRecorder | None = None,
        access_ttl: timedelta | None = None,
        refresh_ttl: timedelta | None = None,
    ) -> None:
        """Initialize with storage and collaborators.

        Args:
            repo: Identity and credential storage.
            passwords: Password hasher/verifier.
            audit: Audit recorder for security events.
            access_ttl: Access credential validity.
            refresh_ttl: Refresh credential validity.
        """
        self._repo = repo
        self._passwords = passwords or PasswordVerifier()
        self._audit = audit or AuditRecorder()
        self._access_ttl = access_ttl or timedelta(minutes=settings.access_token_expire_minutes)
        self._refresh_ttl = refresh_ttl or timedelta(days=settings.refresh_token_expire_days)

    async def sign_up(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> TokenPair:
        """Create an identity and issue its first credential pair.

        Raises:
            ConflictError: If the email is already registered.
        """
        existing = await self._repo.get_user_by_email(email)
        if existing:
            raise ConflictError("User with this email already exists")

        identity = await self._repo.create_user(
            email=email,
            password_hash=self._passwords.hash(password),
            first_name=first_name,
            last_name=last_name,
        )
        logger.info("user_signed_up", user_id=str(identity.id))

        pair = await self.issue(identity, user_agent=user_agent, ip_address=ip_address)
        await self._audit.record(
            identity.id,
            AuditAction.SIGN_UP,
            EntityType.USER,
            identity.id,
            ip_address=ip_address,
            metadata={"user_agent": user_agent},
        )
        return pair

    async def sign_in(
        self,
        email: str,
        password: str,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> TokenPair:
        """Verify a password and issue a credential pair.

        Raises:
            UnauthorizedError: If the account is absent or the password is wrong.
        """
        identity = await self._repo.get_user_by_email(email)
        if not identity or not self._passwords.verify(password, identity.password_hash):
            await self._audit.record(
                identity.id if identity else None,
                AuditAction.SIGN_IN_FAILED,
                ip_address=ip_address,
                metadata={"email": email},
            )
            raise UnauthorizedError("Invalid credentials")

        pair = await self.issue(identity, user_agent=user_agent, ip_address=ip_address)
        await self._audit.record(
            identity.id,
            AuditAction.SIGN_IN,
            EntityType.USER,
            identity.id,
            ip_address=ip_address,
            metadata={"user_agent": user_agent},
        )
        return pair

    async def issue(
        self,
        identity: Identity,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> TokenPair:
        """Issue an access credential and a persisted refresh credential.

        Only the hash of the refresh token is stored; the raw value is
        returned here and nowhere else.
        """
        access_token, refresh_token, row = self._new_pair(identity, user_agent, ip_address)
        await self._repo.create_refresh_token(row)
        logger.debug("credentials_issued", user_id=str(identity.id))
        return self._token_pair(access_token, refresh_token)

    async def rotate(
        self,
        raw_refresh_token: str,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> TokenPair:
        """Exchange a refresh credential for a new pair, revoking the old one.

        Raises:
            UnauthorizedError: If the token is invalid, unknown, revoked,
                expired, or was rotated concurrently by another caller.
        """
        # Cheap stateless check before touching storage
        try:
            payload = decode_token(raw_refresh_token, expected_type=REFRESH_TOKEN_TYPE)
        except TokenError as e:
            raise UnauthorizedError(f"Invalid refresh token: {e}") from None

        stored = await self._repo.get_refresh_token_by_hash(hash_token(raw_refresh_token))
        if not stored:
            logger.warning("refresh_token_not_found", user_id=payload.sub)
            raise UnauthorizedError("Refresh token not found")
        if stored.revoked_at is not None:
            logger.warning("refresh_token_replayed", user_id=str(stored.user_id))
            raise UnauthorizedError("Refresh token has been revoked")
        if is_token_expired(stored.expires_at):
            raise UnauthorizedError("Refresh token has expired")

        identity = await self._repo.get_user_by_id(stored.user_id)
        if not identity:
            raise UnauthorizedError("Refresh token is invalid")

        access_token, refresh_token, successor = self._new_pair(identity, user_agent, ip_address)
        rotated = await self._repo.rotate_refresh_token(stored.id, successor)
        if rotated is None:
            logger.warning("refresh_token_rotation_lost", user_id=str(identity.id))
            raise UnauthorizedError("Refresh token has already been rotated")

        logger.info("refresh_token_rotated", user_id=str(identity.id))
        await self._audit.record(
            identity.id,
            AuditAction.REFRESH_TOKEN,
            EntityType.USER,
            identity.id,
            ip_address=ip_address,
            metadata={"user_agent": user_agent},
        )
        return self._token_pair(access_token, refresh_token)

    async def logout(
        self,
        raw_refresh_token: str,
        identity_id: UUID | None = None,
    ) -> LogoutResult:
        """Revoke one refresh credential. Repeating the call is harmless.

        Args:
            raw_refresh_token: The credential to revoke.
            identity_id: Caller's identity, when known; a credential owned
                by someone else is rejected.

        Raises:
            UnauthorizedError: If the credential is unknown or not the caller's.
        """
        stored = await self._repo.get_refresh_token_by_hash(hash_token(raw_refresh_token))
        if not stored or (identity_id is not None and stored.user_id != identity_id):
            raise UnauthorizedError("Invalid refresh token")

        if stored.revoked_at is not None:
            return LogoutResult.ALREADY_LOGGED_OUT

        revoked = await self._repo.revoke_refresh_token(stored.id)
        if not revoked:
            return LogoutResult.ALREADY_LOGGED_OUT

        logger.info("user_logged_out", user_id=str(stored.user_id))
        await self._audit.record(
            stored.user_id, AuditAction.SIGN_OUT, EntityType.USER, stored.user_id
        )
        return LogoutResult.LOGGED_OUT

    async def logout_all(self, identity_id: UUID) -> int:
        """Revoke every active refresh credential of an identity.

        Returns:
            Number of credentials revoked.
        """
        count = await self._repo.revoke_all_refresh_tokens(identity_id)
        logger.info("user_logged_out_everywhere", user_id=str(identity_id), revoked=count)
        await self._audit.record(
            identity_id,
            AuditAction.SIGN_OUT_ALL,
            EntityType.USER,
            identity_id,
            metadata={"revoked": count},
        )
        return count

    async def change_password(
        self,
        identity_id: UUID,
        current_password: str,
        new_password: str,
    ) -> int:
        """Replace a password and end every session of the identity.

        Returns:
            Number of refresh credentials revoked.

        Raises:
            NotFoundError: If the identity does not exist.
            UnauthorizedError: If the current password is wrong.
        """
        identity = await self._repo.get_user_by_id(identity_id)
        if not identity:
            raise NotFoundError("User not found")
        if not self._passwords.verify(current_password, identity.password_hash):
            raise UnauthorizedError("Current password is incorrect")

        await self._repo.update_user_password(identity_id, self._passwords.hash(new_password))
        count = await self._repo.revoke_all_refresh_tokens(identity_id)
        logger.info("password_changed", user_id=str(identity_id), revoked=count)
        await self._audit.record(
            identity_id, AuditAction.CHANGE_PASSWORD, EntityType.USER, identity_id
        )
        return count

    async def get_profile(self, identity_id: UUID) -> Profile:
        """Return the identity without secrets.

        Raises:
            NotFoundError: If the identity does not exist.
        """
        identity = await self._repo.get_user_by_id(identity_id)
        if not identity:
            raise NotFoundError("User not found")
        return Profile.from_identity(identity)

    def _new_pair(
        self,
        identity: Identity,
        user_agent: str | None,
        ip_address: str | None,
    ) -> tuple[str, str, NewRefreshToken]:
        """Sign a new pair and build the refresh row to persist."""
        access_token = create_access_token(identity, expires_delta=self._access_ttl)
        refresh_token = create_refresh_token(identity, expires_delta=self._refresh_ttl)
        row = NewRefreshToken(
            user_id=identity.id,
            token_hash=hash_token(refresh_token),
            expires_at=datetime.now(UTC) + self._refresh_ttl,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        return access_token, refresh_token, row

    def _token_pair(self, access_token: str, refresh_token: str) -> TokenPair:
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self._access_ttl.total_seconds()),
        )
