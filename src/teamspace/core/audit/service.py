"""Querying recorded audit events."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from teamspace.core.audit.types import AuditLogEntry, AuditLogFilter, AuditLogReader
from teamspace.core.auth.types import PlatformRole
from teamspace.core.exceptions import UnauthorizedError
from teamspace.core.pagination import Page, build_page, page_request

PRIVILEGED_ROLES = frozenset({PlatformRole.ADMIN, PlatformRole.SUPER_ADMIN})


class AuditService:
    """Lists audit events, scoped by the caller's platform role."""

    def __init__(self, reader: AuditLogReader) -> None:
        """Initialize with a reader over stored events."""
        self._reader = reader

    async def list_events(
        self,
        actor_id: UUID,
        actor_role: PlatformRole,
        filters: AuditLogFilter | None = None,
        cursor: str | None = None,
        limit: Any = None,
    ) -> Page[AuditLogEntry]:
        """List events, newest first.

        Platform admins may list any identity's events. Other callers only
        see their own; asking for someone else's is rejected.

        Raises:
            UnauthorizedError: If a non-admin filters on another identity.
            BadRequestError: If the cursor is malformed.
        """
        filters = filters or AuditLogFilter()
        if actor_role not in PRIVILEGED_ROLES:
            if filters.identity_id is not None and filters.identity_id != actor_id:
                raise UnauthorizedError("You can only view your own audit logs")
            filters = filters.model_copy(update={"identity_id": actor_id})

        request = page_request(cursor, limit)
        rows = await self._reader.list_events(filters, request.after, request.fetch_size)
        return build_page(rows, request.limit)
