"""Audit log API routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from teamspace.core.audit.service import AuditService
from teamspace.core.audit.types import AuditAction, AuditLogEntry, AuditLogFilter, EntityType
from teamspace.entrypoints.api.deps import get_audit_service
from teamspace.entrypoints.api.middleware.jwt_auth import JwtContext, verify_jwt
from teamspace.entrypoints.api.schemas import PageResponse, page_response

router = APIRouter(prefix="/audit-logs", tags=["audit-logs"])

AuthDep = Annotated[JwtContext, Depends(verify_jwt)]
AuditServiceDep = Annotated[AuditService, Depends(get_audit_service)]


@router.get("", response_model=PageResponse[AuditLogEntry])
async def list_audit_logs(
    auth: AuthDep,
    service: AuditServiceDep,
    identity_id: UUID | None = None,
    action: AuditAction | None = None,
    entity_type: EntityType | None = None,
    entity_id: UUID | None = None,
    cursor: str | None = None,
    limit: str | None = None,
) -> PageResponse[AuditLogEntry]:
    """List audit events, newest first.

    Platform admins see every identity's events; other callers see their own.
    """
    filters = AuditLogFilter(
        identity_id=identity_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
    )
    page = await service.list_events(
        auth.user_uuid, auth.role, filters=filters, cursor=cursor, limit=limit
    )
    return page_response(page, AuditLogEntry)
