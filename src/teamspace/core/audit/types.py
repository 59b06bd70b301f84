"""Audit event types."""

from datetime import datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from teamspace.core.pagination import CursorKey


class AuditAction(str, Enum):
    """Security-relevant and state-changing actions."""

    SIGN_UP = "SIGN_UP"
    SIGN_IN = "SIGN_IN"
    SIGN_IN_FAILED = "SIGN_IN_FAILED"
    REFRESH_TOKEN = "REFRESH_TOKEN"
    SIGN_OUT = "SIGN_OUT"
    SIGN_OUT_ALL = "SIGN_OUT_ALL"
    CHANGE_PASSWORD = "CHANGE_PASSWORD"

    CREATE_TEAM = "CREATE_TEAM"
    UPDATE_TEAM = "UPDATE_TEAM"
    DELETE_TEAM = "DELETE_TEAM"
    ADD_TEAM_MEMBER = "ADD_TEAM_MEMBER"
    REMOVE_TEAM_MEMBER = "REMOVE_TEAM_MEMBER"
    UPDATE_TEAM_MEMBER_ROLE = "UPDATE_TEAM_MEMBER_ROLE"
    TRANSFER_TEAM_OWNERSHIP = "TRANSFER_TEAM_OWNERSHIP"

    CREATE_PROJECT = "CREATE_PROJECT"
    UPDATE_PROJECT = "UPDATE_PROJECT"
    DELETE_PROJECT = "DELETE_PROJECT"
    ADD_PROJECT_MEMBER = "ADD_PROJECT_MEMBER"
    REMOVE_PROJECT_MEMBER = "REMOVE_PROJECT_MEMBER"
    UPDATE_PROJECT_MEMBER_ROLE = "UPDATE_PROJECT_MEMBER_ROLE"

    CREATE_DOCUMENT = "CREATE_DOCUMENT"
    UPDATE_DOCUMENT = "UPDATE_DOCUMENT"
    DELETE_DOCUMENT = "DELETE_DOCUMENT"


class EntityType(str, Enum):
    """Entity kinds referenced by audit events."""

    USER = "User"
    TEAM = "Team"
    PROJECT = "Project"
    DOCUMENT = "Document"


class AuditEvent(BaseModel):
    """Event handed to an audit sink."""

    model_config = ConfigDict(frozen=True)

    identity_id: UUID | None
    action: AuditAction
    entity_type: EntityType | None = None
    entity_id: UUID | None = None
    ip_address: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class AuditLogEntry(BaseModel):
    """Audit event as stored."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    identity_id: UUID | None
    action: AuditAction
    entity_type: EntityType | None = None
    entity_id: UUID | None = None
    ip_address: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class AuditLogFilter(BaseModel):
    """Filters for listing audit events. Unset fields do not filter."""

    model_config = ConfigDict(frozen=True)

    identity_id: UUID | None = None
    action: AuditAction | None = None
    entity_type: EntityType | None = None
    entity_id: UUID | None = None


@runtime_checkable
class AuditSink(Protocol):
    """Receives audit events."""

    async def record(self, event: AuditEvent) -> None:
        """Record one event."""
        ...


@runtime_checkable
class AuditLogReader(Protocol):
    """Reads back stored audit events."""

    async def list_events(
        self,
        filters: AuditLogFilter,
        after: CursorKey | None,
        limit: int,
    ) -> list[AuditLogEntry]:
        """List events newest first, strictly after the given sort key."""
        ...
