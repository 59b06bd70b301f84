"""Fire-and-forget audit recording."""

from __future__ import annotations

from typing import Any
from uuid import UUID

import structlog

from teamspace.core.audit.types import AuditAction, AuditEvent, AuditSink, EntityType

logger = structlog.get_logger()

_SENSITIVE_KEYS = frozenset({"password", "token", "refresh_token", "access_token"})


def sanitize_metadata(metadata: dict[str, Any] | None) -> dict[str, Any]:
    """Redact secrets from event metadata."""
    if not metadata:
        return {}
    return {
        key: "[REDACTED]" if key in _SENSITIVE_KEYS and value else value
        for key, value in metadata.items()
    }


class AuditRecorder:
    """Wraps an audit sink so that recording never fails the caller."""

    def __init__(self, sink: AuditSink | None = None) -> None:
        """Initialize with an optional sink.

        Args:
            sink: Destination for events. With no sink, events are dropped.
        """
        self._sink = sink

    async def record(
        self,
        identity_id: UUID | None,
        action: AuditAction,
        entity_type: EntityType | None = None,
        entity_id: UUID | None = None,
        ip_address: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Record an event; sink errors are logged and swallowed."""
        if self._sink is None:
            return

        event = AuditEvent(
            identity_id=identity_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            ip_address=ip_address,
            metadata=sanitize_metadata(metadata),
        )
        try:
            await self._sink.record(event)
        except Exception as e:
            # Log but don't fail the request
            logger.error(
                "audit_record_failed",
                action=action.value,
                entity_id=str(entity_id) if entity_id else None,
                error=str(e),
            )
