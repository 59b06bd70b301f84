"""Audit sinks: structured log output and a PostgreSQL audit log table."""

import json
import logging
from typing import Any

import structlog

from teamspace.adapters.db.app_db import AppDatabase
from teamspace.core.audit.types import (
    AuditAction,
    AuditEvent,
    AuditLogEntry,
    AuditLogFilter,
    EntityType,
)
from teamspace.core.pagination import CursorKey

logger = logging.getLogger(__name__)


class LoggingAuditSink:
    """Writes audit events to the structured log."""

    def __init__(self) -> None:
        """Bind an audit logger."""
        self._log = structlog.get_logger("teamspace.audit")

    async def record(self, event: AuditEvent) -> None:
        """Emit one event."""
        self._log.info(
            "audit_event",
            action=event.action.value,
            identity_id=str(event.identity_id) if event.identity_id else None,
            entity_type=event.entity_type.value if event.entity_type else None,
            entity_id=str(event.entity_id) if event.entity_id else None,
            ip_address=event.ip_address,
            **event.metadata,
        )


class PostgresAuditLog:
    """Stores audit events in ``audit_logs`` and reads them back newest first."""

    def __init__(self, db: AppDatabase) -> None:
        """Initialize with database connection.

        Args:
            db: Application database instance.
        """
        self._db = db

    def _row_to_entry(self, row: dict[str, Any]) -> AuditLogEntry:
        """Convert database row to AuditLogEntry."""
        metadata = row.get("metadata")
        if isinstance(metadata, str):
            metadata = json.loads(metadata)
        return AuditLogEntry(
            id=row["id"],
            identity_id=row.get("identity_id"),
            action=AuditAction(row["action"]),
            entity_type=EntityType(row["entity_type"]) if row.get("entity_type") else None,
            entity_id=row.get("entity_id"),
            ip_address=row.get("ip_address"),
            metadata=metadata or {},
            created_at=row["created_at"],
        )

    async def record(self, event: AuditEvent) -> None:
        """Insert one event."""
        await self._db.execute(
            """
            INSERT INTO audit_logs
                (identity_id, action, entity_type, entity_id, ip_address, metadata)
            VALUES ($1, $2, $3, $4, $5, $6::jsonb)
            """,
            event.identity_id,
            event.action.value,
            event.entity_type.value if event.entity_type else None,
            event.entity_id,
            event.ip_address,
            json.dumps(event.metadata, default=str),
        )

    async def list_events(
        self,
        filters: AuditLogFilter,
        after: CursorKey | None,
        limit: int,
    ) -> list[AuditLogEntry]:
        """List events matching the filters, newest first."""
        conditions = ["1 = 1"]
        args: list[Any] = []

        if filters.identity_id is not None:
            args.append(filters.identity_id)
            conditions.append(f"identity_id = ${len(args)}")
        if filters.action is not None:
            args.append(filters.action.value)
            conditions.append(f"action = ${len(args)}")
        if filters.entity_type is not None:
            args.append(filters.entity_type.value)
            conditions.append(f"entity_type = ${len(args)}")
        if filters.entity_id is not None:
            args.append(filters.entity_id)
            conditions.append(f"entity_id = ${len(args)}")

        if after is not None:
            args.extend([after.created_at, after.id])
            conditions.append(f"(created_at, id) < (${len(args) - 1}, ${len(args)})")

        args.append(limit)
        rows = await self._db.fetch_all(
            f"""
            SELECT id, identity_id, action, entity_type, entity_id, ip_address,
                   metadata, created_at
            FROM audit_logs
            WHERE {" AND ".join(conditions)}
            ORDER BY created_at DESC, id DESC
            LIMIT ${len(args)}
            """,
            *args,
        )
        logger.debug(f"Listed {len(rows)} audit events")
        return [self._row_to_entry(row) for row in rows]
