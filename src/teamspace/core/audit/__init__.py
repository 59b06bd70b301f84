"""Audit events: types, fire-and-forget recorder and query service."""

from teamspace.core.audit.recorder import AuditRecorder, sanitize_metadata
from teamspace.core.audit.service import AuditService
from teamspace.core.audit.types import (
    AuditAction,
    AuditEvent,
    AuditLogEntry,
    AuditLogFilter,
    AuditLogReader,
    AuditSink,
    EntityType,
)

__all__ = [
    "AuditAction",
    "AuditEvent",
    "AuditLogEntry",
    "AuditLogFilter",
    "AuditLogReader",
    "AuditRecorder",
    "AuditService",
    "AuditSink",
    "EntityType",
    "sanitize_metadata",
]
