"""Audit logging adapters."""

from teamspace.adapters.audit.sinks import LoggingAuditSink, PostgresAuditLog

__all__ = ["LoggingAuditSink", "PostgresAuditLog"]
