"""Append-only audit log."""

from typing import Any
from uuid import UUID

from sqlalchemy import Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from teamspace.models.base import BaseModel


class AuditLog(BaseModel):
    """Audit log entry."""

    __tablename__ = "audit_logs"

    # Who
    identity_id: Mapped[UUID | None] = mapped_column(nullable=True)  # Null for failed sign-ins
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)

    # What
    action: Mapped[str] = mapped_column(String(50), nullable=False)  # "CREATE_TEAM"
    entity_type: Mapped[str | None] = mapped_column(String(20), nullable=True)  # "Team"
    entity_id: Mapped[UUID | None] = mapped_column(nullable=True)

    # Details
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict
    )

    __table_args__ = (
        Index("ix_audit_logs_created_at_id", "created_at", "id"),
        Index("ix_audit_logs_identity_id", "identity_id"),
    )
