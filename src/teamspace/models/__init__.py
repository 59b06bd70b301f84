"""SQLAlchemy models for the application database."""
from teamspace.models.base import BaseModel, metadata
from teamspace.models.user import RefreshToken, User
from teamspace.models.team import Team, TeamMember
from teamspace.models.project import Project, ProjectMember
from teamspace.models.document import Document
from teamspace.models.audit_log import AuditLog

__all__ = [
    "BaseModel",
    "metadata",
    "User",
    "RefreshToken",
    "Team",
    "TeamMember",
    "Project",
    "ProjectMember",
    "Document",
    "AuditLog",
]
