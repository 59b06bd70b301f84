"""Resource lifecycle services for teams, projects and documents."""

from teamspace.core.workspace.documents import DocumentService
from teamspace.core.workspace.projects import ProjectService
from teamspace.core.workspace.teams import TeamService

__all__ = ["DocumentService", "ProjectService", "TeamService"]
