"""RBAC core domain."""

from teamspace.core.rbac.authorizer import (
    Authorizer,
    DocumentAccess,
    ProjectAccess,
    TeamAccess,
)
from teamspace.core.rbac.policy import (
    MANAGEABLE_TEAM_ROLES,
    PROJECT_PERMISSIONS,
    TEAM_PERMISSIONS,
    Decision,
    ProjectAction,
    Rule,
    TeamAction,
    can_act_on_project,
    can_act_on_team,
    can_create_project,
)
from teamspace.core.rbac.repository import WorkspaceRepository
from teamspace.core.rbac.types import (
    CascadeResult,
    Document,
    EntityState,
    Project,
    ProjectMembership,
    ProjectRole,
    Team,
    TeamMembership,
    TeamRole,
)

__all__ = [
    "MANAGEABLE_TEAM_ROLES",
    "PROJECT_PERMISSIONS",
    "TEAM_PERMISSIONS",
    "Authorizer",
    "CascadeResult",
    "Decision",
    "Document",
    "DocumentAccess",
    "EntityState",
    "Project",
    "ProjectAccess",
    "ProjectAction",
    "ProjectMembership",
    "ProjectRole",
    "Rule",
    "Team",
    "TeamAccess",
    "TeamAction",
    "TeamMembership",
    "TeamRole",
    "WorkspaceRepository",
    "can_act_on_project",
    "can_act_on_team",
    "can_create_project",
]
