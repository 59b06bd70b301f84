"""Authorization decisions over freshly loaded memberships.

Every function here is pure: it takes membership records the caller has
just read from storage and returns a Decision. Nothing is cached between
calls. Checks run in a fixed order (existence, self-action, role floor,
role-specific exceptions) so the same input always reports the same
first failing rule.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from teamspace.core.exceptions import NotFoundError, UnauthorizedError
from teamspace.core.rbac.types import ProjectMembership, ProjectRole, TeamMembership, TeamRole


class TeamAction(str, Enum):
    """Actions gated by team role."""

    READ = "read"
    UPDATE_TEAM = "update_team"
    DELETE_TEAM = "delete_team"
    CREATE_PROJECT = "create_project"
    ADD_MEMBER = "add_member"
    REMOVE_MEMBER = "remove_member"
    CHANGE_ROLE = "change_role"


class ProjectAction(str, Enum):
    """Actions gated by project role."""

    READ = "read"
    UPDATE_PROJECT = "update_project"
    DELETE_PROJECT = "delete_project"
    ADD_MEMBER = "add_member"
    REMOVE_MEMBER = "remove_member"
    CHANGE_ROLE = "change_role"
    CREATE_DOCUMENT = "create_document"
    UPDATE_DOCUMENT = "update_document"
    DELETE_DOCUMENT = "delete_document"


class Rule(str, Enum):
    """Named authorization rules, reported on denial."""

    NOT_A_MEMBER = "not_a_member"
    TARGET_NOT_FOUND = "target_not_found"
    SELF_ACTION = "self_action"
    INSUFFICIENT_ROLE = "insufficient_role"
    OWNER_IMMUTABLE = "owner_immutable"
    ADMIN_PEER = "admin_peer"
    OWNER_NOT_ASSIGNABLE = "owner_not_assignable"
    OWNER_GRANT_REQUIRES_OWNER = "owner_grant_requires_owner"
    ADMIN_GRANT_REQUIRES_OWNER = "admin_grant_requires_owner"


_ALL_TEAM_ROLES = frozenset(TeamRole)
_TEAM_MANAGERS = frozenset({TeamRole.OWNER, TeamRole.ADMIN})
_ALL_PROJECT_ROLES = frozenset(ProjectRole)
_PROJECT_ADMINS = frozenset({ProjectRole.ADMIN})

# Action -> roles allowed past the role floor
TEAM_PERMISSIONS: dict[TeamAction, frozenset[TeamRole]] = {
    TeamAction.READ: _ALL_TEAM_ROLES,
    TeamAction.UPDATE_TEAM: _TEAM_MANAGERS,
    TeamAction.DELETE_TEAM: frozenset({TeamRole.OWNER}),
    TeamAction.CREATE_PROJECT: _TEAM_MANAGERS,
    TeamAction.ADD_MEMBER: _TEAM_MANAGERS,
    TeamAction.REMOVE_MEMBER: _TEAM_MANAGERS,
    TeamAction.CHANGE_ROLE: _TEAM_MANAGERS,
}

# Manager role -> target roles it may remove or re-role. OWNER is never a target.
MANAGEABLE_TEAM_ROLES: dict[TeamRole, frozenset[TeamRole]] = {
    TeamRole.OWNER: frozenset({TeamRole.ADMIN, TeamRole.MEMBER}),
    TeamRole.ADMIN: frozenset({TeamRole.MEMBER}),
    TeamRole.MEMBER: frozenset(),
}

PROJECT_PERMISSIONS: dict[ProjectAction, frozenset[ProjectRole]] = {
    ProjectAction.READ: _ALL_PROJECT_ROLES,
    ProjectAction.UPDATE_PROJECT: _PROJECT_ADMINS,
    ProjectAction.DELETE_PROJECT: _PROJECT_ADMINS,
    ProjectAction.ADD_MEMBER: _PROJECT_ADMINS,
    ProjectAction.REMOVE_MEMBER: _PROJECT_ADMINS,
    ProjectAction.CHANGE_ROLE: _PROJECT_ADMINS,
    ProjectAction.CREATE_DOCUMENT: _ALL_PROJECT_ROLES,
    ProjectAction.UPDATE_DOCUMENT: frozenset({ProjectRole.ADMIN, ProjectRole.EDITOR}),
    ProjectAction.DELETE_DOCUMENT: _PROJECT_ADMINS,
}

_TEAM_ROLE_FLOOR_MESSAGES = {
    TeamAction.READ: "You are not a member of the team",
    TeamAction.UPDATE_TEAM: "Only the team owner or an admin can update the team",
    TeamAction.DELETE_TEAM: "Only the team owner can delete the team",
    TeamAction.CREATE_PROJECT: "You are not authorized to create a project",
    TeamAction.ADD_MEMBER: "Only the team owner or an admin can add members",
    TeamAction.REMOVE_MEMBER: "Only the team owner or an admin can remove members",
    TeamAction.CHANGE_ROLE: "Only the team owner or an admin can change member roles",
}

_PROJECT_ROLE_FLOOR_MESSAGES = {
    ProjectAction.READ: "You are not a member of the project",
    ProjectAction.UPDATE_PROJECT: "You are not authorized to update the project",
    ProjectAction.DELETE_PROJECT: "You are not authorized to delete the project",
    ProjectAction.ADD_MEMBER: "You are not authorized to add a member to the project",
    ProjectAction.REMOVE_MEMBER: "You are not authorized to remove a member from the project",
    ProjectAction.CHANGE_ROLE: "You are not authorized to update a member role in the project",
    ProjectAction.CREATE_DOCUMENT: "You are not authorized to create a document",
    ProjectAction.UPDATE_DOCUMENT: "You are not authorized to update the document",
    ProjectAction.DELETE_DOCUMENT: "You are not authorized to delete the document",
}

_TEAM_TARGETED = frozenset({TeamAction.REMOVE_MEMBER, TeamAction.CHANGE_ROLE})
_PROJECT_TARGETED = frozenset({ProjectAction.REMOVE_MEMBER, ProjectAction.CHANGE_ROLE})


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check.

    Attributes:
        allowed: Whether the action may proceed.
        rule: First rule that denied the action; None when allowed.
        reason: Human-readable explanation of the denial.
    """

    allowed: bool
    rule: Rule | None = None
    reason: str = ""

    @classmethod
    def allow(cls) -> Decision:
        """Permit the action."""
        return cls(allowed=True)

    @classmethod
    def deny(cls, rule: Rule, reason: str) -> Decision:
        """Refuse the action, naming the rule."""
        return cls(allowed=False, rule=rule, reason=reason)

    def raise_for_denial(self) -> None:
        """Raise the matching taxonomy error if the action was denied.

        Raises:
            NotFoundError: If the targeted membership does not exist.
            UnauthorizedError: For every other denial.
        """
        if self.allowed:
            return
        if self.rule is Rule.TARGET_NOT_FOUND:
            raise NotFoundError(self.reason)
        raise UnauthorizedError(self.reason, rule=self.rule)


def can_act_on_team(
    actor: TeamMembership | None,
    target: TeamMembership | None,
    action: TeamAction,
    new_role: TeamRole | None = None,
) -> Decision:
    """Decide whether a team member may perform an action.

    Args:
        actor: Actor's membership in the team, or None if not a member.
        target: Membership being acted on, for REMOVE_MEMBER/CHANGE_ROLE.
        action: Requested action.
        new_role: Role being granted, for ADD_MEMBER/CHANGE_ROLE.

    Returns:
        The decision with the first violated rule.
    """
    # Existence
    if actor is None:
        return Decision.deny(Rule.NOT_A_MEMBER, "You are not a member of the team")
    if action in _TEAM_TARGETED and target is None:
        return Decision.deny(Rule.TARGET_NOT_FOUND, "Team member not found")

    # Self-action
    if action in _TEAM_TARGETED and target is not None and target.user_id == actor.user_id:
        if action is TeamAction.CHANGE_ROLE:
            return Decision.deny(Rule.SELF_ACTION, "You cannot update your own role")
        return Decision.deny(Rule.SELF_ACTION, "You cannot remove yourself from the team")

    # Role floor
    if actor.role not in TEAM_PERMISSIONS[action]:
        return Decision.deny(Rule.INSUFFICIENT_ROLE, _TEAM_ROLE_FLOOR_MESSAGES[action])

    # Role-specific exceptions
    if target is not None and action in _TEAM_TARGETED:
        verb = "change the role of" if action is TeamAction.CHANGE_ROLE else "remove"
        if target.role is TeamRole.OWNER:
            return Decision.deny(Rule.OWNER_IMMUTABLE, f"You cannot {verb} the owner of the team")
        if target.role is TeamRole.ADMIN and actor.role is TeamRole.ADMIN:
            return Decision.deny(Rule.ADMIN_PEER, f"You cannot {verb} another admin")

    if new_role is TeamRole.OWNER:
        if action is TeamAction.ADD_MEMBER:
            return Decision.deny(
                Rule.OWNER_NOT_ASSIGNABLE, "Cannot assign the owner role when adding a member"
            )
        if actor.role is not TeamRole.OWNER:
            return Decision.deny(
                Rule.OWNER_GRANT_REQUIRES_OWNER, "You cannot make another user the owner"
            )
    if new_role is TeamRole.ADMIN and actor.role is not TeamRole.OWNER:
        return Decision.deny(
            Rule.ADMIN_GRANT_REQUIRES_OWNER, "Only the team owner can assign the admin role"
        )

    return Decision.allow()


def can_create_project(actor: TeamMembership | None) -> Decision:
    """Decide whether a team member may create a project in the team."""
    return can_act_on_team(actor, None, TeamAction.CREATE_PROJECT)


def can_act_on_project(
    actor: ProjectMembership | None,
    action: ProjectAction,
    target: ProjectMembership | None = None,
) -> Decision:
    """Decide whether a project member may perform an action.

    Args:
        actor: Actor's membership in the project, or None if not a member.
        action: Requested action.
        target: Membership being acted on, for REMOVE_MEMBER/CHANGE_ROLE.

    Returns:
        The decision with the first violated rule.
    """
    if actor is None:
        return Decision.deny(Rule.NOT_A_MEMBER, "You are not a member of the project")
    if action in _PROJECT_TARGETED and target is None:
        return Decision.deny(Rule.TARGET_NOT_FOUND, "User is not a member of the project")

    if action in _PROJECT_TARGETED and target is not None and target.user_id == actor.user_id:
        if action is ProjectAction.CHANGE_ROLE:
            return Decision.deny(Rule.SELF_ACTION, "You cannot update your own role")
        return Decision.deny(Rule.SELF_ACTION, "You cannot remove yourself from the project")

    if actor.role not in PROJECT_PERMISSIONS[action]:
        return Decision.deny(Rule.INSUFFICIENT_ROLE, _PROJECT_ROLE_FLOOR_MESSAGES[action])

    return Decision.allow()
