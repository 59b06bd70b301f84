"""Domain-specific exceptions.

All exceptions raised by the teamspace core inherit from TeamspaceError.
Each subclass names one kind of the error taxonomy so that callers (the
HTTP binding, tests) can branch on the kind without parsing messages:

- NotFoundError: entity absent or soft-deleted
- ConflictError: uniqueness violation, including lost storage races
- UnauthorizedError: missing/invalid/expired/revoked credential, or an
  insufficient role for the requested action
- BadRequestError: malformed cursor or malformed input
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from teamspace.core.rbac.policy import Rule


class TeamspaceError(Exception):
    """Base exception for all teamspace errors.

    Attributes:
        kind: Taxonomy kind, stable across messages.
        message: Human-readable reason naming the failed rule.
    """

    kind = "error"

    def __init__(self, message: str) -> None:
        """Initialize the error.

        Args:
            message: Human-readable reason.
        """
        super().__init__(message)
        self.message = message


class NotFoundError(TeamspaceError):
    """Entity does not exist or has been soft-deleted."""

    kind = "not_found"


class ConflictError(TeamspaceError):
    """A uniqueness rule would be violated.

    Also raised when a storage transaction loses a constraint race. These
    are surfaced as-is and never retried.
    """

    kind = "conflict"


class UnauthorizedError(TeamspaceError):
    """Credential rejected or role insufficient.

    Attributes:
        rule: The authorization rule that denied the action, when the
            denial came from the authorization engine.
    """

    kind = "unauthorized"

    def __init__(self, message: str, rule: Rule | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable reason.
            rule: Violated authorization rule, if any.
        """
        super().__init__(message)
        self.rule = rule


class BadRequestError(TeamspaceError):
    """Input could not be interpreted, e.g. a malformed cursor."""

    kind = "bad_request"
