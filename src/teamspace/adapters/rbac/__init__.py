"""Workspace storage adapters."""

from teamspace.adapters.rbac.postgres import PostgresWorkspaceRepository

__all__ = ["PostgresWorkspaceRepository"]
