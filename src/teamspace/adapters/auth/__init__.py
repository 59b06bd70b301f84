"""Auth storage adapters."""

from teamspace.adapters.auth.postgres import PostgresAuthRepository

__all__ = ["PostgresAuthRepository"]
