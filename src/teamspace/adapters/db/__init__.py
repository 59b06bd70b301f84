"""Storage adapters.

Contents:
- app_db: asyncpg pool for the PostgreSQL application database
- memory: in-process store implementing every storage protocol
"""

from .app_db import AppDatabase
from .memory import InMemoryStore

__all__ = ["AppDatabase", "InMemoryStore"]
