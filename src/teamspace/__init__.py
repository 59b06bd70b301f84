"""teamspace - multi-tenant collaboration backend."""

__version__ = "0.1.0"
