"""Application settings loaded from environment."""

from __future__ import annotations

import os


class Settings:
    """Application settings loaded from environment."""

    def __init__(self) -> None:
        """Load settings from environment variables."""
        self.database_url = os.getenv("DATABASE_URL", "postgresql://localhost:5432/teamspace")
        self.storage_backend = os.getenv("STORAGE_BACKEND", "postgres").lower()

        # Session settings
        self.jwt_secret_key = os.getenv("JWT_SECRET_KEY", "dev-secret-change-in-production")
        self.jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.access_token_expire_minutes = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15"))
        self.refresh_token_expire_days = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))

        self.bcrypt_rounds = int(os.getenv("BCRYPT_ROUNDS", "12"))


settings = Settings()
