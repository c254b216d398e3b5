"""
DevAcademy API Configuration
Environment-driven settings, validated at startup
"""

import os
from typing import List


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Settings loaded from environment variables"""

    def __init__(self):
        # MongoDB
        self.MONGO_URL = os.getenv("MONGO_URL", "")
        self.MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "devacademy_db")

        # JWT (tokens are issued by the auth service, only verified here)
        self.JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

        # Frontend / public URLs
        self.FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
        self.PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")

        # Outbound email provider
        self.EMAIL_API_URL = os.getenv("EMAIL_API_URL", "")
        self.EMAIL_API_KEY = os.getenv("EMAIL_API_KEY", "")
        self.EMAIL_FROM = os.getenv("EMAIL_FROM", "DevAcademy <no-reply@devacademy.dev>")
        self.EMAIL_TIMEOUT_SECONDS = float(os.getenv("EMAIL_TIMEOUT_SECONDS", "10"))

        # Weekly digest
        self.DIGEST_ENABLED = _as_bool(os.getenv("DIGEST_ENABLED", "true"))

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.FRONTEND_URL.split(",") if origin.strip()]

    def require(self, *keys: str) -> None:
        """Fail fast on missing required variables"""
        missing = [key for key in keys if not getattr(self, key, "")]
        if missing:
            raise RuntimeError(
                f"❌ FATAL: Missing required environment variable(s): {', '.join(missing)}"
            )


settings = Settings()
