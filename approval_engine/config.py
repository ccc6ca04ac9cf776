"""
Engine configuration.

Everything comes from the environment (or a local .env file):
the store location, how long a store call may block, and how
hard the audit emitter tries before escalating.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Settings for one engine instance."""

    # Application
    APP_NAME: str = "Approval & Verification Engine"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql://localhost:5432/approval_engine"
    )

    # Upper bound on any single store read or write. Applied as the
    # SQLite busy timeout or the PostgreSQL statement_timeout.
    STORE_TIMEOUT_SECONDS: float = float(
        os.getenv("STORE_TIMEOUT_SECONDS", "5")
    )

    # Audit appends are retried until durable, up to this many attempts
    AUDIT_RETRY_ATTEMPTS: int = int(os.getenv("AUDIT_RETRY_ATTEMPTS", "5"))
    AUDIT_RETRY_WAIT_SECONDS: float = float(
        os.getenv("AUDIT_RETRY_WAIT_SECONDS", "0.2")
    )

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings, built on first use."""
    return Settings()
