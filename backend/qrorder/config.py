"""
Runtime configuration read from environment variables.

Values are read at call time so tests and subprocesses can override them
without re-importing the application.
"""

import os


def get_environment() -> str:
    return os.getenv("ENVIRONMENT", "dev").lower()


def get_storage_backend() -> str:
    """Storage backend name: "inmemory" (default), "sqlalchemy" or "sqlite"."""
    return os.getenv("STORAGE_BACKEND", "inmemory").lower()


def get_database_url() -> str:
    return os.getenv("APP_DATABASE_URL", "sqlite:///qrorder.db")


def use_alembic() -> bool:
    return os.getenv("USE_ALEMBIC", "false").lower() == "true"


def get_jwt_secret() -> str:
    return os.getenv("JWT_SECRET_KEY", "dev-secret-key")


def get_token_expire_minutes() -> int:
    return int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480"))


def get_public_base_url() -> str:
    """Base URL of the diner-facing frontend, used to build QR links."""
    return os.getenv("PUBLIC_BASE_URL", "http://localhost:3000").rstrip("/")


def get_cors_origins() -> list[str]:
    raw = os.getenv("CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()
