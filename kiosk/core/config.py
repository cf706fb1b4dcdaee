"""
Centralised application settings loaded from environment / .env file.

Uses pydantic-settings so every value can be overridden via env vars
or the .env file at the project root.
"""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings

_DEFAULT_SECRET = "CHANGE-ME-TO-A-RANDOM-64-CHAR-HEX-STRING-IN-PRODUCTION"


class Settings(BaseSettings):
    # ── Project ──────────────────────────────────────────────────────
    PROJECT_NAME: str = "Guest Check-in Kiosk"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development | production | testing
    API_PREFIX: str = "/api"

    # ── Database (SQLite via aiosqlite by default, PostgreSQL via asyncpg) ──
    DATABASE_URL: str = "sqlite+aiosqlite:///./kiosk.db"

    # ── JWT ──────────────────────────────────────────────────────────
    SECRET_KEY: str = _DEFAULT_SECRET
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    BCRYPT_ROUNDS: int = 12
    COOKIE_SECURE: bool = False  # Set True in HTTPS production

    # ── CORS ─────────────────────────────────────────────────────────
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors(cls, v: object) -> list[str]:
        if isinstance(v, str) and not v.lstrip().startswith("["):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v  # type: ignore[return-value]

    # ── Logging ──────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    # ── Default admin (seeded on first startup) ─────────────────────
    FIRST_ADMIN_USERNAME: str = "admin"
    FIRST_ADMIN_PASSWORD: str = "ChangeMe123"

    # ── Photo uploads ────────────────────────────────────────────────
    UPLOAD_DIR: str = "public/uploads"
    MAX_PHOTO_BYTES: int = 5 * 1024 * 1024

    # ── Email (SMTP) ─────────────────────────────────────────────────
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_SECURE: bool = False  # implicit TLS (port 465)
    SMTP_STARTTLS: bool = True
    FROM_EMAIL: str | None = None

    # ── Slack / Teams ────────────────────────────────────────────────
    SLACK_BOT_TOKEN: str | None = None
    SLACK_DEFAULT_CHANNEL: str | None = None
    SLACK_API_URL: str = "https://slack.com/api"
    TEAMS_WEBHOOK_URL: str | None = None

    NOTIFY_TIMEOUT_SECONDS: float = 5.0

    # ── Rate limiting (slowapi, per client IP) ──────────────────────
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "100/15minutes"
    RATE_LIMIT_AUTH: str = "5/minute"
    RATE_LIMIT_NOTIFY: str = "10/minute"
    RATE_LIMIT_UPLOAD: str = "20/hour"

    # ── Access policy ────────────────────────────────────────────────
    ACTIVITY_READS_REQUIRE_ADMIN: bool = True

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def email_configured(self) -> bool:
        return bool(self.SMTP_HOST and (self.FROM_EMAIL or self.SMTP_USER))

    @property
    def slack_configured(self) -> bool:
        return bool(self.SLACK_BOT_TOKEN)

    @property
    def teams_configured(self) -> bool:
        return bool(self.TEAMS_WEBHOOK_URL)


settings = Settings()

if settings.SECRET_KEY == _DEFAULT_SECRET:
    import logging

    logging.getLogger("kiosk.core.config").warning(
        "⚠️  WARNING: You are running with the default INSECURE Secret Key! "
        "Update the SECRET_KEY in your .env file immediately."
    )
