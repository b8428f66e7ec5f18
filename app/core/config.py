# app/core/config.py
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

BackendMode = Literal["auto", "supabase", "demo"]


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Backend selection:
      - BACKEND_MODE=supabase  : Postgres (DATABASE_URL) + Supabase Storage
      - BACKEND_MODE=demo      : in-memory repositories seeded with demo data
      - BACKEND_MODE=auto      : supabase if DATABASE_URL and Supabase
                                 credentials are present, demo otherwise

    Required for supabase mode (.env):
      - SUPABASE_URL
      - SUPABASE_SERVICE_ROLE_KEY (storage uploads and signed URLs)
      - DATABASE_URL (Supabase Postgres connection string)

    Optional:
      - TELEGRAM_BOT_TOKEN / TELEGRAM_CHAT_ID (operator alerts)
      - OPERATOR_WEBHOOK_URL (alternative operator alert endpoint)
      - SMTP_* (customer delivery emails)
    """

    PROJECT_NAME: str = "Pop Playground Books API"
    API_V1_STR: str = "/api/v1"
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Backend / DB config
    BACKEND_MODE: BackendMode = "auto"
    DATABASE_URL: str | None = None
    SUPABASE_URL: str | None = None

    # Service role key bypasses RLS (backend only)
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    # Storage buckets
    SLIP_BUCKET: str = "order-slips"
    COVER_BUCKET: str = "book-covers"
    PDF_BUCKET: str = "book-pdfs"
    SLIP_URL_TTL_SECONDS: int = 60 * 60 * 24 * 7
    PDF_URL_TTL_SECONDS: int = 60 * 60 * 24 * 7
    MAX_SLIP_BYTES: int = 10 * 1024 * 1024
    MAX_COVER_BYTES: int = 5 * 1024 * 1024
    MAX_PDF_BYTES: int = 50 * 1024 * 1024

    # Payment
    PROMPTPAY_ID: str = "0812345678"

    # Operator alerts
    TELEGRAM_BOT_TOKEN: str | None = None
    TELEGRAM_CHAT_ID: str | None = None
    TELEGRAM_API_BASE: str = "https://api.telegram.org"
    TELEGRAM_WEBHOOK_SECRET: str | None = None
    OPERATOR_WEBHOOK_URL: str | None = None
    NOTIFY_TIMEOUT_SECONDS: float = 10.0

    # Customer emails (SMTP)
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM_EMAIL: str | None = None
    SMTP_FROM_NAME: str = "Pop Playground Books"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False
    STORE_NAME: str = "Pop Playground Books"

    # Admin login (simple credential check)
    ADMIN_EMAIL: str | None = None
    ADMIN_PASSWORD: str | None = None
    # Unset in supabase mode => admin tokens are neither issued nor accepted
    ADMIN_JWT_SECRET: str | None = None
    ADMIN_JWT_ALG: str = "HS256"
    ADMIN_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # Cart persistence namespace
    CART_NAMESPACE: str = "pop-playground-cart"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def supabase_configured(self) -> bool:
        return bool(
            self.DATABASE_URL and self.SUPABASE_URL and self.SUPABASE_SERVICE_ROLE_KEY
        )

    @property
    def resolved_backend_mode(self) -> Literal["supabase", "demo"]:
        """
        Resolve BACKEND_MODE=auto into a concrete mode.
        """
        if self.BACKEND_MODE == "auto":
            return "supabase" if self.supabase_configured else "demo"
        return self.BACKEND_MODE

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_USERNAME and self.SMTP_PASSWORD)

    @property
    def telegram_configured(self) -> bool:
        return bool(self.TELEGRAM_BOT_TOKEN and self.TELEGRAM_CHAT_ID)

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    Call get_settings.cache_clear() to reload.
    """
    return Settings()
