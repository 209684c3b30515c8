"""
Settings for the Call Result Logger.

Everything defaults to empty so the server starts with no credentials at
all. Each integration (Vapi phone calls, 3CX hang-up, the Google sheet)
reports its own missing keys when first used.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment selector."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """
    Environment variables win over `.env.local`. `.env.example` lists
    every key; secrets stay out of version control.
    """

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Environment ──────────────────────────────────────────────
    environment: Environment = Environment.DEVELOPMENT

    # ── Vapi ─────────────────────────────────────────────────────
    vapi_public_key: str = Field(default="", description="Vapi public key handed to the browser SDK")
    vapi_private_key: str = Field(default="", description="Vapi private key for server-side phone calls")
    vapi_assistant_id: str = Field(default="", description="Vapi assistant used for every call")
    vapi_phone_number_id: str = Field(default="", description="Vapi phone number used for outbound calls")
    vapi_api_url: str = Field(default="https://api.vapi.ai", description="Vapi REST API base URL")

    # ── 3CX Call Control ─────────────────────────────────────────
    cx_api_url: str = Field(default="", description="3CX PBX base URL")
    cx_username: str = Field(default="", description="3CX API username")
    cx_password: str = Field(default="", description="3CX API password")

    # ── Google Sheets ────────────────────────────────────────────
    google_credentials: str = Field(default="", description="Service-account JSON (inline)")
    google_sheet_id: str = Field(default="", description="Spreadsheet receiving call results")
    google_sheet_range: str = Field(default="Sheet1!A1:M", description="Append range, 13 columns")

    # ── Active Call Registry ─────────────────────────────────────
    redis_url: str = Field(default="", description="Redis URL; empty keeps the registry in memory")

    # ── HTTP ─────────────────────────────────────────────────────
    http_timeout_seconds: Optional[float] = Field(
        default=None, description="Outbound HTTP timeout; unset waits indefinitely"
    )
    cors_allow_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")

    # ── Live Viewers ─────────────────────────────────────────────
    live_send_timeout_seconds: float = Field(
        default=5.0, gt=0, description="Per-viewer WebSocket send timeout; slower viewers are dropped"
    )

    # ── Server ───────────────────────────────────────────────────
    port: int = Field(default=3000, description="Port for `python -m call_logger.api_server`")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Root log level")

    # ── Derived helpers ──────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def phone_calls_configured(self) -> bool:
        return bool(self.vapi_private_key and self.vapi_assistant_id and self.vapi_phone_number_id)

    @property
    def sheets_configured(self) -> bool:
        return bool(self.google_credentials and self.google_sheet_id)

    @property
    def pbx_configured(self) -> bool:
        return bool(self.cx_api_url and self.cx_username and self.cx_password)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings read once per process."""
    return Settings()
