"""
Shop Boost Importer - Unified Configuration

Single source of truth for importer configuration. Both the CLI trigger and
library callers (API handlers, workers) load settings through this module.

Environment variables:
----------------------
Supabase connectivity:
  SUPABASE_URL                  - Supabase project REST URL (https://xxx.supabase.co)
  SUPABASE_SERVICE_ROLE_KEY     - Service role JWT (server-side only)
  SUPABASE_MODE                 - dev | prod (default: dev)

Runtime:
  ENVIRONMENT                   - dev | staging | prod (default: dev)
  LOG_LEVEL                     - DEBUG | INFO | WARNING | ERROR (default: INFO)
  LOG_JSON                      - force JSON log output (default: on in prod)

Import behaviour:
  SHOP_IMPORT_BUCKET            - Storage bucket holding uploaded files (default: shop-imports)
  IMPORT_LOOKUP_LIMIT           - Row cap when pre-loading natural-key lookups (default: 5000)
  IMPORT_RESUME_ENABLED         - Persist per-entity row watermarks and skip on restart
  IMPORT_WATERMARK_FLUSH_EVERY  - Rows between watermark writes (default: 1)
  MAX_ROW_ISSUES                - Cap on row issues kept in the run summary (default: 200)

Set ENV_FILE to choose the env file (defaults to .env).

Usage:
    from shopboost.core.config import get_settings

    settings = get_settings()
    print(settings.SHOP_IMPORT_BUCKET)
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Keys whose values must never contain stray whitespace or newlines
_CREDENTIAL_KEYS = {"SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY"}


class Settings(BaseSettings):
    """
    Importer settings loaded from environment variables with env-file fallback.

    Credentials default to empty so the pure import pipeline can run against
    injected collaborators; the Supabase client factory enforces them.
    """

    model_config = SettingsConfigDict(
        env_file=os.environ.get("ENV_FILE", ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # =========================================================================
    # SUPABASE
    # =========================================================================

    SUPABASE_URL: str = Field(default="", description="Supabase project REST URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(default="", description="Supabase service role JWT key")
    SUPABASE_MODE: str = Field(default="dev", description="Supabase mode (dev/prod)")

    # =========================================================================
    # ENVIRONMENT CONTROL
    # =========================================================================

    ENVIRONMENT: Literal["dev", "staging", "prod"] = Field(default="dev")
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    LOG_JSON: bool | None = Field(
        default=None,
        description="Force JSON log output; defaults to on in prod",
    )

    # =========================================================================
    # IMPORT BEHAVIOUR
    # =========================================================================

    SHOP_IMPORT_BUCKET: str = Field(
        default="shop-imports",
        description="Supabase Storage bucket holding onboarding uploads",
    )
    IMPORT_LOOKUP_LIMIT: int = Field(
        default=5000,
        gt=0,
        description="Row cap for natural-key lookup preloads",
    )
    IMPORT_RESUME_ENABLED: bool = Field(
        default=False,
        description="Persist per-entity row watermarks and resume after them",
    )
    IMPORT_WATERMARK_FLUSH_EVERY: int = Field(default=1, ge=1)
    MAX_ROW_ISSUES: int = Field(
        default=200,
        ge=0,
        description="Maximum row issues kept on the run summary",
    )

    # =========================================================================
    # VALIDATION & NORMALIZATION
    # =========================================================================

    @model_validator(mode="before")
    @classmethod
    def _normalize_values(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Strip quotes/whitespace and normalize ENVIRONMENT spellings."""
        for key, value in list(values.items()):
            if not isinstance(value, str):
                continue
            cleaned = value.strip().strip('"').strip("'").strip()
            if key.upper() in _CREDENTIAL_KEYS:
                original = cleaned
                cleaned = cleaned.replace("\n", "").replace("\r", "").replace("\t", "")
                if cleaned != original:
                    logger.warning(
                        "Sanitized %s: removed internal whitespace/newlines", key.upper()
                    )
            values[key] = cleaned

        for key in ("ENVIRONMENT", "environment"):
            if key not in values:
                continue
            raw = str(values[key]).lower().strip()
            if raw == "production":
                values[key] = "prod"
            elif raw == "development":
                values[key] = "dev"
            elif raw not in ("dev", "staging", "prod"):
                raise ValueError(
                    f"ENVIRONMENT='{raw}' is invalid. Must be one of: dev, staging, prod"
                )
            else:
                values[key] = raw

        return values

    # =========================================================================
    # DERIVED PROPERTIES
    # =========================================================================

    @property
    def supabase_mode(self) -> Literal["dev", "prod"]:
        """Normalized Supabase mode."""
        mode = (self.SUPABASE_MODE or "dev").strip().lower()
        if mode in ("prod", "production"):
            return "prod"
        if mode not in ("dev", "demo", "development"):
            logger.warning("Unknown SUPABASE_MODE=%s; defaulting to dev", self.SUPABASE_MODE)
        return "dev"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "prod"

    @property
    def json_logs(self) -> bool:
        if self.LOG_JSON is not None:
            return self.LOG_JSON
        return self.is_production

    def missing_supabase_credentials(self) -> list[str]:
        """Names of Supabase credentials that are not configured."""
        return [
            name
            for name, value in {
                "SUPABASE_URL": self.SUPABASE_URL,
                "SUPABASE_SERVICE_ROLE_KEY": self.SUPABASE_SERVICE_ROLE_KEY,
            }.items()
            if not value
        ]


# =========================================================================
# SINGLETON & FACTORY
# =========================================================================


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


def reset_settings() -> None:
    """Clear the cached settings (for testing)."""
    get_settings.cache_clear()


def configure_logging(settings: Settings | None = None) -> None:
    """Configure application logging from settings."""
    from shopboost.core.logging import configure_structured_logging

    if settings is None:
        settings = get_settings()

    configure_structured_logging(
        level=settings.LOG_LEVEL,
        json_output=settings.json_logs,
        service_name="shopboost-importer",
    )

    # Quiet noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("hpack").setLevel(logging.WARNING)
