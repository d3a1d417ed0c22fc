from __future__ import annotations

import base64
import json
import logging

import httpx
from postgrest.constants import DEFAULT_POSTGREST_CLIENT_TIMEOUT
from supabase import Client, ClientOptions, create_client

from shopboost.core.config import Settings, get_settings
from shopboost.core.errors import ConfigError

logger = logging.getLogger(__name__)

_HTTPX_TIMEOUT = DEFAULT_POSTGREST_CLIENT_TIMEOUT


def _build_supabase_http_client() -> httpx.Client:
    """Return an httpx client configured for Supabase REST calls."""

    timeout = httpx.Timeout(_HTTPX_TIMEOUT)
    return httpx.Client(timeout=timeout)


def _client_options() -> ClientOptions:
    """Construct ClientOptions that avoid deprecated timeout/verify kwargs."""

    options = ClientOptions()
    options.httpx_client = _build_supabase_http_client()
    return options


def get_supabase_credentials(settings: Settings | None = None) -> tuple[str, str]:
    settings = settings or get_settings()
    missing = settings.missing_supabase_credentials()
    if missing:
        raise ConfigError(
            f"Missing Supabase credential(s) for '{settings.supabase_mode}' environment: "
            + ", ".join(missing)
        )
    return settings.SUPABASE_URL.strip(), settings.SUPABASE_SERVICE_ROLE_KEY.strip()


def _verify_service_role(jwt_token: str) -> None:
    # The importer writes across tenant rows; anon keys would be silently filtered by RLS.
    try:
        segments = jwt_token.split(".")
        if len(segments) < 2:
            raise ValueError("missing JWT payload")
        payload_segment = segments[1]
        padding = "=" * (-len(payload_segment) % 4)
        decoded = base64.urlsafe_b64decode(payload_segment + padding)
        claims = json.loads(decoded)
    except Exception as exc:
        raise ConfigError("Invalid SUPABASE_SERVICE_ROLE_KEY JWT") from exc

    role = claims.get("role")
    if role != "service_role":
        raise ConfigError(f"Service role key has unexpected role: {role}")


def create_supabase_client(settings: Settings | None = None) -> Client:
    settings = settings or get_settings()
    url, key = get_supabase_credentials(settings)
    _verify_service_role(key)
    client = create_client(url, key, options=_client_options())
    logger.info("Initialized Supabase client for env='%s'", settings.supabase_mode)
    return client
