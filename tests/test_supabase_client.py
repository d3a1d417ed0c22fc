"""
Tests for the Supabase client factory.
"""

import base64
import json
from unittest.mock import MagicMock, patch

import pytest

from shopboost.core.config import Settings
from shopboost.core.errors import ConfigError
from shopboost.db.supabase_client import (
    _verify_service_role,
    create_supabase_client,
    get_supabase_credentials,
)


def make_jwt(claims: dict) -> str:
    def segment(payload: dict) -> str:
        raw = json.dumps(payload).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    return f"{segment({'alg': 'HS256'})}.{segment(claims)}.signature"


SERVICE_KEY = make_jwt({"role": "service_role"})


def make_settings(**overrides) -> Settings:
    values = {
        "SUPABASE_URL": "https://example.supabase.co",
        "SUPABASE_SERVICE_ROLE_KEY": SERVICE_KEY,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestCredentials:
    """Tests for get_supabase_credentials."""

    def test_returns_url_and_key(self):
        assert get_supabase_credentials(make_settings()) == (
            "https://example.supabase.co",
            SERVICE_KEY,
        )

    def test_missing_credentials_raise(self):
        with pytest.raises(ConfigError, match="SUPABASE_URL"):
            get_supabase_credentials(make_settings(SUPABASE_URL=""))


class TestVerifyServiceRole:
    """Tests for _verify_service_role."""

    def test_accepts_service_role(self):
        _verify_service_role(SERVICE_KEY)

    def test_rejects_anon_key(self):
        with pytest.raises(ConfigError, match="anon"):
            _verify_service_role(make_jwt({"role": "anon"}))

    @pytest.mark.parametrize("token", ["not-a-jwt", "a.!!!.c"])
    def test_rejects_garbage(self, token):
        with pytest.raises(ConfigError, match="Invalid"):
            _verify_service_role(token)


class TestCreateSupabaseClient:
    """Tests for create_supabase_client."""

    def test_builds_client_with_injected_http_client(self):
        with patch("shopboost.db.supabase_client.create_client", return_value=MagicMock()) as mock_create:
            client = create_supabase_client(make_settings())

        assert client is mock_create.return_value
        args, kwargs = mock_create.call_args
        assert args == ("https://example.supabase.co", SERVICE_KEY)
        assert kwargs["options"].httpx_client is not None

    def test_refuses_non_service_key(self):
        with patch("shopboost.db.supabase_client.create_client") as mock_create:
            with pytest.raises(ConfigError):
                create_supabase_client(make_settings(SUPABASE_SERVICE_ROLE_KEY=make_jwt({"role": "anon"})))

        mock_create.assert_not_called()
