"""
tests/conftest.py

Pytest configuration and shared fixtures for the Shop Boost importer suite.

Nothing here talks to Supabase: the importer is exercised against the
in-memory collaborators in tests/fakes.py, and the Supabase adapters are
tested with unittest.mock.
"""

from __future__ import annotations

import os
from typing import Generator

import pytest

from shopboost.core.config import Settings, reset_settings
from tests.fakes import INTAKE_ID, SHOP_ID, FakeFileStorage, FakeShopStore


def pytest_configure(config: pytest.Config) -> None:
    """Default to dev mode so no test can pick up production credentials."""
    if "SUPABASE_MODE" not in os.environ:
        os.environ["SUPABASE_MODE"] = "dev"


@pytest.fixture(autouse=True)
def _fresh_settings() -> Generator[None, None, None]:
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, SUPABASE_MODE="dev", ENVIRONMENT="dev")


@pytest.fixture
def store() -> FakeShopStore:
    fake = FakeShopStore()
    fake.add_intake(
        customers_file_path="intake-1/customers.csv",
        vehicles_file_path="intake-1/vehicles.csv",
        parts_file_path="intake-1/parts.csv",
        history_file_path="intake-1/history.csv",
        staff_file_path="intake-1/staff.csv",
        intake_basics={"contactName": "Dana"},
    )
    return fake


@pytest.fixture
def storage() -> FakeFileStorage:
    return FakeFileStorage()


@pytest.fixture
def ids() -> tuple[str, str]:
    return SHOP_ID, INTAKE_ID
