"""Shared test fixtures and configuration."""
import os

# Keep module imports independent of any local .env or deployment settings
os.environ.setdefault("ACCESS_SOURCE", "admin_api")
os.environ.setdefault("AUTH_BASE_URL", "https://auth.example.test")

import pytest


@pytest.fixture
def anyio_backend() -> str:
    # The code under test is built on asyncio primitives
    return "asyncio"
