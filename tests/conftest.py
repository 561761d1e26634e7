"""
Shared test fixtures.

This module provides the fake backend, an httpx client wired to it through
MockTransport, isolated configuration and a fully assembled client.
"""

import httpx
import pytest
import pytest_asyncio

from dynamic_crud_client.client import DynamicCrudClient
from dynamic_crud_client.config import ApiConfig, AppConfig, reset_config, set_config
from dynamic_crud_client.utils.logger import reset_logging
from tests.fixtures.fake_backend import TEST_BASE_URL, FakeBackend


@pytest.fixture(autouse=True)
def isolated_config():
    """Give every test a fresh global configuration and logger."""
    reset_config()
    reset_logging()
    yield
    reset_config()
    reset_logging()


@pytest.fixture
def app_config() -> AppConfig:
    """Configuration pointing at the fake backend."""
    config = AppConfig(environment="test", api=ApiConfig(base_url=TEST_BASE_URL))
    set_config(config)
    return config


@pytest.fixture
def backend() -> FakeBackend:
    """Fresh fake backend for each test."""
    return FakeBackend()


@pytest_asyncio.fixture
async def http_client(backend: FakeBackend):
    """Async httpx client served by the fake backend."""
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(backend.handler), base_url=TEST_BASE_URL
    )
    yield client
    await client.aclose()


@pytest.fixture
def crud_client(app_config: AppConfig, http_client: httpx.AsyncClient) -> DynamicCrudClient:
    """Assembled client without a session."""
    return DynamicCrudClient(config=app_config, http_client=http_client)


@pytest.fixture
def signed_in_client(crud_client: DynamicCrudClient, backend: FakeBackend) -> DynamicCrudClient:
    """Client holding a valid token pair for user alice."""
    access, refresh = backend.issue_tokens("alice")
    return crud_client.init(access, refresh, identity="alice")
