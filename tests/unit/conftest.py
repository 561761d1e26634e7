"""
Unit test conftest.py - Component-specific fixtures.

This module provides fixtures specific to unit testing:
- Session, cache and event bus instances
- A request pipeline over the fake backend
- Metadata documents for schema and relationship tests
"""

import pytest

from dynamic_crud_client.cache import MemoryCacheBackend, ResponseCache
from dynamic_crud_client.config import CacheConfig
from dynamic_crud_client.events import EventBus
from dynamic_crud_client.pipeline import RequestPipeline
from dynamic_crud_client.session import SessionManager

# ==================== CORE FIXTURES ====================


class FakeClock:
    """Settable epoch clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session() -> SessionManager:
    """Empty session manager."""
    return SessionManager().init()


@pytest.fixture
def cache(clock) -> ResponseCache:
    """In-memory response cache on the fake clock."""
    return ResponseCache(backend=MemoryCacheBackend(), config=CacheConfig(), clock=clock)


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def pipeline(session, cache, events, app_config, http_client) -> RequestPipeline:
    """Request pipeline over the fake backend (real clock for token expiry)."""
    return RequestPipeline(session, cache, config=app_config, events=events, client=http_client)


@pytest.fixture
def signed_in_pipeline(pipeline, session, backend) -> RequestPipeline:
    """Pipeline whose session holds a valid token pair."""
    access, refresh = backend.issue_tokens("alice")
    session.init(access, refresh, identity="alice")
    return pipeline


# ==================== METADATA FIXTURES ====================


@pytest.fixture
def shop_metadata() -> dict:
    """Metadata document for a small shop schema."""
    return {
        "tables": [
            {
                "name": "customers",
                "columns": [
                    {"name": "id", "type": "uuid", "constraints": ["primary key", "not null"]},
                    {"name": "name", "type": "varchar", "constraints": ["not null"]},
                    {"name": "email", "type": "varchar", "constraints": []},
                    {"name": "created_at", "type": "timestamptz", "constraints": ["not null"]},
                ],
                "relationships": [],
            },
            {
                "name": "orders",
                "columns": [
                    {"name": "id", "type": "uuid", "constraints": ["primary key", "not null"]},
                    {"name": "customer_id", "type": "uuid", "constraints": ["not null"]},
                    {"name": "total", "type": "numeric", "constraints": ["not null"]},
                    {"name": "notes", "type": "text", "constraints": []},
                    {"name": "paid", "type": "boolean", "constraints": []},
                    {"name": "created_at", "type": "timestamptz", "constraints": ["not null"]},
                    {"name": "updated_at", "type": "timestamptz", "constraints": ["not null"]},
                ],
                "relationships": [],
            },
            {
                "name": "reviews",
                "columns": [
                    {"name": "id", "type": "uuid", "constraints": ["primary key"]},
                    {"name": "written_by", "type": "uuid", "constraints": []},
                    {"name": "order_ref", "type": "uuid", "constraints": []},
                ],
                "relationships": [
                    {
                        "targetTable": "customers",
                        "type": "many-to-one",
                        "sourceColumn": "written_by",
                        "targetColumn": "id",
                    },
                    {"targetTable": "orders", "type": "many-to-one"},
                ],
            },
            {
                "name": "customers_archive",
                "columns": [{"name": "id", "type": "uuid", "constraints": ["primary key"]}],
                "relationships": [
                    {
                        "targetTable": "orders",
                        "type": "one-to-many",
                        "sourceColumn": "legacy_ref",
                        "targetColumn": "id",
                    }
                ],
            },
        ]
    }


@pytest.fixture
def accounts_metadata() -> dict:
    """Metadata for a table whose primary key is not called `id`."""
    return {
        "tables": [
            {
                "name": "accounts",
                "columns": [
                    {"name": "account_id", "type": "uuid", "constraints": ["PRIMARY KEY"]},
                    {"name": "owner_id", "type": "uuid", "constraints": []},
                ],
            }
        ]
    }
