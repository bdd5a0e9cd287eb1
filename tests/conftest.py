"""
Shared pytest fixtures and configuration for pitpager tests.

This module provides common fixtures used across unit and integration tests,
including the in-memory document store, a mocked opensearch-py client and
sample cursors.
"""

import os
from typing import Any
from unittest.mock import MagicMock

import pytest

from pitpager import (
    LONG_MIN,
    ConnectionOptions,
    Cursor,
    CursorField,
    CursorRepository,
    RepositoryOptions,
    RetryingExecutor,
    build_client,
)
from tests.helpers.fake_store import FakeDocumentStore


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests with mocked dependencies")
    config.addinivalue_line("markers", "integration: Integration tests against OpenSearch")


@pytest.fixture
def store() -> FakeDocumentStore:
    """An empty in-memory document store."""
    return FakeDocumentStore()


@pytest.fixture
def sleeps() -> list[float]:
    """Collects the pauses requested by the retrying executor."""
    return []


@pytest.fixture
def executor(sleeps) -> RetryingExecutor:
    """Retrying executor that records its pauses instead of sleeping."""
    return RetryingExecutor(max_attempts=3, backoff_seconds=0.5, sleep=sleeps.append)


@pytest.fixture
def repository(store, executor) -> CursorRepository:
    """Repository paging two documents at a time over the fake store."""
    return CursorRepository(store, RepositoryOptions(page_size=2), executor)


@pytest.fixture
def mock_client():
    """
    Creates a fully mocked opensearch-py client.

    This fixture provides a mock client for unit tests that don't need
    a real cluster.
    """
    client = MagicMock()
    client.create_pit.return_value = {"pit_id": "pit-from-client"}
    client.search.return_value = {"hits": {"hits": []}}
    return client


@pytest.fixture
def orders_cursor() -> Cursor:
    """Initial single-field cursor on the orders index."""
    return Cursor.of("orders", [CursorField(field="id", initial_value=LONG_MIN)])


@pytest.fixture
def events_cursor() -> Cursor:
    """Initial two-field cursor: timestamp first, id as tie-breaker."""
    return Cursor.of(
        "events",
        [
            CursorField(field="ts", initial_value=LONG_MIN),
            CursorField(field="id", initial_value=LONG_MIN),
        ],
    )


@pytest.fixture
def orders_data() -> list[dict[str, Any]]:
    """Seven orders with unique ids, stored out of order."""
    return [{"id": i, "total": i * 10} for i in (4, 1, 7, 3, 2, 6, 5)]


@pytest.fixture
def events_data() -> list[dict[str, Any]]:
    """Events with duplicate timestamps and unique (ts, id) keys."""
    return [
        {"ts": 100, "id": 3, "kind": "click"},
        {"ts": 100, "id": 1, "kind": "view"},
        {"ts": 200, "id": 2, "kind": "view"},
        {"ts": 100, "id": 2, "kind": "click"},
        {"ts": 300, "id": 1, "kind": "buy"},
        {"ts": 200, "id": 1, "kind": "click"},
        {"ts": 300, "id": 2, "kind": "view"},
    ]


@pytest.fixture(scope="session")
def opensearch_endpoint() -> str:
    """Get the OpenSearch endpoint URL from environment or default."""
    return os.getenv("OPENSEARCH_ENDPOINT", "http://localhost:9200")


@pytest.fixture(scope="session")
def opensearch_client(opensearch_endpoint: str):
    """
    Creates an opensearch-py client connected to a local cluster.

    Integration tests are skipped when the cluster cannot be reached.
    """
    client = build_client(ConnectionOptions(hosts=[opensearch_endpoint], timeout=5.0))
    if not client.ping():
        pytest.skip(f"OpenSearch not reachable at {opensearch_endpoint}")
    return client


@pytest.fixture
def clean_index(opensearch_client, request):
    """
    Creates a fresh index for each test and deletes it afterwards.

    Usage:
        @pytest.mark.parametrize("clean_index", ["test_orders"], indirect=True)
        def test_something(clean_index):
            ...
    """
    index = getattr(request, "param", "pitpager_test")
    opensearch_client.indices.delete(index=index, ignore_unavailable=True)
    opensearch_client.indices.create(
        index=index,
        body={"mappings": {"properties": {"ts": {"type": "long"}, "id": {"type": "long"}}}},
    )

    yield index

    opensearch_client.indices.delete(index=index, ignore_unavailable=True)
