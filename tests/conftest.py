"""
Shared pytest fixtures for the drift reconciliation tests.

Provides reusable fixtures for:
- Stores and local entity records
- Async collaborator mocks (persistence, vendor gateway, re-sync queue)
- Remote article payloads in the shapes the vendor platform returns

Collaborators are unittest.mock.AsyncMock instances so tests run without a
database, network or queue directory unless they ask for one.
"""

import pytest
from unittest.mock import AsyncMock

from reconciliation.models import LocalEntityRecord, Store, SyncStatus


# =============================================================================
# Domain Fixtures
# =============================================================================

@pytest.fixture
def store():
    """Single sync-enabled store with a display name."""
    return Store(id="store-1", code="S001", name="Main Street", company_id="ACME")


@pytest.fixture
def stores():
    """Three sync-enabled stores; the last one has no name."""
    return [
        Store(id="store-1", code="S001", name="Main Street"),
        Store(id="store-2", code="S002", name="Harbour"),
        Store(id="store-3", code="S003"),
    ]


@pytest.fixture
def make_records():
    """
    Factory for local SYNCED records linked by external_id.

    Usage:
        records = make_records(3)                 # ids p-0..p-2, external ext-0..ext-2
        records = make_records(2, prefix="room")  # ids room-0, room-1
    """
    def _make(count, prefix="p"):
        return [
            LocalEntityRecord(
                id=f"{prefix}-{i}",
                external_id=f"ext-{i}",
                sync_status=SyncStatus.SYNCED,
                payload={"name": f"Entity {i}"},
            )
            for i in range(count)
        ]
    return _make


@pytest.fixture
def make_articles():
    """
    Factory for remote article dicts keyed by articleId.

    Usage:
        articles = make_articles(["ext-0", "ext-1"])
    """
    def _make(keys, field="articleId"):
        return [{field: key, "articleName": f"Article {key}"} for key in keys]
    return _make


# =============================================================================
# Collaborator Mocks
# =============================================================================

@pytest.fixture
def mock_persistence(stores):
    """
    AsyncMock Persistence port.

    Provides:
        - list_sync_enabled_stores(): returns the ``stores`` fixture
        - list_synced_local_records(): returns [] by default
    """
    persistence = AsyncMock()
    persistence.list_sync_enabled_stores.return_value = list(stores)
    persistence.list_synced_local_records.return_value = []
    return persistence


@pytest.fixture
def mock_gateway():
    """AsyncMock RemoteGateway port; fetch_remote_records() returns [] by default."""
    gateway = AsyncMock()
    gateway.fetch_remote_records.return_value = []
    return gateway


@pytest.fixture
def mock_queue():
    """AsyncMock ResyncQueue port; enqueue() succeeds by default."""
    queue = AsyncMock()
    queue.enqueue.return_value = None
    return queue
