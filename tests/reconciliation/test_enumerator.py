"""Tests for StoreEnumerator."""

import pytest

from reconciliation.enumerator import StoreEnumerator
from reconciliation.models import Store


@pytest.mark.asyncio
async def test_lists_enabled_stores_in_order(mock_persistence, stores):
    result = await StoreEnumerator(mock_persistence).list()

    assert result == stores
    mock_persistence.list_sync_enabled_stores.assert_awaited_once()


@pytest.mark.asyncio
async def test_drops_disabled_stores(mock_persistence):
    mock_persistence.list_sync_enabled_stores.return_value = [
        Store(id="a", code="A"),
        Store(id="b", code="B", sync_enabled=False),
    ]

    result = await StoreEnumerator(mock_persistence).list()

    assert [s.id for s in result] == ["a"]


@pytest.mark.asyncio
async def test_empty_store_list(mock_persistence):
    mock_persistence.list_sync_enabled_stores.return_value = []
    assert await StoreEnumerator(mock_persistence).list() == []


@pytest.mark.asyncio
async def test_failure_propagates(mock_persistence):
    mock_persistence.list_sync_enabled_stores.side_effect = RuntimeError("replica unavailable")

    with pytest.raises(RuntimeError, match="replica unavailable"):
        await StoreEnumerator(mock_persistence).list()
