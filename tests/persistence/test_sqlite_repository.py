"""
Tests for SQLiteRepository against a real SQLite file in tmp_path.
"""

import json
import sqlite3

import pytest

from persistence.sqlite_repository import ENTITY_TABLES, SQLiteRepository
from reconciliation.models import SyncStatus
from reconciliation.ports import Persistence


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "replica.db")


@pytest.fixture
def repository(db_path):
    repo = SQLiteRepository(db_path)
    repo.ensure_schema()

    conn = sqlite3.connect(db_path)
    conn.executemany(
        "INSERT INTO stores (id, code, name, company_id, sync_enabled) VALUES (?, ?, ?, ?, ?)",
        [
            ("store-2", "S002", "Harbour", "ACME", 1),
            ("store-1", "S001", None, "ACME", 1),
            ("store-3", "S003", "Closed", "ACME", 0),
        ],
    )
    conn.executemany(
        "INSERT INTO people (id, store_id, external_id, virtual_space_id, sync_status, data) "
        "VALUES (?, ?, ?, ?, ?, ?)",
        [
            (f"p-{i:03d}", "store-1", f"ext-{i}", None, "SYNCED", json.dumps({"name": f"Person {i}"}))
            for i in range(500)
        ] + [
            ("q-001", "store-1", None, None, "PENDING", None),
            ("q-002", "store-1", "ext-x", None, "FAILED", None),
            ("r-001", "store-2", "ext-r", "vs-1", "SYNCED", "not json"),
        ],
    )
    conn.commit()
    conn.close()
    return repo


def test_satisfies_persistence_port(repository):
    assert isinstance(repository, Persistence)


def test_ensure_schema_is_repeatable(db_path):
    repo = SQLiteRepository(db_path)
    repo.ensure_schema()
    repo.ensure_schema()

    conn = sqlite3.connect(db_path)
    tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    conn.close()
    assert {"stores", *ENTITY_TABLES.values()} <= tables


@pytest.mark.asyncio
async def test_lists_only_sync_enabled_stores(repository):
    stores = await repository.list_sync_enabled_stores()

    assert [s.id for s in stores] == ["store-1", "store-2"]
    assert stores[0].display_name == "S001"
    assert stores[1].display_name == "Harbour"
    assert all(s.sync_enabled for s in stores)


@pytest.mark.asyncio
async def test_local_records_capped_at_limit(repository):
    """500 SYNCED rows, limit 100: at most 100 come back."""
    records = await repository.list_synced_local_records("store-1", 100, "person")

    assert len(records) == 100
    assert records[0].id == "p-000"
    assert records[-1].id == "p-099"


@pytest.mark.asyncio
async def test_only_synced_records_returned(repository):
    records = await repository.list_synced_local_records("store-1", 1000, "person")

    assert len(records) == 500
    assert all(r.sync_status is SyncStatus.SYNCED for r in records)
    assert records[0].external_id == "ext-0"
    assert records[0].payload == {"name": "Person 0"}


@pytest.mark.asyncio
async def test_unreadable_payload_becomes_empty(repository):
    records = await repository.list_synced_local_records("store-2", 100, "person")

    assert len(records) == 1
    assert records[0].virtual_space_id == "vs-1"
    assert records[0].payload == {}


@pytest.mark.asyncio
async def test_other_entity_table_is_separate(repository):
    assert await repository.list_synced_local_records("store-1", 100, "space") == []


@pytest.mark.asyncio
async def test_unknown_entity_type_raises(repository):
    with pytest.raises(ValueError, match="Unknown entity type"):
        await repository.list_synced_local_records("store-1", 100, "shelf")


@pytest.mark.asyncio
async def test_get_store(repository):
    store = await repository.get_store("store-2")
    assert store.code == "S002"
    assert await repository.get_store("missing") is None


@pytest.mark.asyncio
async def test_missing_schema_raises(db_path):
    repo = SQLiteRepository(db_path)
    with pytest.raises(sqlite3.OperationalError):
        await repo.list_sync_enabled_stores()
