"""
SQLite-backed reader for the local entity replica.

Implements the engine's Persistence port. Queries run through plain sqlite3
on a worker thread (asyncio.to_thread) with a fresh connection per call, so
the repository is safe to share between a scheduled run and a manual check.
"""

import asyncio
import json
import sqlite3
from typing import Optional

from reconciliation.models import LocalEntityRecord, Store, SyncStatus

from shared.log import create_logger
log_debug, _, log_warn, _ = create_logger("Repository")

# Entity family -> replica table
ENTITY_TABLES = {
    'space': 'spaces',
    'person': 'people',
    'conference': 'conference_rooms',
    'list': 'lists',
}

_STORES_DDL = """
CREATE TABLE IF NOT EXISTS stores (
    id TEXT PRIMARY KEY,
    code TEXT NOT NULL,
    name TEXT,
    company_id TEXT,
    sync_enabled INTEGER NOT NULL DEFAULT 1
)
"""

_ENTITY_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    id TEXT PRIMARY KEY,
    store_id TEXT NOT NULL REFERENCES stores(id),
    external_id TEXT,
    virtual_space_id TEXT,
    sync_status TEXT NOT NULL DEFAULT 'PENDING',
    data TEXT
)
"""


def _parse_payload(raw: Optional[str], record_id: str) -> dict:
    if not raw:
        return {}
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        log_warn(f"Record {record_id} has unreadable data, using empty payload")
        return {}
    return payload if isinstance(payload, dict) else {}


class SQLiteRepository:
    """Read access to stores and synced entity records.

    Args:
        db_path: Path to the SQLite database file
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def ensure_schema(self) -> None:
        """Create the replica tables if they do not exist."""
        conn = self._connect()
        try:
            conn.execute(_STORES_DDL)
            for table in ENTITY_TABLES.values():
                conn.execute(_ENTITY_DDL.format(table=table))
            conn.commit()
        finally:
            conn.close()

    # -- Persistence port ----------------------------------------------------

    async def list_sync_enabled_stores(self) -> list[Store]:
        return await asyncio.to_thread(self._query_sync_enabled_stores)

    async def list_synced_local_records(
        self,
        store_id: str,
        limit: int,
        entity_type: str = "person"
    ) -> list[LocalEntityRecord]:
        return await asyncio.to_thread(self._query_synced_records, store_id, limit, entity_type)

    async def get_store(self, store_id: str) -> Optional[Store]:
        return await asyncio.to_thread(self._query_store, store_id)

    # -- Blocking queries ----------------------------------------------------

    def _query_sync_enabled_stores(self) -> list[Store]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT id, code, name, company_id, sync_enabled FROM stores "
                "WHERE sync_enabled = 1 ORDER BY code"
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_store(row) for row in rows]

    def _query_store(self, store_id: str) -> Optional[Store]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT id, code, name, company_id, sync_enabled FROM stores WHERE id = ?",
                (store_id,),
            ).fetchone()
        finally:
            conn.close()
        return self._row_to_store(row) if row else None

    def _query_synced_records(self, store_id: str, limit: int, entity_type: str) -> list[LocalEntityRecord]:
        table = ENTITY_TABLES.get(entity_type)
        if table is None:
            raise ValueError(f"Unknown entity type: {entity_type}")

        conn = self._connect()
        try:
            rows = conn.execute(
                f"SELECT id, external_id, virtual_space_id, sync_status, data FROM {table} "
                "WHERE store_id = ? AND sync_status = ? ORDER BY id LIMIT ?",
                (store_id, SyncStatus.SYNCED.value, limit),
            ).fetchall()
        finally:
            conn.close()

        log_debug(f"Loaded {len(rows)} synced {entity_type} records", store_id=store_id)
        return [
            LocalEntityRecord(
                id=row['id'],
                external_id=row['external_id'],
                virtual_space_id=row['virtual_space_id'],
                sync_status=SyncStatus(row['sync_status']),
                payload=_parse_payload(row['data'], row['id']),
            )
            for row in rows
        ]

    @staticmethod
    def _row_to_store(row: sqlite3.Row) -> Store:
        return Store(
            id=row['id'],
            code=row['code'],
            name=row['name'],
            company_id=row['company_id'],
            sync_enabled=bool(row['sync_enabled']),
        )
