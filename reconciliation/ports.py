"""Collaborator ports consumed by the drift reconciliation engine.

The engine never talks to SQLite, HTTP or the queue directly; it is handed
objects satisfying these protocols by the composition root (service.main),
and tests hand it AsyncMocks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from reconciliation.models import LocalEntityRecord, RemoteRecord, Store


@runtime_checkable
class Persistence(Protocol):
    """Read access to the local replica."""

    async def list_sync_enabled_stores(self) -> list[Store]:
        ...

    async def list_synced_local_records(
        self,
        store_id: str,
        limit: int,
        entity_type: str = "person",
    ) -> list[LocalEntityRecord]:
        ...


@runtime_checkable
class RemoteGateway(Protocol):
    """Read access to the authoritative vendor platform. May raise."""

    async def fetch_remote_records(self, store_id: str) -> list[RemoteRecord]:
        ...


@runtime_checkable
class ResyncQueue(Protocol):
    """Accepts corrective jobs; must tolerate duplicate submissions."""

    async def enqueue(
        self,
        store_id: str,
        entity_type: str,
        entity_id: str,
        metadata: dict[str, Any],
    ) -> None:
        ...


__all__ = ["Persistence", "RemoteGateway", "ResyncQueue"]
