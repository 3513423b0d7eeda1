"""Selects the stores that take part in a reconciliation run."""
from typing import TYPE_CHECKING

from reconciliation.models import Store

if TYPE_CHECKING:
    from reconciliation.ports import Persistence

from shared.log import create_logger
log_debug, log_info, _, _ = create_logger("StoreEnumerator")


class StoreEnumerator:
    """Lists every store with sync enabled.

    No pagination or cap: every sync-enabled store is returned in one call.
    Failures propagate so the caller can treat them as a whole-run failure.
    """

    def __init__(self, persistence: "Persistence"):
        self.persistence = persistence

    async def list(self) -> list[Store]:
        stores = await self.persistence.list_sync_enabled_stores()
        # The persistence layer already filters, but a stale replica row must
        # never pull a disabled store into a run.
        enabled = [store for store in stores if store.sync_enabled]
        if len(enabled) != len(stores):
            log_debug(f"Dropped {len(stores) - len(enabled)} stores with sync disabled")
        log_info(f"Verifying {len(enabled)} stores", store_count=len(enabled))
        return enabled
