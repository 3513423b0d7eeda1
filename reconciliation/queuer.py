"""Submits bounded corrective re-sync work for detected drift."""
from typing import TYPE_CHECKING

from reconciliation.models import QueueOutcome, Store

if TYPE_CHECKING:
    from reconciliation.ports import ResyncQueue

from shared.log import create_logger
_, log_info, log_warn, _ = create_logger("ResyncQueuer")

# Corrective jobs queued per store per run
MAX_RESYNC_PER_STORE = 10

# Provenance marker: lets the worker tell drift-triggered re-syncs apart
# from first-time syncs.
RESYNC_PROVENANCE = {"verification_resync": True, "source": "drift_detection"}


class ResyncQueuer:
    """Queues at most ``max_per_store`` re-sync jobs per store per run.

    Ids beyond the cap are left for later runs: detection is idempotent, so
    the next run re-discovers the (shrinking) missing set as the worker
    drains the queue.

    Each submission is isolated: one failed enqueue is logged and counted
    and the remaining ids are still submitted.
    """

    def __init__(self, queue: "ResyncQueue", max_per_store: int = MAX_RESYNC_PER_STORE):
        self.queue = queue
        self.max_per_store = max_per_store

    async def submit(
        self,
        store: Store,
        entity_type: str,
        missing_ids: list[str]
    ) -> QueueOutcome:
        outcome = QueueOutcome()
        if not missing_ids:
            return outcome

        batch = missing_ids[:self.max_per_store]
        outcome.deferred = len(missing_ids) - len(batch)

        for entity_id in batch:
            try:
                await self.queue.enqueue(store.id, entity_type, entity_id, dict(RESYNC_PROVENANCE))
                outcome.submitted += 1
            except Exception as e:
                outcome.failed += 1
                outcome.errors.append(f"{entity_id}: {e}")
                log_warn(
                    f"Failed to queue re-sync for {entity_type} {entity_id} in {store.display_name}: {e}",
                    store_id=store.id,
                    entity_id=entity_id,
                )

        msg = f"Queued {outcome.submitted} {entity_type} records for re-sync in {store.display_name}"
        if outcome.failed:
            msg += f", {outcome.failed} failed"
        if outcome.deferred:
            msg += f", {outcome.deferred} deferred to the next run"
        log_info(
            msg,
            store_id=store.id,
            submitted=outcome.submitted,
            failed=outcome.failed,
            deferred=outcome.deferred,
        )
        return outcome
