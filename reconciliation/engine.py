"""
Drift detection engine orchestrator.

Wires StoreEnumerator, DriftDetector, ResyncQueuer and Reporter into the
per-run pipeline: list stores, verify each store sequentially, queue
corrective re-syncs for anything missing on the vendor platform, and report.
"""

import time
from typing import TYPE_CHECKING, Optional

from reconciliation.detector import DriftDetector
from reconciliation.enumerator import StoreEnumerator
from reconciliation.models import RunSummary, VerificationResult
from reconciliation.queuer import ResyncQueuer
from reconciliation.reporter import Reporter
from validation.config import DriftConfig
from validation.errors import error_kind

if TYPE_CHECKING:
    from reconciliation.ports import Persistence, RemoteGateway, ResyncQueue

from shared.log import create_logger
log_debug, _, _, _ = create_logger("Engine")


class DriftDetectionEngine:
    """Runs one verification pass over every sync-enabled store.

    Stores are processed one at a time; there is no fan-out within a run,
    which also rate-limits calls to the vendor platform.

    Args:
        persistence: Local replica reader
        gateway: Vendor platform reader
        queue: Re-sync job queue
        config: DriftConfig tunables (defaults when omitted)
        reporter: Reporter instance (a fresh one when omitted)
    """

    def __init__(
        self,
        persistence: "Persistence",
        gateway: "RemoteGateway",
        queue: "ResyncQueue",
        config: Optional[DriftConfig] = None,
        reporter: Optional[Reporter] = None
    ):
        self.config = config or DriftConfig()
        self.entity_type = self.config.entity_type
        self.enumerator = StoreEnumerator(persistence)
        self.detector = DriftDetector(
            persistence,
            gateway,
            max_records=self.config.max_records_per_store,
            aliases=self.config.remote_id_aliases,
        )
        self.queuer = ResyncQueuer(queue, max_per_store=self.config.max_resync_per_store)
        self.reporter = reporter or Reporter()

    async def verify_all_stores(self) -> list[VerificationResult]:
        """Verify every sync-enabled store and queue corrective work.

        Returns:
            One VerificationResult per store, in enumeration order

        Raises:
            Whatever StoreEnumerator.list() raises; nothing else escapes.
            A failure verifying or queueing for one store becomes an error
            result for that store and the run continues.
        """
        results, _ = await self._verify_stores()
        return results

    async def run(self, trigger: str = "scheduled") -> tuple[list[VerificationResult], RunSummary]:
        """Run the pipeline and report the results.

        Args:
            trigger: "scheduled" or "manual", recorded on the summary

        Returns:
            Tuple of (results, summary)
        """
        started_at = time.time()
        log_debug(f"Starting {trigger} verification run")
        results, queued = await self._verify_stores()
        summary = self.reporter.record(
            results,
            trigger=trigger,
            queued_total=queued,
            started_at=started_at,
        )
        return results, summary

    async def _verify_stores(self) -> tuple[list[VerificationResult], int]:
        results: list[VerificationResult] = []
        queued = 0

        stores = await self.enumerator.list()

        for store in stores:
            try:
                result = await self.detector.verify(store, self.entity_type)
                if result.missing_in_remote:
                    outcome = await self.queuer.submit(store, self.entity_type, result.missing_in_remote)
                    queued += outcome.submitted
                results.append(result)
            except Exception as e:
                # Reported at error level by the Reporter
                log_debug(
                    f"Failed to verify store {store.display_name}: {e}",
                    store_id=store.id,
                )
                results.append(VerificationResult.failed(
                    store, self.entity_type, str(e), error_kind=error_kind(e)
                ))

        return results, queued
