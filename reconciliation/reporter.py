"""Aggregates per-store verification results into log signals."""
import time
from typing import Optional

from reconciliation.models import RunSummary, VerificationResult

from shared.log import create_logger
_, log_info, log_warn, log_error = create_logger("Reporter")


class Reporter:
    """Observability sink for verification runs.

    Partitions results into verified, drift (unverified, no error) and error
    results, logs a warning per drifted store and an error per failed store,
    and keeps the latest RunSummary in memory. Nothing is persisted.
    """

    def __init__(self):
        self.last_summary: Optional[RunSummary] = None

    def record(
        self,
        results: list[VerificationResult],
        trigger: str = "scheduled",
        queued_total: int = 0,
        started_at: Optional[float] = None
    ) -> RunSummary:
        verified = [r for r in results if r.verified]
        drifted = [r for r in results if r.has_drift]
        errored = [r for r in results if r.error is not None]

        if drifted:
            log_warn(f"Drift detected in {len(drifted)} stores", drift_count=len(drifted))
        for result in drifted:
            log_warn(
                f"{result.store_name}: {len(result.missing_in_remote)} missing in remote, "
                f"{len(result.extra_in_remote)} extra in remote",
                store_id=result.store_id,
                entity_type=result.entity_type,
                missing=len(result.missing_in_remote),
                extra=len(result.extra_in_remote),
            )

        for result in errored:
            log_error(
                f"Failed to verify store {result.store_name}: {result.error}",
                store_id=result.store_id,
                entity_type=result.entity_type,
                error_kind=result.error_kind,
            )

        now = time.time()
        summary = RunSummary(
            trigger=trigger,
            started_at=started_at if started_at is not None else now,
            finished_at=now,
            stores_checked=len(results),
            verified_count=len(verified),
            drift_count=len(drifted),
            error_count=len(errored),
            missing_total=sum(len(r.missing_in_remote) for r in results),
            extra_total=sum(len(r.extra_in_remote) for r in results),
            queued_total=queued_total,
        )
        log_info(
            f"Verification ({trigger}) complete: {summary.verified_count} verified, "
            f"{summary.drift_count} with drift, {summary.error_count} errors, "
            f"{summary.queued_total} queued for re-sync",
            **summary.to_dict(),
        )
        self.last_summary = summary
        return summary
