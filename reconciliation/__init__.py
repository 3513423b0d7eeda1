"""Reconciliation package for drift detection against the vendor ESL platform."""
from reconciliation.detector import (
    DriftDetector,
    compute_drift,
    local_correlation_key,
    remote_correlation_key,
)
from reconciliation.engine import DriftDetectionEngine
from reconciliation.enumerator import StoreEnumerator
from reconciliation.models import (
    LocalEntityRecord,
    QueueOutcome,
    RunSummary,
    Store,
    SyncStatus,
    VerificationResult,
)
from reconciliation.queuer import ResyncQueuer
from reconciliation.reporter import Reporter
from reconciliation.scheduler import DriftScheduler, VerificationInProgressError

__all__ = [
    'DriftDetector',
    'compute_drift',
    'local_correlation_key',
    'remote_correlation_key',
    'DriftDetectionEngine',
    'StoreEnumerator',
    'LocalEntityRecord',
    'QueueOutcome',
    'RunSummary',
    'Store',
    'SyncStatus',
    'VerificationResult',
    'ResyncQueuer',
    'Reporter',
    'DriftScheduler',
    'VerificationInProgressError',
]
