"""Value types shared by the drift reconciliation components."""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional

# Records from the vendor platform are loosely typed; identity fields vary by
# API version and locale, see detector.REMOTE_ID_ALIASES.
RemoteRecord = dict[str, Any]


class SyncStatus(Enum):
    """Local record sync states."""
    SYNCED = "SYNCED"
    PENDING = "PENDING"
    FAILED = "FAILED"


@dataclass(frozen=True)
class Store:
    """A store participating in vendor platform sync (read-only here)."""
    id: str
    code: str
    name: Optional[str] = None
    company_id: Optional[str] = None
    sync_enabled: bool = True

    @property
    def display_name(self) -> str:
        return self.name or self.code


@dataclass(frozen=True)
class LocalEntityRecord:
    """Locally persisted replica of an entity pushed to the vendor platform.

    Attributes:
        id: Local primary key
        external_id: Vendor-side identifier, once linked
        virtual_space_id: Fallback vendor-side slot identifier
        sync_status: Last known sync state
        payload: Entity data as stored locally
    """
    id: str
    external_id: Optional[str] = None
    virtual_space_id: Optional[str] = None
    sync_status: SyncStatus = SyncStatus.SYNCED
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class VerificationResult:
    """Outcome of verifying one store's entities against the vendor platform.

    Produced fresh per run and never persisted.

    Attributes:
        store_id: Store that was verified
        store_name: Store name (or code when unnamed)
        entity_type: Entity family verified
        total_local: Local SYNCED records compared
        total_remote: Remote records fetched (0 when the fetch failed)
        missing_in_remote: Local record ids with no remote counterpart
        extra_in_remote: Remote correlation keys with no local counterpart
        verified: True when nothing is missing remotely (extras do not count)
        error: Set when verification was inconclusive
        error_kind: "transient" or "permanent" classification of the error
    """
    store_id: str
    store_name: str
    entity_type: str
    total_local: int = 0
    total_remote: int = 0
    missing_in_remote: list[str] = field(default_factory=list)
    extra_in_remote: list[str] = field(default_factory=list)
    verified: bool = False
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def has_drift(self) -> bool:
        """Unverified for a real difference, not because of an error."""
        return not self.verified and self.error is None

    @classmethod
    def failed(
        cls,
        store: Store,
        entity_type: str,
        message: str,
        total_local: int = 0,
        error_kind: Optional[str] = None,
    ) -> "VerificationResult":
        """Build an inconclusive result: never verified, never drift."""
        return cls(
            store_id=store.id,
            store_name=store.display_name,
            entity_type=entity_type,
            total_local=total_local,
            total_remote=0,
            missing_in_remote=[],
            extra_in_remote=[],
            verified=False,
            error=message,
            error_kind=error_kind,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class QueueOutcome:
    """Result of submitting corrective jobs for one store.

    Attributes:
        submitted: Jobs accepted by the queue
        failed: Jobs whose submission raised
        deferred: Missing ids left for a later run because of the per-run cap
        errors: Per-submission error messages
    """
    submitted: int = 0
    failed: int = 0
    deferred: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class RunSummary:
    """In-memory summary of the most recent run, for status reporting."""
    trigger: str = "scheduled"
    started_at: float = 0.0
    finished_at: float = 0.0
    stores_checked: int = 0
    verified_count: int = 0
    drift_count: int = 0
    error_count: int = 0
    missing_total: int = 0
    extra_total: int = 0
    queued_total: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
