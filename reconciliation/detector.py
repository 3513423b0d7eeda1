"""Drift detection between the local replica and the vendor ESL platform."""
from typing import Any, Iterable, Optional, TYPE_CHECKING

from reconciliation.models import LocalEntityRecord, RemoteRecord, Store, VerificationResult
from validation.config import DEFAULT_REMOTE_ID_ALIASES
from validation.errors import error_kind

if TYPE_CHECKING:
    from reconciliation.ports import Persistence, RemoteGateway

from shared.log import create_logger
log_debug, _, _, _ = create_logger("DriftDetector")

REMOTE_ID_ALIASES = DEFAULT_REMOTE_ID_ALIASES

# Local records compared per store per run
MAX_RECORDS_PER_STORE = 100


def normalize_key(value: Any) -> Optional[str]:
    """Normalize an identity value to a correlation key.

    Returns None for missing or blank values so callers can exclude them.
    """
    if value is None:
        return None
    key = str(value).strip()
    return key or None


def local_correlation_key(record: LocalEntityRecord) -> Optional[str]:
    """Correlation key of a local record: external_id, else virtual_space_id.

    Records with neither were never linked to the vendor platform and
    cannot drift.
    """
    return normalize_key(record.external_id) or normalize_key(record.virtual_space_id)


def remote_correlation_key(
    record: RemoteRecord,
    aliases: Iterable[str] = REMOTE_ID_ALIASES
) -> Optional[str]:
    """Correlation key of a remote record: first populated alias field.

    Never raises; records that are not mappings or expose none of the
    aliases resolve to None.
    """
    if not isinstance(record, dict):
        return None
    for alias in aliases:
        key = normalize_key(record.get(alias))
        if key is not None:
            return key
    return None


def compute_drift(
    local_records: list[LocalEntityRecord],
    remote_records: list[RemoteRecord],
    aliases: Iterable[str] = REMOTE_ID_ALIASES
) -> tuple[list[str], list[str]]:
    """Compute the set difference between local and remote records.

    Args:
        local_records: Local SYNCED records
        remote_records: Records fetched from the vendor platform
        aliases: Remote identity fields in resolution order

    Returns:
        Tuple of (missing_in_remote local ids, extra_in_remote keys), in
        local and remote order respectively
    """
    aliases = tuple(aliases)

    local_by_key: dict[str, LocalEntityRecord] = {}
    for record in local_records:
        key = local_correlation_key(record)
        if key is not None:
            local_by_key[key] = record

    remote_by_key: dict[str, RemoteRecord] = {}
    for record in remote_records:
        key = remote_correlation_key(record, aliases)
        if key is not None:
            remote_by_key[key] = record

    missing = [record.id for key, record in local_by_key.items() if key not in remote_by_key]
    extra = [key for key in remote_by_key if key not in local_by_key]
    return missing, extra


class DriftDetector:
    """Verifies one store's local records against the vendor platform.

    Args:
        persistence: Local replica reader
        gateway: Vendor platform reader
        max_records: Cap on local records fetched per store
        aliases: Remote identity fields in resolution order
    """

    def __init__(
        self,
        persistence: "Persistence",
        gateway: "RemoteGateway",
        max_records: int = MAX_RECORDS_PER_STORE,
        aliases: Iterable[str] = REMOTE_ID_ALIASES
    ):
        self.persistence = persistence
        self.gateway = gateway
        self.max_records = max_records
        self.aliases = tuple(aliases)

    async def verify(self, store: Store, entity_type: str = "person") -> VerificationResult:
        """Verify a store's SYNCED records of one entity type.

        Execution steps:
            1. Fetch local SYNCED records (capped at max_records)
            2. Fetch remote records; on failure return an inconclusive
               error result instead of reporting drift
            3. Key both sides and compute missing/extra
            4. verified = nothing missing remotely

        Errors from the local fetch propagate to the caller.
        """
        local_records = await self.persistence.list_synced_local_records(
            store.id, self.max_records, entity_type
        )
        # Guard against adapters that ignore the limit.
        local_records = list(local_records)[:self.max_records]

        try:
            remote_records = list(await self.gateway.fetch_remote_records(store.id) or [])
        except Exception as e:
            log_debug(
                f"Remote fetch failed for {store.display_name}, result inconclusive: {e}",
                store_id=store.id,
            )
            return VerificationResult.failed(
                store,
                entity_type,
                f"Failed to fetch remote records: {e}",
                total_local=len(local_records),
                error_kind=error_kind(e),
            )

        missing, extra = compute_drift(local_records, remote_records, self.aliases)
        log_debug(
            f"{store.display_name}: {len(local_records)} local, {len(remote_records)} remote, "
            f"{len(missing)} missing, {len(extra)} extra",
            store_id=store.id,
        )

        return VerificationResult(
            store_id=store.id,
            store_name=store.display_name,
            entity_type=entity_type,
            total_local=len(local_records),
            total_remote=len(remote_records),
            missing_in_remote=missing,
            extra_in_remote=extra,
            verified=not missing,
        )
