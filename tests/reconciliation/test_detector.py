"""
Tests for drift detection between local SYNCED records and remote articles.

Covers correlation key resolution (local external_id/virtual_space_id,
remote alias chain), the missing/extra set difference, the per-store record
cap and the inconclusive result produced when the remote fetch fails.
"""

import pytest

from reconciliation.detector import (
    DriftDetector,
    MAX_RECORDS_PER_STORE,
    compute_drift,
    local_correlation_key,
    normalize_key,
    remote_correlation_key,
)
from reconciliation.models import LocalEntityRecord


# =============================================================================
# Key Resolution
# =============================================================================

class TestCorrelationKeys:
    """Tests for normalize_key and the local/remote key helpers."""

    def test_normalize_key_strips_and_stringifies(self):
        assert normalize_key("  ext-1 ") == "ext-1"
        assert normalize_key(42) == "42"

    def test_normalize_key_blank_is_none(self):
        assert normalize_key(None) is None
        assert normalize_key("") is None
        assert normalize_key("   ") is None

    def test_local_key_prefers_external_id(self):
        record = LocalEntityRecord(id="p-1", external_id="ext-1", virtual_space_id="vs-1")
        assert local_correlation_key(record) == "ext-1"

    def test_local_key_falls_back_to_virtual_space_id(self):
        record = LocalEntityRecord(id="p-1", external_id=None, virtual_space_id="vs-1")
        assert local_correlation_key(record) == "vs-1"

    def test_local_key_none_when_unlinked(self):
        record = LocalEntityRecord(id="p-1")
        assert local_correlation_key(record) is None

    @pytest.mark.parametrize("field", ["articleId", "article_id", "ARTICLE_ID", "id"])
    def test_remote_key_accepts_each_alias(self, field):
        assert remote_correlation_key({field: "ext-1"}) == "ext-1"

    def test_remote_key_alias_order(self):
        """articleId wins over a generic id when both are present."""
        record = {"id": "row-7", "articleId": "ext-1"}
        assert remote_correlation_key(record) == "ext-1"

    def test_remote_key_skips_blank_alias(self):
        record = {"articleId": "", "article_id": "ext-2"}
        assert remote_correlation_key(record) == "ext-2"

    def test_remote_key_custom_aliases(self):
        record = {"code": "ext-3", "articleId": "ext-9"}
        assert remote_correlation_key(record, ("code",)) == "ext-3"

    @pytest.mark.parametrize("record", [None, "ext-1", 42, ["articleId"], {}])
    def test_remote_key_never_raises(self, record):
        assert remote_correlation_key(record) is None


# =============================================================================
# Set Difference
# =============================================================================

class TestComputeDrift:
    """Tests for compute_drift()."""

    def test_all_present(self, make_records, make_articles):
        missing, extra = compute_drift(make_records(3), make_articles(["ext-0", "ext-1", "ext-2"]))
        assert missing == []
        assert extra == []

    def test_missing_reports_local_ids(self, make_records, make_articles):
        missing, extra = compute_drift(make_records(3), make_articles(["ext-0", "ext-2"]))
        assert missing == ["p-1"]
        assert extra == []

    def test_extra_reports_remote_keys(self, make_records, make_articles):
        missing, extra = compute_drift(make_records(1), make_articles(["ext-0", "orphan-1"]))
        assert missing == []
        assert extra == ["orphan-1"]

    def test_unkeyed_local_records_excluded(self, make_articles):
        local = [LocalEntityRecord(id="p-1"), LocalEntityRecord(id="p-2", external_id="ext-2")]
        missing, _ = compute_drift(local, make_articles([]))
        assert missing == ["p-2"]

    def test_unkeyed_remote_records_excluded(self, make_records):
        remote = [{"articleName": "no id"}, "garbage", None, {"articleId": "ext-0"}]
        missing, extra = compute_drift(make_records(1), remote)
        assert missing == []
        assert extra == []

    def test_virtual_space_fallback_matches(self):
        local = [LocalEntityRecord(id="room-1", virtual_space_id="vs-9")]
        missing, _ = compute_drift(local, [{"ARTICLE_ID": "vs-9"}])
        assert missing == []

    def test_whitespace_tolerant_match(self):
        local = [LocalEntityRecord(id="p-1", external_id=" ext-1")]
        missing, _ = compute_drift(local, [{"articleId": "ext-1 "}])
        assert missing == []


# =============================================================================
# DriftDetector.verify
# =============================================================================

class TestDriftDetectorVerify:
    """Tests for DriftDetector.verify() against mocked collaborators."""

    @pytest.mark.asyncio
    async def test_verified_when_everything_present(self, store, mock_persistence, mock_gateway,
                                                    make_records, make_articles):
        mock_persistence.list_synced_local_records.return_value = make_records(2)
        mock_gateway.fetch_remote_records.return_value = make_articles(["ext-0", "ext-1"])

        result = await DriftDetector(mock_persistence, mock_gateway).verify(store, "person")

        assert result.verified is True
        assert result.error is None
        assert result.store_id == "store-1"
        assert result.store_name == "Main Street"
        assert result.entity_type == "person"
        assert result.total_local == 2
        assert result.total_remote == 2
        assert result.missing_in_remote == []

    @pytest.mark.asyncio
    async def test_missing_record_is_drift(self, store, mock_persistence, mock_gateway,
                                           make_records, make_articles):
        mock_persistence.list_synced_local_records.return_value = make_records(3)
        mock_gateway.fetch_remote_records.return_value = make_articles(["ext-0", "ext-2"])

        result = await DriftDetector(mock_persistence, mock_gateway).verify(store)

        assert result.verified is False
        assert result.has_drift is True
        assert result.missing_in_remote == ["p-1"]

    @pytest.mark.asyncio
    async def test_extras_alone_stay_verified(self, store, mock_persistence, mock_gateway,
                                              make_records, make_articles):
        mock_persistence.list_synced_local_records.return_value = make_records(1)
        mock_gateway.fetch_remote_records.return_value = make_articles(["ext-0", "stray-1", "stray-2"])

        result = await DriftDetector(mock_persistence, mock_gateway).verify(store)

        assert result.verified is True
        assert result.extra_in_remote == ["stray-1", "stray-2"]
        assert result.has_drift is False

    @pytest.mark.asyncio
    async def test_no_local_records_with_remote_articles_is_verified(self, store, mock_persistence,
                                                                     mock_gateway, make_articles):
        mock_persistence.list_synced_local_records.return_value = []
        mock_gateway.fetch_remote_records.return_value = make_articles(["a", "b", "c"])

        result = await DriftDetector(mock_persistence, mock_gateway).verify(store)

        assert result.verified is True
        assert result.error is None
        assert result.missing_in_remote == []
        assert result.extra_in_remote == ["a", "b", "c"]
        assert result.total_local == 0
        assert result.total_remote == 3

    @pytest.mark.asyncio
    async def test_remote_failure_is_inconclusive(self, store, mock_persistence, mock_gateway, make_records):
        mock_persistence.list_synced_local_records.return_value = make_records(4)
        mock_gateway.fetch_remote_records.side_effect = ConnectionError("connection refused")

        result = await DriftDetector(mock_persistence, mock_gateway).verify(store)

        assert result.verified is False
        assert result.has_drift is False
        assert result.error == "Failed to fetch remote records: connection refused"
        assert result.error_kind == "transient"
        assert result.total_local == 4
        assert result.total_remote == 0
        assert result.missing_in_remote == []
        assert result.extra_in_remote == []

    @pytest.mark.asyncio
    async def test_remote_failure_classified_permanent(self, store, mock_persistence, mock_gateway):
        mock_gateway.fetch_remote_records.side_effect = ValueError("bad payload")

        result = await DriftDetector(mock_persistence, mock_gateway).verify(store)

        assert result.error_kind == "permanent"

    @pytest.mark.asyncio
    async def test_local_failure_propagates(self, store, mock_persistence, mock_gateway):
        mock_persistence.list_synced_local_records.side_effect = RuntimeError("database locked")

        with pytest.raises(RuntimeError, match="database locked"):
            await DriftDetector(mock_persistence, mock_gateway).verify(store)

        mock_gateway.fetch_remote_records.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_requests_capped_record_count(self, store, mock_persistence, mock_gateway):
        await DriftDetector(mock_persistence, mock_gateway).verify(store, "space")

        mock_persistence.list_synced_local_records.assert_awaited_once_with(
            "store-1", MAX_RECORDS_PER_STORE, "space"
        )
        mock_gateway.fetch_remote_records.assert_awaited_once_with("store-1")

    @pytest.mark.asyncio
    async def test_cap_enforced_when_adapter_ignores_limit(self, store, mock_persistence,
                                                          mock_gateway, make_records):
        mock_persistence.list_synced_local_records.return_value = make_records(500)

        result = await DriftDetector(mock_persistence, mock_gateway).verify(store)

        assert result.total_local == 100
        assert len(result.missing_in_remote) == 100

    @pytest.mark.asyncio
    async def test_none_remote_payload_treated_as_empty(self, store, mock_persistence,
                                                       mock_gateway, make_records):
        mock_persistence.list_synced_local_records.return_value = make_records(1)
        mock_gateway.fetch_remote_records.return_value = None

        result = await DriftDetector(mock_persistence, mock_gateway).verify(store)

        assert result.total_remote == 0
        assert result.missing_in_remote == ["p-0"]

    @pytest.mark.asyncio
    async def test_unnamed_store_uses_code(self, mock_persistence, mock_gateway, stores):
        result = await DriftDetector(mock_persistence, mock_gateway).verify(stores[2])
        assert result.store_name == "S003"
