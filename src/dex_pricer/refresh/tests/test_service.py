"""Tests for the price refresh service wiring."""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from ...config import ConfigManager
from ...core.storage import ConnectionError as StorageConnectionError
from ...fetchers.base import FetchResult
from ..budget import RefreshBudget
from ..service import PriceRefreshService

JOBS = {
    "budget_reset",
    "discovery",
    "priority_refresh",
    "rotation_refresh",
    "full_ranking",
    "onchain_enrichment",
}


@pytest.fixture
def mock_storage():
    storage = Mock()
    storage.connect = AsyncMock()
    storage.disconnect = AsyncMock()
    storage.health_check = AsyncMock(return_value=True)
    storage.upsert_tokens = AsyncMock(return_value=0)
    storage.upsert_market_records = AsyncMock(return_value=0)
    storage.get_top_by_market_cap = AsyncMock(return_value=[])
    storage.get_rotation_candidates = AsyncMock(return_value=[])
    return storage


@pytest.fixture
def service(mock_storage):
    token_fetcher = Mock()
    token_fetcher.fetch_new_tokens = AsyncMock(return_value=FetchResult(success=True, data=[]))
    oracle = Mock()
    oracle.get_price = AsyncMock(return_value=1910.7)
    oracle.cached_price = None
    enrichment = Mock()
    enrichment.run = AsyncMock()
    return PriceRefreshService(
        config=ConfigManager(),
        storage=mock_storage,
        token_fetcher=token_fetcher,
        price_fetcher=Mock(),
        oracle=oracle,
        enrichment=enrichment,
        budget=RefreshBudget(quota=5, safety_margin=2, tokens_per_call=10),
    )


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_start_runs_startup_passes_and_registers_jobs(self, service, mock_storage):
        await service.start()
        try:
            assert set(service.scheduler.jobs) == JOBS
            assert service.scheduler.running
            mock_storage.connect.assert_awaited_once()
            service.token_fetcher.fetch_new_tokens.assert_awaited_once()
            assert service.state.last_full_ranking is not None
        finally:
            await service.stop()

        assert not service.scheduler.running
        mock_storage.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unhealthy_storage_aborts_startup(self, service, mock_storage):
        mock_storage.health_check.return_value = False

        with pytest.raises(StorageConnectionError):
            await service.start()

        mock_storage.disconnect.assert_awaited_once()
        assert service.scheduler.jobs == {}
        service.token_fetcher.fetch_new_tokens.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stats(self, service):
        service.state.apply_ranking(["0xAA"])

        stats = service.stats()

        assert stats["priority_tokens"] == ["0xaa"]
        assert stats["budget"]["quota"] == 5
        assert stats["last_full_ranking"] is not None


class TestJobs:

    @pytest.mark.asyncio
    async def test_reset_budget(self, service):
        service.budget.try_consume(3)

        snapshot = await service.reset_budget()

        assert snapshot["calls_this_window"] == 0
        assert snapshot["window"] == 1

    @pytest.mark.asyncio
    async def test_reference_price(self, service):
        assert await service.reference_price() == 1910.7

    @pytest.mark.asyncio
    async def test_empty_priority_list_triggers_ranking(self, service):
        ranking = AsyncMock()
        service.scheduler.add_job("full_ranking", ranking, 3600)

        result = await service.run_priority_refresh()

        assert result.reason == "no priority tokens"
        ranking.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ranking_trigger_is_rate_limited(self, service):
        ranking = AsyncMock()
        service.scheduler.add_job("full_ranking", ranking, 3600)
        service.state.apply_ranking([])

        await service.run_priority_refresh()

        ranking.assert_not_awaited()


class TestRankingIsDue:

    def test_not_due_without_ranking_job(self, service):
        assert service._ranking_is_due() is False

    def test_due_when_never_ranked(self, service):
        service.scheduler.add_job("full_ranking", AsyncMock(), 3600)

        assert service._ranking_is_due() is True

    def test_due_after_rotation_interval(self, service):
        service.scheduler.add_job("full_ranking", AsyncMock(), 3600)
        interval = service.config.refresh.ROTATION_INTERVAL

        service.state.last_full_ranking = datetime.now(timezone.utc) - timedelta(seconds=interval - 5)
        assert service._ranking_is_due() is False

        service.state.last_full_ranking = datetime.now(timezone.utc) - timedelta(seconds=interval + 1)
        assert service._ranking_is_due() is True

    def test_not_due_while_ranking_runs(self, service):
        job = service.scheduler.add_job("full_ranking", AsyncMock(), 3600)
        job.mark_started()

        assert service._ranking_is_due() is False
