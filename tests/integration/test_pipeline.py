"""Integration tests for a full stats pass — reads, metrics, and snapshots."""
from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from stats_watcher.config import WatcherConfig
from stats_watcher.errors import TransportError
from stats_watcher.models import PoolReserves
from stats_watcher.services import PassState, Scheduler, StatsPipeline

PIPELINE_MODULE = "stats_watcher.services.pipeline"


@pytest.fixture()
def chain_client():
    client = AsyncMock()
    client.get_bigmap_keys.return_value = [
        {"key": "KT1OVEN0", "value": "tz1OWNER0"},
        {"key": "KT1OVEN1", "value": "tz1OWNER1"},
    ]
    return client


@pytest.fixture()
def protocol_reader(fake_reader):
    fake_reader.oracle_price = Decimal(2)
    fake_reader.add_oven(
        "KT1OVEN0", custodian="tz1BAKER", balance=10 * 10**6, borrowed=5 * 10**18, fee=10**18
    )
    fake_reader.add_oven("KT1OVEN1", balance=20 * 10**6, borrowed=4 * 10**18)
    fake_reader.pools["KT1QUIPU"] = PoolReserves(200 * 10**18, 100 * 10**6, 5000)
    return fake_reader


@pytest.fixture()
def metrics() -> MagicMock:
    return MagicMock()


@pytest.fixture()
def storage() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def pipeline(sample_network_config, chain_client, metrics, storage) -> StatsPipeline:
    return StatsPipeline(
        sample_network_config,
        WatcherConfig(max_concurrent_reads=1),
        chain_client,
        metrics,
        storage,
    )


def _gauges(metrics: MagicMock) -> dict[str, float]:
    return {call.args[0]: call.args[1] for call in metrics.gauge.call_args_list}


class TestRunPass:
    @pytest.mark.asyncio
    async def test_full_pass(self, pipeline, protocol_reader, metrics, storage) -> None:
        with patch(f"{PIPELINE_MODULE}.KolibriReader", return_value=protocol_reader):
            results = await pipeline.run_pass()

        assert [r.account_address for r in results.records] == ["KT1OVEN0", "KT1OVEN1"]
        assert results.total_collateral == 30 * 10**6
        assert results.total_debt == 10

        gauges = _gauges(metrics)
        assert gauges["xtz.price"] == 2.0
        assert gauges["quipuswap.price"] == 2.0
        assert gauges["kusd.peg.quipuswap"] == 0.0
        assert gauges["oven.count"] == 2.0
        assert gauges["xtz.total"] == 30.0
        assert gauges["xtz.usd_total"] == 60.0
        assert gauges["tvl.ovens"] == 60.0
        assert gauges["kusd.total"] == 10.0
        assert gauges["apy"] == 0.0
        assert gauges["tvl"] == 60.0
        assert "kusd.peg.plenty" not in gauges

        metrics.increment.assert_called_once_with("updateData.called", 1, ["network:mainnet"])
        assert all(call.args[2] == ["network:mainnet"] for call in metrics.gauge.call_args_list)

        names = [call.args[1] for call in storage.write_named_blob.await_args_list]
        assert names == [
            "mainnet/oven-key-data.json",
            "mainnet/all-data.json",
            "mainnet/oven-data.json",
            "mainnet/apy.json",
            "mainnet/totals.json",
        ]
        all_data = storage.write_named_blob.await_args_list[1].args[0]
        assert all_data["totalBalance"] == "30000000"
        assert all_data["totalBalanceUSD"] == "60"
        assert all_data["allOvenData"][0]["outstandingTokens"] == str(6 * 10**18)

    @pytest.mark.asyncio
    async def test_fresh_reader_each_pass(self, pipeline, protocol_reader) -> None:
        with patch(f"{PIPELINE_MODULE}.KolibriReader", return_value=protocol_reader) as factory:
            await pipeline.run_pass()
            await pipeline.run_pass()

        assert factory.call_count == 2
        assert protocol_reader.closed is True

    @pytest.mark.asyncio
    async def test_registry_failure_publishes_nothing(
        self, pipeline, protocol_reader, chain_client, storage
    ) -> None:
        chain_client.get_bigmap_keys.side_effect = TransportError("indexer down")

        with patch(f"{PIPELINE_MODULE}.KolibriReader", return_value=protocol_reader):
            with pytest.raises(TransportError):
                await pipeline.run_pass()

        storage.write_named_blob.assert_not_awaited()
        assert protocol_reader.closed is True

    @pytest.mark.asyncio
    async def test_oven_failure_publishes_nothing(self, pipeline, protocol_reader, storage) -> None:
        protocol_reader.failing_ovens.add("KT1OVEN1")

        with patch(f"{PIPELINE_MODULE}.KolibriReader", return_value=protocol_reader):
            with pytest.raises(ConnectionError):
                await pipeline.run_pass()

        storage.write_named_blob.assert_not_awaited()


class TestScheduledPipeline:
    @pytest.mark.asyncio
    async def test_failed_pass_reported(self, pipeline, protocol_reader, chain_client) -> None:
        chain_client.get_bigmap_keys.side_effect = TransportError("indexer down")
        reporter = MagicMock()
        scheduler = Scheduler(pipeline.name, pipeline.run_pass, delay=300, error_reporter=reporter)

        with patch(f"{PIPELINE_MODULE}.KolibriReader", return_value=protocol_reader):
            assert await scheduler.run_once() is False

        assert scheduler.state is PassState.FAILED
        reporter.capture_exception.assert_called_once()
        assert isinstance(reporter.capture_exception.call_args.args[0], TransportError)

    @pytest.mark.asyncio
    async def test_successful_pass(self, pipeline, protocol_reader) -> None:
        scheduler = Scheduler(pipeline.name, pipeline.run_pass, delay=300, error_reporter=MagicMock())

        with patch(f"{PIPELINE_MODULE}.KolibriReader", return_value=protocol_reader):
            assert await scheduler.run_once() is True

        assert scheduler.state is PassState.SUCCESS
