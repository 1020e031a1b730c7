"""One full stats pass for one network."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from ..config import NetworkConfig, WatcherConfig
from ..interfaces.chain import ChainClient, ProtocolReader
from ..interfaces.metrics import MetricsSink
from ..interfaces.storage import BlobStorage
from ..models import ExchangePegSample
from ..numeric import KUSD_DECIMALS, XTZ_DECIMALS, fixed_to_decimal, mul, to_metric
from ..protocols.kolibri import KolibriReader
from . import aggregator
from .enricher import enrich_accounts
from .peg import get_plenty_peg, get_quipuswap_peg
from .publisher import PassResults, SnapshotPublisher
from .registry_scanner import scan_registry
from .tvl import fetch_tvl

logger = logging.getLogger(__name__)

# APY is 18-decimal fixed point; the gauge reports it as a percentage.
_APY_PERCENT_DECIMALS = KUSD_DECIMALS - 2


class StatsPipeline:
    """Reads protocol state for one network and publishes metrics and snapshots."""

    def __init__(
        self,
        network: NetworkConfig,
        watcher: WatcherConfig,
        chain_client: ChainClient,
        metrics: MetricsSink,
        storage: BlobStorage,
    ) -> None:
        self._network = network
        self._watcher = watcher
        self._client = chain_client
        self._metrics = metrics
        self._publisher = SnapshotPublisher(storage, network.name)
        self._tags = [f"network:{network.name}"]

    @property
    def name(self) -> str:
        return self._network.name

    def _gauge(self, name: str, value: Decimal | int) -> None:
        self._metrics.gauge(name, to_metric(value), self._tags)

    def _log_peg(self, sample: ExchangePegSample | None) -> None:
        if sample is None:
            return

        exchange = sample.exchange_name.lower()
        logger.info(
            "[%s] Latest %s Price %s", sample.network, sample.exchange_name, sample.implied_price
        )
        self._gauge(f"{exchange}.price", sample.implied_price)

        logger.info(
            "[%s] Peg for %s at %s",
            sample.network,
            sample.exchange_name,
            sample.peg_deviation_percent,
        )
        self._gauge(f"kusd.peg.{exchange}", sample.peg_deviation_percent)

    async def run_pass(self) -> PassResults:
        """Run one pass. Any failure propagates to the caller."""
        reader = KolibriReader(self._client, self._network)
        try:
            return await self._run_pass(reader)
        finally:
            await reader.close()

    async def _run_pass(self, reader: ProtocolReader) -> PassResults:
        network = self._network.name
        contracts = self._network.contracts

        logger.info("[%s] Running! %s", network, datetime.now(timezone.utc).isoformat())
        self._metrics.increment("updateData.called", 1, self._tags)

        # Prices
        xtz_price = await reader.get_oracle_price()
        logger.info("[%s] Latest Harbinger Price %s", network, xtz_price)
        self._gauge("xtz.price", xtz_price)

        # Pegs
        self._log_peg(await get_quipuswap_peg(reader, contracts, network, xtz_price))
        self._log_peg(await get_plenty_peg(reader, contracts, network, xtz_price))

        # Ovens
        locators = await scan_registry(
            self._client,
            self._network.registry_bigmap_id,
            self._watcher.registry_page_size,
        )
        records = await enrich_accounts(
            locators, reader, self._watcher.max_concurrent_reads or None
        )
        self._gauge("oven.count", aggregator.oven_count(records))

        total_collateral = aggregator.total_collateral(records)
        total_collateral_xtz = fixed_to_decimal(total_collateral, XTZ_DECIMALS)
        total_collateral_usd = mul(total_collateral_xtz, xtz_price)
        logger.info("[%s] Total XTZ Balance of Ovens %s", network, total_collateral_xtz)
        self._gauge("xtz.usd_total", total_collateral_usd)
        self._gauge("tvl.ovens", total_collateral_usd)
        self._gauge("xtz.total", total_collateral_xtz)

        total_debt = fixed_to_decimal(aggregator.total_debt(records), KUSD_DECIMALS)
        logger.info("[%s] Total Tokens %s", network, total_debt)
        self._gauge("kusd.total", total_debt)

        # Stability fee
        apy = await reader.get_stability_fee_apy()
        self._gauge("apy", fixed_to_decimal(apy, _APY_PERCENT_DECIMALS))

        # TVL
        tvl = await fetch_tvl(reader, contracts, total_collateral_usd, xtz_price, network)
        self._gauge("tvl.liquidity_pool", tvl.liquidity_pool_usd)
        self._gauge("tvl.kusd_farm", tvl.kusd_farm_usd)
        self._gauge("tvl.qlkusd_farm", tvl.share_farm_usd)
        self._gauge("tvl.quipuswap_lp_farm", tvl.lp_farm_usd)
        self._gauge("tvl", tvl.total_usd)
        logger.info("[%s] TVL %s", network, tvl.total_usd)

        results = PassResults(
            records=tuple(records),
            apy=apy,
            total_collateral=total_collateral,
            total_collateral_usd=total_collateral_usd,
            total_debt=total_debt,
            tvl=tvl,
        )
        await self._publisher.publish(results)

        logger.info("[%s] Finished! %s", network, datetime.now(timezone.utc).isoformat())
        return results
