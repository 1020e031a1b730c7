"""Snapshot documents for the storage sink."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from ..errors import SinkError
from ..interfaces.storage import BlobStorage
from ..models import AccountRecord, TvlBreakdown
from ..numeric import decimal_to_str

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PassResults:
    """Everything a pass computed that ends up in a snapshot."""

    records: tuple[AccountRecord, ...]
    apy: int
    total_collateral: int
    total_collateral_usd: Decimal
    total_debt: Decimal
    tvl: TvlBreakdown


def serialize_locator(record: AccountRecord) -> dict[str, Any]:
    return {
        "ovenAddress": record.account_address,
        "ovenOwner": record.owner_address,
    }


def serialize_account(record: AccountRecord) -> dict[str, Any]:
    return {
        **serialize_locator(record),
        "baker": record.custodian,
        "balance": decimal_to_str(record.collateral_balance),
        "borrowedTokens": decimal_to_str(record.borrowed_amount),
        "stabilityFees": decimal_to_str(record.accrued_fee),
        "isLiquidated": record.liquidated,
        "outstandingTokens": decimal_to_str(record.outstanding_debt),
    }


def build_documents(network: str, results: PassResults) -> dict[str, dict[str, Any]]:
    """Build every snapshot for a pass, keyed by blob name, in write order."""
    all_ovens = [serialize_account(r) for r in results.records]
    apy = decimal_to_str(results.apy)
    total_balance = decimal_to_str(results.total_collateral)
    total_tokens = decimal_to_str(results.total_debt)
    tvl = results.tvl

    return {
        f"{network}/oven-key-data.json": {
            "ovenData": [serialize_locator(r) for r in results.records],
        },
        f"{network}/all-data.json": {
            "allOvenData": all_ovens,
            "apy": apy,
            "totalBalance": total_balance,
            "totalBalanceUSD": decimal_to_str(results.total_collateral_usd),
            "totalTokens": total_tokens,
        },
        f"{network}/oven-data.json": {"allOvenData": all_ovens},
        f"{network}/apy.json": {"apy": apy},
        f"{network}/totals.json": {
            "totalBalance": total_balance,
            "totalTokens": total_tokens,
            "liquidityPoolBalance": decimal_to_str(tvl.liquidity_pool_usd),
            "kUSDFarmBalance": decimal_to_str(tvl.kusd_farm_usd),
            "liquidityPoolFarmBalanceUSD": decimal_to_str(tvl.share_farm_usd),
            "quipuswapFarmBalanceUSD": decimal_to_str(tvl.lp_farm_usd),
            "totalFarmBalanceUSD": decimal_to_str(tvl.total_farm_usd),
            "tvlUSD": decimal_to_str(tvl.total_usd),
        },
    }


class SnapshotPublisher:
    """Writes a pass's snapshot documents to blob storage.

    All documents are built before the first write. Writes are sequential and
    not transactional: if one fails, the ones before it stay published, and
    the raised SinkError lists them.
    """

    def __init__(self, storage: BlobStorage, network: str) -> None:
        self._storage = storage
        self._network = network

    async def publish(self, results: PassResults) -> list[str]:
        documents = build_documents(self._network, results)
        written: list[str] = []

        for name, payload in documents.items():
            try:
                await self._storage.write_named_blob(payload, name)
            except Exception as e:
                raise SinkError(
                    f"[{self._network}] Failed writing {name}; "
                    f"already published: {', '.join(written) or 'none'}"
                ) from e
            written.append(name)
            logger.debug("[%s] Wrote %s", self._network, name)

        logger.info("[%s] Published %d snapshots", self._network, len(written))
        return written
