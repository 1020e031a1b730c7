"""Kolibri protocol reader — typed protocol reads over a chain client."""
from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from ...config import NetworkConfig
from ...errors import SchemaError
from ...interfaces.chain import ChainClient
from ...models import PoolReserves
from ...numeric import XTZ_DECIMALS, fixed_to_decimal
from . import decoders, interest

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KolibriReader:
    """Reads oven, token, pool and oracle state for one network.

    The minter storage is fetched once per reader and shared by every
    accrued-fee read, so build a fresh reader for each pass and close it
    when the pass ends.
    """

    def __init__(
        self,
        chain_client: ChainClient,
        config: NetworkConfig,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._client = chain_client
        self._contracts = config.contracts
        self._oracle_asset = config.oracle_asset
        self._clock = clock
        self._minter_task: asyncio.Future[decoders.MinterState] | None = None

    async def _fetch_minter_state(self) -> decoders.MinterState:
        storage = await self._client.get_storage(self._contracts.minter)
        minter = decoders.decode_minter_state(storage)
        logger.debug(
            "Minter interest index %d, stability fee %d",
            minter.interest_index,
            minter.stability_fee,
        )
        return minter

    async def _minter_state(self) -> decoders.MinterState:
        if self._minter_task is None:
            self._minter_task = asyncio.ensure_future(self._fetch_minter_state())
        return await asyncio.shield(self._minter_task)

    async def close(self) -> None:
        """Cancel a minter read still in flight, e.g. after a pass timeout."""
        task, self._minter_task = self._minter_task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _oven_state(self, oven_address: str) -> decoders.OvenState:
        storage = await self._client.get_storage(oven_address)
        return decoders.decode_oven_state(storage)

    # ------------------------------------------------------------------
    # Oven reads
    # ------------------------------------------------------------------

    async def get_custodian(self, oven_address: str) -> str | None:
        return await self._client.get_delegate(oven_address)

    async def get_collateral_balance(self, oven_address: str) -> int:
        return await self._client.get_balance(oven_address)

    async def get_borrowed_amount(self, oven_address: str) -> int:
        return (await self._oven_state(oven_address)).borrowed_tokens

    async def get_accrued_fee(self, oven_address: str) -> int:
        oven, minter = await asyncio.gather(
            self._oven_state(oven_address), self._minter_state()
        )
        global_index = interest.current_interest_index(minter, self._clock())
        return interest.accrued_fee(oven, global_index)

    async def is_liquidated(self, oven_address: str) -> bool:
        return (await self._oven_state(oven_address)).is_liquidated

    # ------------------------------------------------------------------
    # Protocol-wide reads
    # ------------------------------------------------------------------

    async def get_oracle_price(self) -> Decimal:
        """XTZ/USD price from the Harbinger normalizer."""
        value = await self._client.get_bigmap_value(
            self._contracts.oracle, "assetMap", self._oracle_asset
        )
        if value is None:
            raise SchemaError(
                f"Oracle has no entry for asset {self._oracle_asset}"
            )
        return fixed_to_decimal(decoders.decode_oracle_price(value, self._oracle_asset), XTZ_DECIMALS)

    async def get_stability_fee_apy(self) -> int:
        minter = await self._minter_state()
        return interest.stability_fee_apy(minter.stability_fee)

    async def get_token_balance(self, holder: str, token: str) -> int:
        """Raw FA1.2 balance of ``holder`` in ``token``."""
        value = await self._client.get_bigmap_value(token, "balances", holder)
        return decoders.decode_ledger_balance(value, f"balance of {holder} in {token}")

    async def get_native_balance(self, address: str) -> int:
        return await self._client.get_balance(address)

    async def get_pool_reserves(self, pool_address: str) -> PoolReserves:
        storage = await self._client.get_storage(pool_address)
        return decoders.decode_pool_reserves(storage)

    async def get_lp_balance(self, holder: str, pool_address: str) -> int:
        value = await self._client.get_bigmap_value(pool_address, "storage.ledger", holder)
        return decoders.decode_ledger_balance(
            value, f"LP balance of {holder} in {pool_address}"
        )

    async def get_share_total_supply(self, liquidity_pool: str) -> int:
        storage = await self._client.get_storage(liquidity_pool)
        return decoders.decode_share_supply(storage)
