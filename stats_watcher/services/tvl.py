"""Total value locked across ovens, the liquidity pool and farms."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from decimal import Decimal

from ..config import ContractsConfig
from ..interfaces.chain import ProtocolReader
from ..models import TvlBreakdown
from ..numeric import (
    KUSD_DECIMALS,
    SHARE_TOKEN_DECIMALS,
    XTZ_DECIMALS,
    add,
    fixed_to_decimal,
    mul,
    safe_div,
)

logger = logging.getLogger(__name__)


def share_token_value(paired_reserve_in_pool: Decimal, total_share_supply: Decimal) -> Decimal:
    """kUSD redeemable per share token. Zero when no shares exist."""
    return safe_div(paired_reserve_in_pool, total_share_supply)


def farm_balance_share_model(farm_share_tokens: Decimal, share_value: Decimal) -> Decimal:
    """USD value of a farm holding liquidity pool share tokens."""
    return mul(farm_share_tokens, share_value)


def farm_balance_proportional(
    pool_tvl: Decimal, lp_tokens_in_farm: Decimal | int, lp_total_supply: Decimal | int
) -> Decimal:
    """USD value of a farm holding raw LP tokens: its share of the pool's TVL."""
    return mul(pool_tvl, safe_div(lp_tokens_in_farm, lp_total_supply))


def quipuswap_pool_tvl(kusd_in_pool: Decimal, xtz_in_pool: Decimal, xtz_price: Decimal) -> Decimal:
    """USD value of both sides of the kUSD/XTZ pool, taking kUSD at $1."""
    return add(kusd_in_pool, mul(xtz_in_pool, xtz_price))


def total_tvl(
    oven_collateral_usd: Decimal,
    liquidity_pool_usd: Decimal,
    farm_balances_usd: Iterable[Decimal],
) -> Decimal:
    return add(oven_collateral_usd, liquidity_pool_usd, *farm_balances_usd)


async def fetch_tvl(
    reader: ProtocolReader,
    contracts: ContractsConfig,
    oven_collateral_usd: Decimal,
    xtz_price: Decimal,
    network: str = "",
) -> TvlBreakdown:
    """Read pool and farm holdings and combine them with oven collateral."""
    (
        liquidity_pool_kusd,
        kusd_farm_kusd,
        share_supply,
        farm_share_tokens,
        quipuswap_kusd,
        quipuswap_xtz,
        lp_in_farm,
        quipuswap_reserves,
    ) = await asyncio.gather(
        reader.get_token_balance(contracts.liquidity_pool, contracts.token),
        reader.get_token_balance(contracts.kusd_farm, contracts.token),
        reader.get_share_total_supply(contracts.liquidity_pool),
        reader.get_token_balance(contracts.qlkusd_farm, contracts.liquidity_pool),
        reader.get_token_balance(contracts.quipuswap_pool, contracts.token),
        reader.get_native_balance(contracts.quipuswap_pool),
        reader.get_lp_balance(contracts.kusd_lp_farm, contracts.quipuswap_pool),
        reader.get_pool_reserves(contracts.quipuswap_pool),
    )

    liquidity_pool_usd = fixed_to_decimal(liquidity_pool_kusd, KUSD_DECIMALS)
    kusd_farm_usd = fixed_to_decimal(kusd_farm_kusd, KUSD_DECIMALS)

    share_value = share_token_value(
        liquidity_pool_usd, fixed_to_decimal(share_supply, SHARE_TOKEN_DECIMALS)
    )
    share_farm_usd = farm_balance_share_model(
        fixed_to_decimal(farm_share_tokens, SHARE_TOKEN_DECIMALS), share_value
    )

    pool_tvl = quipuswap_pool_tvl(
        fixed_to_decimal(quipuswap_kusd, KUSD_DECIMALS),
        fixed_to_decimal(quipuswap_xtz, XTZ_DECIMALS),
        xtz_price,
    )
    lp_farm_usd = farm_balance_proportional(
        pool_tvl, lp_in_farm, quipuswap_reserves.total_supply
    )

    logger.info("[%s] TVL Quipu: %s", network, pool_tvl)
    logger.info("[%s] Total LPs %d", network, quipuswap_reserves.total_supply)
    logger.info("[%s] LPs in Farm %d", network, lp_in_farm)

    farm_balances = (kusd_farm_usd, share_farm_usd, lp_farm_usd)
    return TvlBreakdown(
        oven_collateral_usd=oven_collateral_usd,
        liquidity_pool_usd=liquidity_pool_usd,
        kusd_farm_usd=kusd_farm_usd,
        share_farm_usd=share_farm_usd,
        lp_farm_usd=lp_farm_usd,
        total_farm_usd=add(*farm_balances),
        total_usd=total_tvl(oven_collateral_usd, liquidity_pool_usd, farm_balances),
    )
