"""kUSD peg deviation per exchange."""
from __future__ import annotations

import asyncio
import logging
from decimal import Decimal

from ..config import ContractsConfig
from ..interfaces.chain import ProtocolReader
from ..models import ExchangePegSample
from ..numeric import (
    CONTEXT,
    HUNDRED,
    KUSD_DECIMALS,
    ONE,
    XTZ_DECIMALS,
    ZERO,
    fixed_to_decimal,
    mul,
    safe_div,
)

logger = logging.getLogger(__name__)

QUIPUSWAP = "Quipuswap"
PLENTY = "Plenty"

PLENTY_DECIMALS = 18


def compute_peg_sample(
    exchange_name: str,
    network: str,
    asset_reserve: Decimal,
    paired_reserve: Decimal,
    reference_price: Decimal,
    paired_usd_price: Decimal = ONE,
) -> ExchangePegSample | None:
    """Compare a pool's implied price with a reference price.

    ``asset_reserve / paired_reserve`` is the pool price of one paired unit in
    asset units. ``paired_usd_price`` converts it to USD when the asset side
    is not USD-denominated. Returns None when ``paired_reserve`` is zero,
    since the pool then has no usable price.
    """
    if paired_reserve == ZERO:
        logger.warning("[%s] %s pool has no paired reserve, skipping peg", network, exchange_name)
        return None

    implied_price = safe_div(asset_reserve, paired_reserve)
    implied_usd_price = mul(implied_price, paired_usd_price)
    deviation = mul(CONTEXT.subtract(safe_div(implied_usd_price, reference_price), ONE), HUNDRED)

    return ExchangePegSample(
        exchange_name=exchange_name,
        network=network,
        reference_price=reference_price,
        implied_price=implied_usd_price,
        peg_deviation_percent=deviation,
    )


async def get_quipuswap_peg(
    reader: ProtocolReader,
    contracts: ContractsConfig,
    network: str,
    xtz_price: Decimal,
) -> ExchangePegSample | None:
    """Peg on the kUSD/XTZ Quipuswap pool against the oracle XTZ price.

    The pool's kUSD-per-XTZ ratio is the XTZ price as seen through kUSD, so a
    ratio above the oracle price means kUSD trades below a dollar.
    """
    if not contracts.quipuswap_pool:
        return None

    reserves = await reader.get_pool_reserves(contracts.quipuswap_pool)
    return compute_peg_sample(
        QUIPUSWAP,
        network,
        asset_reserve=fixed_to_decimal(reserves.token_pool, KUSD_DECIMALS),
        paired_reserve=fixed_to_decimal(reserves.tez_pool, XTZ_DECIMALS),
        reference_price=xtz_price,
    )


async def get_plenty_peg(
    reader: ProtocolReader,
    contracts: ContractsConfig,
    network: str,
    xtz_price: Decimal,
) -> ExchangePegSample | None:
    """Peg on the kUSD/PLENTY pool, priced through PLENTY/XTZ and the oracle."""
    if not (
        contracts.plenty_pool
        and contracts.plenty_token
        and contracts.plenty_quipuswap_pool
    ):
        return None

    plenty_xtz_pool, plenty_in_pool, kusd_in_pool = await asyncio.gather(
        reader.get_pool_reserves(contracts.plenty_quipuswap_pool),
        reader.get_token_balance(contracts.plenty_pool, contracts.plenty_token),
        reader.get_token_balance(contracts.plenty_pool, contracts.token),
    )

    if plenty_xtz_pool.token_pool == 0:
        logger.warning("[%s] PLENTY/XTZ pool is empty, skipping Plenty peg", network)
        return None

    # XTZ per PLENTY, then USD per PLENTY.
    plenty_price_xtz = safe_div(
        fixed_to_decimal(plenty_xtz_pool.tez_pool, XTZ_DECIMALS),
        fixed_to_decimal(plenty_xtz_pool.token_pool, PLENTY_DECIMALS),
    )
    plenty_price_usd = mul(plenty_price_xtz, xtz_price)

    return compute_peg_sample(
        PLENTY,
        network,
        asset_reserve=fixed_to_decimal(plenty_in_pool, PLENTY_DECIMALS),
        paired_reserve=fixed_to_decimal(kusd_in_pool, KUSD_DECIMALS),
        reference_price=ONE,
        paired_usd_price=plenty_price_usd,
    )
