"""Stability fee accrual math for Kolibri ovens."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from ...numeric import CONTEXT
from .decoders import MinterState, OvenState

PRECISION = 10**18
COMPOUND_PERIOD_SECONDS = 60
PERIODS_PER_YEAR = 365 * 24 * 60


def current_interest_index(minter: MinterState, now: datetime) -> int:
    """Global interest index compounded linearly from the last update to ``now``."""
    elapsed = (now - minter.last_interest_index_update).total_seconds()
    periods = max(0, int(elapsed) // COMPOUND_PERIOD_SECONDS)
    return minter.interest_index * (PRECISION + periods * minter.stability_fee) // PRECISION


def accrued_fee(oven: OvenState, global_interest_index: int) -> int:
    """Stability fees owed by an oven, in kUSD base units.

    Fees accrue on principal plus previously accrued fees since the oven's own
    interest index was last checkpointed.
    """
    if oven.interest_index == 0:
        return oven.stability_fee_tokens

    principal_with_fees = oven.borrowed_tokens + oven.stability_fee_tokens
    ratio = global_interest_index * PRECISION // oven.interest_index
    accrued_total = principal_with_fees * ratio // PRECISION
    return max(oven.stability_fee_tokens, accrued_total - oven.borrowed_tokens)


def stability_fee_apy(stability_fee: int) -> int:
    """Annualized stability fee as an 18-decimal fixed-point fraction."""
    per_period = CONTEXT.add(Decimal(1), CONTEXT.scaleb(Decimal(stability_fee), -18))
    yearly = CONTEXT.power(per_period, PERIODS_PER_YEAR)
    return int(CONTEXT.scaleb(CONTEXT.subtract(yearly, Decimal(1)), 18))
