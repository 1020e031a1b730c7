"""Order-independent totals over oven records."""
from __future__ import annotations

from collections.abc import Iterable

from ..models import AccountRecord


def total_collateral(records: Iterable[AccountRecord]) -> int:
    """Sum of collateral balances, in mutez."""
    return sum((r.collateral_balance for r in records), 0)


def total_debt(records: Iterable[AccountRecord]) -> int:
    """Sum of outstanding debt (borrowed + fees), in kUSD base units."""
    return sum((r.outstanding_debt for r in records), 0)


def oven_count(records: Iterable[AccountRecord]) -> int:
    return sum(1 for _ in records)
