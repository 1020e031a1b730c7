"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class AccountLocator:
    """An oven address and its owner, as listed in the oven registry."""

    account_address: str
    owner_address: str


@dataclass(frozen=True)
class AccountRecord:
    """State of one oven for the current pass.

    Quantities are raw fixed-point integers: collateral in mutez (6 decimals),
    debt in kUSD base units (18 decimals).
    """

    locator: AccountLocator
    custodian: str | None
    collateral_balance: int
    borrowed_amount: int
    accrued_fee: int
    liquidated: bool
    outstanding_debt: int

    def __post_init__(self) -> None:
        if self.outstanding_debt != self.borrowed_amount + self.accrued_fee:
            raise ValueError(
                "outstanding_debt must equal borrowed_amount + accrued_fee"
            )

    @classmethod
    def build(
        cls,
        locator: AccountLocator,
        custodian: str | None,
        collateral_balance: int,
        borrowed_amount: int,
        accrued_fee: int,
        liquidated: bool,
    ) -> AccountRecord:
        return cls(
            locator=locator,
            custodian=custodian,
            collateral_balance=collateral_balance,
            borrowed_amount=borrowed_amount,
            accrued_fee=accrued_fee,
            liquidated=liquidated,
            outstanding_debt=borrowed_amount + accrued_fee,
        )

    @property
    def account_address(self) -> str:
        return self.locator.account_address

    @property
    def owner_address(self) -> str:
        return self.locator.owner_address


@dataclass(frozen=True)
class ExchangePegSample:
    """kUSD price on one exchange compared with its reference price."""

    exchange_name: str
    network: str
    reference_price: Decimal
    implied_price: Decimal
    peg_deviation_percent: Decimal


@dataclass(frozen=True)
class PoolReserves:
    """Reserves of a token/XTZ constant-product pool, raw fixed-point."""

    token_pool: int
    tez_pool: int
    total_supply: int


@dataclass(frozen=True)
class TvlBreakdown:
    """USD value locked in each part of the protocol."""

    oven_collateral_usd: Decimal
    liquidity_pool_usd: Decimal
    kusd_farm_usd: Decimal
    share_farm_usd: Decimal
    lp_farm_usd: Decimal
    total_farm_usd: Decimal
    total_usd: Decimal
