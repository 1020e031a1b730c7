"""Typed decoders for Kolibri contract storage — no I/O.

The indexer returns Michelson values as JSON: nats as decimal strings,
addresses as strings, bools as JSON booleans. Every decoder checks the shape
it relies on and raises :class:`SchemaError` instead of letting a missing
field surface later as a ``KeyError`` or ``TypeError``.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ...errors import SchemaError
from ...models import AccountLocator, PoolReserves


@dataclass(frozen=True)
class OvenState:
    borrowed_tokens: int
    stability_fee_tokens: int
    interest_index: int
    is_liquidated: bool


@dataclass(frozen=True)
class MinterState:
    interest_index: int
    stability_fee: int
    last_interest_index_update: datetime


def require_field(value: Any, name: str, context: str) -> Any:
    """Return ``value[name]``, raising SchemaError if absent."""
    if not isinstance(value, dict):
        raise SchemaError(f"{context}: expected an object, got {type(value).__name__}")
    if name not in value:
        raise SchemaError(f"{context}: missing field '{name}'")
    return value[name]


def decode_nat(value: Any, context: str) -> int:
    """Decode a Michelson nat (JSON string or int) into a non-negative int."""
    if isinstance(value, bool):
        raise SchemaError(f"{context}: expected a nat, got a bool")
    try:
        result = int(value)
    except (TypeError, ValueError) as e:
        raise SchemaError(f"{context}: expected a nat, got {value!r}") from e
    if result < 0:
        raise SchemaError(f"{context}: expected a nat, got {result}")
    return result


def decode_bool(value: Any, context: str) -> bool:
    if not isinstance(value, bool):
        raise SchemaError(f"{context}: expected a bool, got {value!r}")
    return value


def decode_address(value: Any, context: str) -> str:
    if not isinstance(value, str) or not value:
        raise SchemaError(f"{context}: expected an address, got {value!r}")
    return value


def decode_timestamp(value: Any, context: str) -> datetime:
    """Decode an ISO-8601 timestamp as returned by the indexer."""
    if not isinstance(value, str):
        raise SchemaError(f"{context}: expected a timestamp, got {value!r}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise SchemaError(f"{context}: invalid timestamp {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def decode_registry_entry(entry: Any) -> AccountLocator:
    """Decode a ``{key, value}`` oven registry record into a locator."""
    context = "oven registry entry"
    return AccountLocator(
        account_address=decode_address(require_field(entry, "key", context), f"{context} key"),
        owner_address=decode_address(require_field(entry, "value", context), f"{context} value"),
    )


def decode_oven_state(storage: Any) -> OvenState:
    context = "oven storage"
    return OvenState(
        borrowed_tokens=decode_nat(
            require_field(storage, "borrowedTokens", context), f"{context}.borrowedTokens"
        ),
        stability_fee_tokens=decode_nat(
            require_field(storage, "stabilityFeeTokens", context),
            f"{context}.stabilityFeeTokens",
        ),
        interest_index=decode_nat(
            require_field(storage, "interestIndex", context), f"{context}.interestIndex"
        ),
        is_liquidated=decode_bool(
            require_field(storage, "isLiquidated", context), f"{context}.isLiquidated"
        ),
    )


def decode_minter_state(storage: Any) -> MinterState:
    context = "minter storage"
    return MinterState(
        interest_index=decode_nat(
            require_field(storage, "interestIndex", context), f"{context}.interestIndex"
        ),
        stability_fee=decode_nat(
            require_field(storage, "stabilityFee", context), f"{context}.stabilityFee"
        ),
        last_interest_index_update=decode_timestamp(
            require_field(storage, "lastInterestIndexUpdateTime", context),
            f"{context}.lastInterestIndexUpdateTime",
        ),
    )


def decode_oracle_price(value: Any, asset: str) -> int:
    """Decode a Harbinger normalizer asset map entry into a 6-decimal price."""
    context = f"oracle asset {asset}"
    return decode_nat(require_field(value, "computedPrice", context), f"{context}.computedPrice")


def decode_ledger_balance(value: Any, context: str) -> int:
    """Decode an FA1.2 ledger entry. A missing entry is a zero balance."""
    if value is None:
        return 0
    return decode_nat(require_field(value, "balance", context), f"{context}.balance")


def decode_pool_reserves(storage: Any) -> PoolReserves:
    """Decode a Quipuswap pool's reserves and LP token supply."""
    context = "quipuswap storage"
    inner = require_field(storage, "storage", context)
    return PoolReserves(
        token_pool=decode_nat(require_field(inner, "token_pool", context), f"{context}.token_pool"),
        tez_pool=decode_nat(require_field(inner, "tez_pool", context), f"{context}.tez_pool"),
        total_supply=decode_nat(
            require_field(inner, "total_supply", context), f"{context}.total_supply"
        ),
    )


def decode_share_supply(storage: Any) -> int:
    """Decode the liquidity pool's share token (QLkUSD) total supply."""
    context = "liquidity pool storage"
    return decode_nat(require_field(storage, "totalSupply", context), f"{context}.totalSupply")
