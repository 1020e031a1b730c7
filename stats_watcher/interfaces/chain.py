"""Chain-read protocols — indexer access and protocol-level reads."""
from decimal import Decimal
from typing import Any, Protocol

from ..models import PoolReserves


class ChainClient(Protocol):
    """Read-only access to contract storage, balances and big maps."""

    async def get_storage(self, address: str) -> Any: ...

    async def get_balance(self, address: str) -> int: ...

    async def get_delegate(self, address: str) -> str | None: ...

    async def get_bigmap_value(self, address: str, path: str, key: str) -> Any | None: ...

    async def get_bigmap_keys(
        self, bigmap_id: int, limit: int, offset: int
    ) -> list[dict[str, Any]]: ...


class ProtocolReader(Protocol):
    """Typed reads of stablecoin protocol state."""

    async def get_custodian(self, oven_address: str) -> str | None: ...

    async def get_collateral_balance(self, oven_address: str) -> int: ...

    async def get_borrowed_amount(self, oven_address: str) -> int: ...

    async def get_accrued_fee(self, oven_address: str) -> int: ...

    async def is_liquidated(self, oven_address: str) -> bool: ...

    async def get_oracle_price(self) -> Decimal: ...

    async def get_stability_fee_apy(self) -> int: ...

    async def get_token_balance(self, holder: str, token: str) -> int: ...

    async def get_native_balance(self, address: str) -> int: ...

    async def get_pool_reserves(self, pool_address: str) -> PoolReserves: ...

    async def get_lp_balance(self, holder: str, pool_address: str) -> int: ...

    async def get_share_total_supply(self, liquidity_pool: str) -> int: ...

    async def close(self) -> None: ...
