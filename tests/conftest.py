"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from decimal import Decimal
from pathlib import Path

import pytest

from stats_watcher.config import (
    AppConfig,
    ContractsConfig,
    NetworkConfig,
    SinksConfig,
    WatcherConfig,
)
from stats_watcher.models import AccountLocator, AccountRecord, PoolReserves


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_contracts() -> ContractsConfig:
    return ContractsConfig(
        token="KT1TOKEN",
        minter="KT1MINTER",
        oracle="KT1ORACLE",
        liquidity_pool="KT1LP",
        kusd_farm="KT1KUSDFARM",
        qlkusd_farm="KT1QLKUSDFARM",
        kusd_lp_farm="KT1LPFARM",
        quipuswap_pool="KT1QUIPU",
        plenty_pool="KT1PLENTYPOOL",
        plenty_token="KT1PLENTY",
        plenty_quipuswap_pool="KT1PLENTYQUIPU",
    )


@pytest.fixture()
def sample_network_config(sample_contracts: ContractsConfig) -> NetworkConfig:
    return NetworkConfig(
        name="mainnet",
        indexer_endpoints=("https://idx1.example.com", "https://idx2.example.com"),
        request_timeout=10,
        registry_bigmap_id=383,
        contracts=sample_contracts,
    )


@pytest.fixture()
def sample_app_config(sample_network_config: NetworkConfig) -> AppConfig:
    return AppConfig(
        watcher=WatcherConfig(loop_delay_seconds=300, max_concurrent_reads=5),
        networks={"mainnet": sample_network_config},
        sinks=SinksConfig(),
    )


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


def make_record(
    address: str,
    balance: int = 0,
    borrowed: int = 0,
    fee: int = 0,
    liquidated: bool = False,
    custodian: str | None = "tz1BAKER",
) -> AccountRecord:
    return AccountRecord.build(
        locator=AccountLocator(account_address=address, owner_address=f"tz1{address}"),
        custodian=custodian,
        collateral_balance=balance,
        borrowed_amount=borrowed,
        accrued_fee=fee,
        liquidated=liquidated,
    )


@pytest.fixture()
def record_factory():
    return make_record


@pytest.fixture()
def sample_records() -> list[AccountRecord]:
    return [
        make_record("KT1OVEN1", balance=10, borrowed=5),
        make_record("KT1OVEN2", balance=20, borrowed=5),
    ]


# ---------------------------------------------------------------------------
# Fake protocol reader
# ---------------------------------------------------------------------------


class FakeReader:
    """In-memory ProtocolReader. Unknown balances read as zero."""

    def __init__(self) -> None:
        self.ovens: dict[str, dict] = {}
        self.token_balances: dict[tuple[str, str], int] = {}
        self.native_balances: dict[str, int] = {}
        self.pools: dict[str, PoolReserves] = {}
        self.lp_balances: dict[tuple[str, str], int] = {}
        self.share_supply = 0
        self.oracle_price = Decimal("2")
        self.apy = 0
        self.failing_ovens: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    def add_oven(self, address: str, **state) -> None:
        self.ovens[address] = {
            "custodian": None,
            "balance": 0,
            "borrowed": 0,
            "fee": 0,
            "liquidated": False,
            **state,
        }

    def _oven(self, op: str, address: str) -> dict:
        self.calls.append((op, address))
        if address in self.failing_ovens:
            raise ConnectionError(f"read failed for {address}")
        return self.ovens[address]

    async def get_custodian(self, oven_address: str) -> str | None:
        return self._oven("custodian", oven_address)["custodian"]

    async def get_collateral_balance(self, oven_address: str) -> int:
        return self._oven("balance", oven_address)["balance"]

    async def get_borrowed_amount(self, oven_address: str) -> int:
        return self._oven("borrowed", oven_address)["borrowed"]

    async def get_accrued_fee(self, oven_address: str) -> int:
        return self._oven("fee", oven_address)["fee"]

    async def is_liquidated(self, oven_address: str) -> bool:
        return self._oven("liquidated", oven_address)["liquidated"]

    async def get_oracle_price(self) -> Decimal:
        return self.oracle_price

    async def get_stability_fee_apy(self) -> int:
        return self.apy

    async def get_token_balance(self, holder: str, token: str) -> int:
        return self.token_balances.get((holder, token), 0)

    async def get_native_balance(self, address: str) -> int:
        return self.native_balances.get(address, 0)

    async def get_pool_reserves(self, pool_address: str) -> PoolReserves:
        return self.pools.get(pool_address, PoolReserves(0, 0, 0))

    async def get_lp_balance(self, holder: str, pool_address: str) -> int:
        return self.lp_balances.get((holder, pool_address), 0)

    async def get_share_total_supply(self, liquidity_pool: str) -> int:
        return self.share_supply

    async def close(self) -> None:
        self.closed = True


@pytest.fixture()
def fake_reader() -> FakeReader:
    return FakeReader()


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    watcher:
      loop_delay_seconds: 60
      pass_timeout_seconds: 120
      max_concurrent_reads: 10
    networks:
      mainnet:
        indexer_endpoints: ["https://idx.example.com"]
        request_timeout: 10
        registry_bigmap_id: 383
        contracts:
          token: KT1TOKEN
          minter: KT1MINTER
          oracle: KT1ORACLE
          liquidity_pool: KT1LP
          kusd_farm: KT1KUSDFARM
          qlkusd_farm: KT1QLKUSDFARM
          kusd_lp_farm: KT1LPFARM
          quipuswap_pool: KT1QUIPU
    sinks:
      metrics:
        prefix: kolibri
        port: 9999
      storage:
        bucket: test-bucket
      error_reporting:
        dsn: ""
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


# ---------------------------------------------------------------------------
# Sample on-chain data
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_oven_storage() -> dict:
    return {
        "owner": "tz1OWNER",
        "borrowedTokens": "1000000000000000000000",  # 1000 kUSD
        "stabilityFeeTokens": "5000000000000000000",  # 5 kUSD
        "interestIndex": "1000000000000000000",
        "isLiquidated": False,
        "ovenProxyContractAddress": "KT1PROXY",
    }


@pytest.fixture()
def sample_minter_storage() -> dict:
    return {
        "interestIndex": "1000000000000000000",
        "stabilityFee": "0",
        "lastInterestIndexUpdateTime": "2024-01-01T00:00:00Z",
    }


@pytest.fixture()
def sample_quipuswap_storage() -> dict:
    return {
        "storage": {
            "token_pool": "200000000000000000000",  # 200 kUSD
            "tez_pool": "100000000",  # 100 XTZ
            "total_supply": "5000",
            "ledger": 12345,
        }
    }
