"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Contracts a network cannot run without. Plenty contracts are optional.
MANDATORY_CONTRACTS = (
    "token",
    "minter",
    "oracle",
    "liquidity_pool",
    "kusd_farm",
    "qlkusd_farm",
    "kusd_lp_farm",
    "quipuswap_pool",
)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WatcherConfig:
    loop_delay_seconds: float = 300.0
    pass_timeout_seconds: float | None = None
    max_concurrent_reads: int = 0
    registry_page_size: int = 100
    test_mode: bool = False


@dataclass(frozen=True)
class ContractsConfig:
    token: str = ""
    minter: str = ""
    oracle: str = ""
    liquidity_pool: str = ""
    kusd_farm: str = ""
    qlkusd_farm: str = ""
    kusd_lp_farm: str = ""
    quipuswap_pool: str = ""
    plenty_pool: str = ""
    plenty_token: str = ""
    plenty_quipuswap_pool: str = ""


@dataclass(frozen=True)
class NetworkConfig:
    name: str = ""
    indexer_endpoints: tuple[str, ...] = ()
    request_timeout: int = 30
    registry_bigmap_id: int = 0
    oracle_asset: str = "XTZ-USD"
    contracts: ContractsConfig = field(default_factory=ContractsConfig)


@dataclass(frozen=True)
class MetricsConfig:
    prefix: str = "kolibri"
    port: int = 9108


@dataclass(frozen=True)
class StorageConfig:
    bucket: str = "kolibri-data"
    region: str = ""


@dataclass(frozen=True)
class ErrorReportingConfig:
    dsn: str = ""
    environment: str = "production"


@dataclass(frozen=True)
class SinksConfig:
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    error_reporting: ErrorReportingConfig = field(default_factory=ErrorReportingConfig)


@dataclass(frozen=True)
class AppConfig:
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    networks: dict[str, NetworkConfig] = field(default_factory=dict)
    sinks: SinksConfig = field(default_factory=SinksConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def _build_watcher(raw: dict[str, Any]) -> WatcherConfig:
    return WatcherConfig(
        loop_delay_seconds=float(raw.get("loop_delay_seconds", 300.0)),
        pass_timeout_seconds=_optional_float(raw.get("pass_timeout_seconds")),
        max_concurrent_reads=int(raw.get("max_concurrent_reads", 0) or 0),
        registry_page_size=int(raw.get("registry_page_size", 100)),
        test_mode=bool(raw.get("test_mode", False)),
    )


def _build_contracts(raw: dict[str, Any]) -> ContractsConfig:
    return ContractsConfig(
        **{
            name: str(raw.get(name) or "")
            for name in ContractsConfig.__dataclass_fields__
        }
    )


def _build_networks(raw: dict[str, Any]) -> dict[str, NetworkConfig]:
    networks: dict[str, NetworkConfig] = {}
    for name, cfg in raw.items():
        try:
            bigmap_id = int(cfg.get("registry_bigmap_id") or 0)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Network '{name}' has an invalid registry_bigmap_id"
            ) from e
        networks[name] = NetworkConfig(
            name=name,
            indexer_endpoints=tuple(
                e for e in cfg.get("indexer_endpoints", []) if e
            ),
            request_timeout=int(cfg.get("request_timeout", 30)),
            registry_bigmap_id=bigmap_id,
            oracle_asset=cfg.get("oracle_asset", "XTZ-USD"),
            contracts=_build_contracts(cfg.get("contracts", {}) or {}),
        )
    return networks


def _build_sinks(raw: dict[str, Any]) -> SinksConfig:
    metrics = raw.get("metrics", {}) or {}
    storage = raw.get("storage", {}) or {}
    errors = raw.get("error_reporting", {}) or {}
    return SinksConfig(
        metrics=MetricsConfig(
            prefix=metrics.get("prefix", "kolibri"),
            port=int(metrics.get("port", 9108)),
        ),
        storage=StorageConfig(
            bucket=storage.get("bucket", "kolibri-data"),
            region=storage.get("region", ""),
        ),
        error_reporting=ErrorReportingConfig(
            dsn=errors.get("dsn", ""),
            environment=errors.get("environment", "production"),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).

    Raises:
        ConfigurationError: if the file is missing or mandatory settings are
            absent.
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    watcher = _build_watcher(raw.get("watcher", {}) or {})
    if os.environ.get("TEST") is not None:
        watcher = replace(watcher, test_mode=True)

    cfg = AppConfig(
        watcher=watcher,
        networks=_build_networks(raw.get("networks", {}) or {}),
        sinks=_build_sinks(raw.get("sinks", {}) or {}),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise ConfigurationError on invalid configuration."""
    if not cfg.networks:
        raise ConfigurationError("At least one network must be configured")

    if cfg.watcher.registry_page_size <= 0:
        raise ConfigurationError("registry_page_size must be positive")

    for name, network in cfg.networks.items():
        if not network.indexer_endpoints:
            raise ConfigurationError(f"Network '{name}' has no indexer endpoints")
        if network.registry_bigmap_id <= 0:
            raise ConfigurationError(f"Network '{name}' has no registry_bigmap_id")
        missing = [
            contract
            for contract in MANDATORY_CONTRACTS
            if not getattr(network.contracts, contract)
        ]
        if missing:
            raise ConfigurationError(
                f"Network '{name}' is missing contracts: {', '.join(missing)}"
            )
