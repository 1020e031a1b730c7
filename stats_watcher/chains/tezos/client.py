"""Tezos indexer REST client with endpoint fallback."""
from __future__ import annotations

import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import NetworkConfig
from ...errors import SchemaError, TransportError

logger = logging.getLogger(__name__)

# TzKT answers 204 for a missing key. Any other non-200 is a failed read.
_EMPTY_STATUS = 204


class TezosClient:
    """Read-only Tezos client over a TzKT-compatible indexer API.

    One ``aiohttp`` session is shared by every read; call :meth:`close` when
    done. Endpoints are tried in order starting from the last one that worked.
    """

    def __init__(self, config: NetworkConfig) -> None:
        self.network = config.name
        self.endpoints = list(config.indexer_endpoints)
        self.timeout = config.request_timeout
        self.current_endpoint_index = 0
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            ssl_context = ssl.create_default_context(cafile=certifi.where())
            connector = aiohttp.TCPConnector(ssl=ssl_context)
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def get_json(
        self, path: str, params: dict[str, Any] | None = None
    ) -> Any | None:
        """GET ``path`` from the indexer, falling back across endpoints.

        Returns None when the indexer answers 204 No Content.

        Raises:
            TransportError: if every endpoint fails.
        """
        session = self._get_session()

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            index = (self.current_endpoint_index + attempt) % len(self.endpoints)
            url = self.endpoints[index].rstrip("/") + path

            try:
                async with session.get(url, params=params) as response:
                    if response.status == _EMPTY_STATUS:
                        result = None
                    elif response.status != 200:
                        raise TransportError(f"HTTP {response.status} from {url}")
                    else:
                        result = await response.json()

                    if index != self.current_endpoint_index:
                        logger.info(
                            "[%s] Switched to indexer endpoint: %s",
                            self.network,
                            self.endpoints[index],
                        )
                        self.current_endpoint_index = index

                    return result
            except Exception as e:
                last_error = e
                logger.warning("[%s] Indexer endpoint %s failed: %s", self.network, url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

        raise TransportError(
            f"[{self.network}] All indexer endpoints failed for {path}. "
            f"Last error: {last_error}"
        )

    async def get_storage(self, address: str) -> Any:
        """Get the JSON storage of a contract."""
        storage = await self.get_json(f"/v1/contracts/{address}/storage")
        if storage is None:
            raise SchemaError(f"Contract {address} has no storage")
        return storage

    async def get_balance(self, address: str) -> int:
        """Get the native balance of an address, in mutez."""
        balance = await self.get_json(f"/v1/accounts/{address}/balance")
        if balance is None:
            return 0
        try:
            return int(balance)
        except (TypeError, ValueError) as e:
            raise SchemaError(f"Balance of {address} is not an integer: {balance!r}") from e

    async def get_delegate(self, address: str) -> str | None:
        """Get the delegate (baker) address of an account, if any."""
        account = await self.get_json(f"/v1/accounts/{address}")
        if account is None:
            return None
        if not isinstance(account, dict):
            raise SchemaError(f"Account {address} is not an object")
        delegate = account.get("delegate")
        if delegate is None:
            return None
        if not isinstance(delegate, dict) or not isinstance(delegate.get("address"), str):
            raise SchemaError(f"Account {address} has a malformed delegate")
        return delegate["address"]

    async def get_bigmap_value(self, address: str, path: str, key: str) -> Any | None:
        """Get the value stored under ``key`` in a contract's big map at ``path``."""
        entry = await self.get_json(
            f"/v1/contracts/{address}/bigmaps/{path}/keys/{key}"
        )
        if entry is None:
            return None
        if not isinstance(entry, dict) or "value" not in entry:
            raise SchemaError(f"Big map entry {path}[{key}] of {address} has no value")
        if entry.get("active") is False:
            return None
        return entry["value"]

    async def get_bigmap_keys(
        self, bigmap_id: int, limit: int, offset: int
    ) -> list[dict[str, Any]]:
        """Get one page of ``{key, value}`` records from a big map."""
        page = await self.get_json(
            f"/v1/bigmaps/{bigmap_id}/keys",
            params={"limit": limit, "offset": offset, "select": "key,value"},
        )
        if page is None:
            raise SchemaError(f"Big map {bigmap_id} returned no page")
        if not isinstance(page, list):
            raise SchemaError(f"Big map {bigmap_id} page is not a list")
        return page
