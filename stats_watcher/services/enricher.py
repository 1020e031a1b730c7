"""Per-oven enrichment — five parallel chain reads per locator."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Iterable
from typing import Any

from ..interfaces.chain import ProtocolReader
from ..models import AccountLocator, AccountRecord

logger = logging.getLogger(__name__)


async def _gather_or_cancel(aws: Iterable[Awaitable[Any]]) -> list[Any]:
    """Like ``asyncio.gather``, but the first failure cancels every sibling.

    Nothing keeps reading the chain once the batch has failed, and
    cancelling the caller cancels the whole batch.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []

    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    failed = [t for t in tasks if t in done and not t.cancelled() and t.exception() is not None]
    if failed:
        raise failed[0].exception()
    return [task.result() for task in tasks]


async def enrich_account(locator: AccountLocator, reader: ProtocolReader) -> AccountRecord:
    """Build the AccountRecord for one oven.

    The five reads run concurrently and are not pinned to one block, so
    fields may reflect slightly different chain heights.
    """
    address = locator.account_address
    custodian, balance, borrowed, fee, liquidated = await _gather_or_cancel(
        [
            reader.get_custodian(address),
            reader.get_collateral_balance(address),
            reader.get_borrowed_amount(address),
            reader.get_accrued_fee(address),
            reader.is_liquidated(address),
        ]
    )

    return AccountRecord.build(
        locator=locator,
        custodian=custodian,
        collateral_balance=balance,
        borrowed_amount=borrowed,
        accrued_fee=fee,
        liquidated=liquidated,
    )


async def enrich_accounts(
    locators: list[AccountLocator],
    reader: ProtocolReader,
    max_concurrency: int | None = None,
) -> list[AccountRecord]:
    """Enrich every locator concurrently. All-or-nothing.

    Args:
        locators: Ovens to enrich.
        reader: Protocol reader for the network.
        max_concurrency: Maximum ovens in flight at once. ``None`` or ``0``
            leaves the fan-out unbounded.

    Raises:
        Exception: the first read failure. Enrichments still in flight or
            queued are cancelled before it propagates; no partial list is
            returned.
    """
    if not max_concurrency:
        return await _gather_or_cancel(enrich_account(loc, reader) for loc in locators)

    semaphore = asyncio.Semaphore(max_concurrency)

    async def bounded(locator: AccountLocator) -> AccountRecord:
        async with semaphore:
            return await enrich_account(locator, reader)

    logger.debug(
        "Enriching %d ovens with at most %d in flight", len(locators), max_concurrency
    )
    return await _gather_or_cancel(bounded(loc) for loc in locators)
