"""Paginated enumeration of the oven registry."""
from __future__ import annotations

import logging

from ..interfaces.chain import ChainClient
from ..models import AccountLocator
from ..protocols.kolibri.decoders import decode_registry_entry

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


async def scan_registry(
    client: ChainClient, registry_id: int, page_size: int = DEFAULT_PAGE_SIZE
) -> list[AccountLocator]:
    """Return every locator in the registry, in registry order.

    Pages are requested at increasing offsets until one comes back shorter
    than ``page_size``. Transport errors propagate to the caller.
    """
    locators: list[AccountLocator] = []
    offset = 0

    while True:
        page = await client.get_bigmap_keys(registry_id, limit=page_size, offset=offset)
        locators.extend(decode_registry_entry(entry) for entry in page)

        if len(page) < page_size:
            break

        offset += page_size

    logger.debug("Registry %s: %d locators", registry_id, len(locators))
    return locators
