"""Blob storage protocol."""
from typing import Any, Protocol


class BlobStorage(Protocol):
    """Publicly readable JSON blob store keyed by name."""

    async def write_named_blob(self, payload: Any, name: str) -> None: ...
