"""In-process record store. State is lost on restart."""

from __future__ import annotations

import asyncio

from lnpaywall.invoice import InvoiceMetadata


class MemoryStore:
    """Dict-backed ``AtomicRecordStore``.

    Records are kept JSON-encoded so callers never share a mutable object
    with the store.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def put(self, key: str, metadata: InvoiceMetadata) -> None:
        async with self._lock:
            self._data[key] = metadata.to_json()

    async def get(self, key: str) -> InvoiceMetadata | None:
        async with self._lock:
            raw = self._data.get(key)
        if raw is None:
            return None
        return InvoiceMetadata.from_json(raw)

    async def mark_used(self, key: str) -> bool:
        async with self._lock:
            raw = self._data.get(key)
            if raw is None:
                return False
            metadata = InvoiceMetadata.from_json(raw)
            if metadata.used:
                return False
            self._data[key] = metadata.mark_used().to_json()
            return True

    @property
    def size(self) -> int:
        """Number of stored records."""
        return len(self._data)
