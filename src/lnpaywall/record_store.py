"""Abstract persistence interface for invoice metadata.

Defines the RecordStore Protocol that PaywallGate depends on.
Concrete implementations (MemoryStore, SQLiteStore, RedisStore) live in
``lnpaywall.stores``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from lnpaywall.invoice import InvoiceMetadata


class StoreError(Exception):
    """The backing store could not be read or written."""


@runtime_checkable
class RecordStore(Protocol):
    """Async key → InvoiceMetadata store keyed by payment hash.

    Must offer read-your-writes consistency for a single key.
    ``get`` returns None when the key is unknown.
    """

    async def put(self, key: str, metadata: InvoiceMetadata) -> None: ...

    async def get(self, key: str) -> InvoiceMetadata | None: ...


@runtime_checkable
class AtomicRecordStore(RecordStore, Protocol):
    """A RecordStore that can flip ``used`` from False to True atomically.

    ``mark_used`` returns True only for the single caller that performed
    the transition; False if the record was already used or is missing.
    """

    async def mark_used(self, key: str) -> bool: ...
