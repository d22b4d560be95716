"""Record store on a shared Redis server.

Lets several gate processes on different hosts share anti-replay state.
Requires: pip install 'lnpaywall[redis]'
"""

from __future__ import annotations

import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from lnpaywall.config import RedisOptions
from lnpaywall.invoice import InvoiceMetadata
from lnpaywall.record_store import StoreError

logger = logging.getLogger(__name__)


class RedisStore:
    """``AtomicRecordStore`` keeping one JSON string per payment hash.

    ``mark_used`` is an optimistic WATCH/MULTI transaction, retried until
    it either commits or finds the record already used.

    Pass ``client`` to share an existing connection pool; the store then
    leaves closing it to the caller.
    """

    def __init__(
        self,
        options: RedisOptions | None = None,
        *,
        client: Redis | None = None,
    ) -> None:
        opts = (options or RedisOptions()).with_defaults()
        self._prefix = opts.key_prefix
        self._owns_client = client is None
        if client is None:
            host, _, port = opts.address.rpartition(":")
            client = Redis(
                host=host or opts.address,
                port=int(port) if host else 6379,
                password=opts.password or None,
                db=opts.db,
            )
        self._client = client

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    # -- RecordStore ----------------------------------------------------------

    async def put(self, key: str, metadata: InvoiceMetadata) -> None:
        try:
            await self._client.set(self._key(key), metadata.to_json())
        except RedisError as e:
            raise StoreError(f"Redis store error: {e}") from e

    async def get(self, key: str) -> InvoiceMetadata | None:
        try:
            raw = await self._client.get(self._key(key))
        except RedisError as e:
            raise StoreError(f"Redis store error: {e}") from e
        if raw is None:
            return None
        return InvoiceMetadata.from_json(raw)

    async def mark_used(self, key: str) -> bool:
        name = self._key(key)
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(name)
                        raw = await pipe.get(name)
                        if raw is None:
                            return False
                        metadata = InvoiceMetadata.from_json(raw)
                        if metadata.used:
                            return False
                        pipe.multi()
                        pipe.set(name, metadata.mark_used().to_json())
                        await pipe.execute()
                        return True
                    except WatchError:
                        logger.debug("Record %s changed during mark_used, retrying.", key)
        except RedisError as e:
            raise StoreError(f"Redis store error: {e}") from e

    # -- lifecycle ------------------------------------------------------------

    async def close(self) -> None:
        """Close the connection pool if this store created it."""
        if self._owns_client:
            await self._client.aclose()
