"""PaywallGate: issue invoices, redeem preimages, forward paid requests.

A request without an ``X-Preimage`` header gets a fresh invoice (402).
A request with one is checked, in order: format, lookup, method binding,
path binding, replay, settlement. Only when every check passes is the
record marked used and the request forwarded.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from enum import Enum
from typing import TypeVar

from lnpaywall.adapter import RequestAdapter
from lnpaywall.config import PaywallConfig
from lnpaywall.constants import (
    BOLT11_CONTENT_TYPE,
    REASON_ALREADY_USED,
    REASON_NOT_FOUND_AT_ORACLE,
    REASON_NOT_SETTLED,
    REASON_UNKNOWN,
)
from lnpaywall.errors import ClientError, PaywallError, ServiceError
from lnpaywall.invoice import Invoice, InvoiceMetadata, InvoiceMetadataError
from lnpaywall.oracle import InvoiceNotFoundError, OracleError, SettlementOracle
from lnpaywall.preimage import PreimageFormatError, hash_preimage, validate_format
from lnpaywall.record_store import AtomicRecordStore, RecordStore, StoreError

T = TypeVar("T")

_ERROR_HEADERS = {"Content-Type": "text/plain; charset=utf-8"}


class Outcome(str, Enum):
    """Terminal state of one pass through the gate."""

    COMPLETED = "completed"  # invoice sent
    FORWARDED = "forwarded"  # protected handler ran
    REJECTED = "rejected"  # 400
    FAILED = "failed"  # 500


class PaywallGate:
    """Payment gate shared by all requests of one protected route set.

    - The oracle and store are long-lived and shared across requests.
    - Redemption of a given payment hash is serialized by a per-hash
      asyncio lock; stores implementing ``AtomicRecordStore`` additionally
      get a compare-and-set on ``used`` so several processes can share one.
    - Every oracle and store call is bounded by ``config.timeout_secs``.
    """

    def __init__(
        self,
        oracle: SettlementOracle,
        store: RecordStore,
        config: PaywallConfig | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._oracle = oracle
        self._store = store
        self._config = (config or PaywallConfig()).normalized()
        self._logger = logger or logging.getLogger(__name__)
        self._atomic = isinstance(store, AtomicRecordStore)
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_holders: dict[str, int] = {}

    @property
    def config(self) -> PaywallConfig:
        return self._config

    # -- request entry point --------------------------------------------------

    async def handle(self, adapter: RequestAdapter) -> Outcome:
        """Run one request through the gate and return where it ended."""
        preimage = adapter.preimage_header()
        method = adapter.method()
        path = adapter.path()

        if not preimage:
            try:
                invoice = await self.issue_invoice(method, path)
            except PaywallError as e:
                await self._respond_error(adapter, e)
                return Outcome.FAILED
            await adapter.respond(
                402,
                {"Content-Type": BOLT11_CONTENT_TYPE},
                invoice.payment_request.encode(),
            )
            return Outcome.COMPLETED

        try:
            await self.redeem(preimage, method, path)
        except ClientError as e:
            await self._respond_error(adapter, e)
            return Outcome.REJECTED
        except ServiceError as e:
            await self._respond_error(adapter, e)
            return Outcome.FAILED

        await adapter.continue_to_next()
        return Outcome.FORWARDED

    # -- issuance -------------------------------------------------------------

    async def issue_invoice(self, method: str, path: str) -> Invoice:
        """Create an invoice and record its method/path binding.

        The binding is stored before the invoice is returned: an invoice
        without a record could be paid but never redeemed.
        """
        try:
            invoice = await self._bounded(
                self._oracle.generate_invoice(self._config.price_sats, self._config.memo)
            )
        except asyncio.TimeoutError as e:
            raise self._fail("Couldn't generate invoice: oracle timed out", None, e) from e
        except OracleError as e:
            raise self._fail(f"Couldn't generate invoice: {e}", None, e) from e

        metadata = InvoiceMetadata(
            implementation_id=invoice.implementation_id, method=method, path=path,
        )
        try:
            await self._bounded(self._store.put(invoice.payment_hash, metadata))
        except asyncio.TimeoutError as e:
            raise self._fail(
                "Couldn't store invoice metadata: store timed out", invoice.payment_hash, e,
            ) from e
        except StoreError as e:
            raise self._fail(
                f"Couldn't store invoice metadata: {e}", invoice.payment_hash, e,
            ) from e

        self._logger.info(
            "Issued invoice for %s %s. Payment hash: %s", method, path, invoice.payment_hash,
        )
        return invoice

    # -- redemption -----------------------------------------------------------

    async def redeem(self, preimage: str, method: str, path: str) -> str:
        """Validate *preimage* for ``method path`` and consume it.

        Returns the payment hash. Raises ClientError for anything the caller
        can fix by paying a new invoice, ServiceError when the oracle or the
        store failed.
        """
        try:
            validate_format(preimage)
        except PreimageFormatError as e:
            self._logger.warning("Rejected request: %s", e.message)
            raise

        payment_hash = hash_preimage(preimage)

        metadata = await self._lookup(payment_hash)
        if metadata is None:
            raise self._reject(REASON_UNKNOWN, payment_hash)
        if method != metadata.method:
            raise self._reject(
                f"Your invoice was created for a {metadata.method} request, "
                f"but you're sending a {method} request",
                payment_hash,
            )
        if path != metadata.path:
            raise self._reject(
                f'Your invoice was created for the path "{metadata.path}", '
                f'but you\'re sending a request to "{path}"',
                payment_hash,
            )

        async with self._key_lock(payment_hash):
            # Re-read inside the critical section; a concurrent redeemer may
            # have consumed the record since the lookup above.
            metadata = await self._lookup(payment_hash)
            if metadata is None:
                raise self._reject(REASON_UNKNOWN, payment_hash)
            if metadata.used:
                raise self._reject(REASON_ALREADY_USED, payment_hash)

            if not await self._check_settled(payment_hash, metadata):
                raise self._reject(REASON_NOT_SETTLED, payment_hash)

            await self._mark_used(payment_hash, metadata)

        self._logger.info(
            "Preimage redeemed for %s %s. Payment hash: %s", method, path, payment_hash,
        )
        return payment_hash

    async def _lookup(self, payment_hash: str) -> InvoiceMetadata | None:
        try:
            return await self._bounded(self._store.get(payment_hash))
        except asyncio.TimeoutError as e:
            raise self._fail(
                "An error occurred during checking the preimage: store timed out",
                payment_hash, e,
            ) from e
        except (StoreError, InvoiceMetadataError) as e:
            raise self._fail(
                f"An error occurred during checking the preimage: {e}", payment_hash, e,
            ) from e

    async def _check_settled(self, payment_hash: str, metadata: InvoiceMetadata) -> bool:
        try:
            return bool(
                await self._bounded(self._oracle.check_invoice(metadata.implementation_id))
            )
        except InvoiceNotFoundError as e:
            raise self._reject(REASON_NOT_FOUND_AT_ORACLE, payment_hash) from e
        except asyncio.TimeoutError as e:
            raise self._fail(
                "An error occurred during checking the preimage: oracle timed out",
                payment_hash, e,
            ) from e
        except OracleError as e:
            raise self._fail(
                f"An error occurred during checking the preimage: {e}", payment_hash, e,
            ) from e

    async def _mark_used(self, payment_hash: str, metadata: InvoiceMetadata) -> None:
        """Durably record the redemption. The request is not forwarded otherwise."""
        try:
            if self._atomic:
                won = await self._bounded(self._store.mark_used(payment_hash))  # type: ignore[attr-defined]
                if not won:
                    raise self._reject(REASON_ALREADY_USED, payment_hash)
            else:
                await self._bounded(self._store.put(payment_hash, metadata.mark_used()))
        except asyncio.TimeoutError as e:
            raise self._fail(
                "Couldn't mark preimage as used: store timed out", payment_hash, e,
            ) from e
        except StoreError as e:
            raise self._fail(
                f"Couldn't mark preimage as used: {e}", payment_hash, e,
            ) from e

    # -- helpers --------------------------------------------------------------

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        timeout = self._config.timeout_secs
        if timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout)

    @asynccontextmanager
    async def _key_lock(self, key: str) -> AsyncIterator[None]:
        """Per-payment-hash lock; the table entry is dropped once unused."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_holders[key] = self._lock_holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[key] -= 1
            if self._lock_holders[key] == 0:
                del self._lock_holders[key]
                del self._locks[key]

    def _reject(self, reason: str, payment_hash: str) -> ClientError:
        self._logger.warning("Rejected request: %s. Payment hash: %s", reason, payment_hash)
        return ClientError(reason, payment_hash=payment_hash)

    def _fail(
        self, message: str, payment_hash: str | None, cause: BaseException,
    ) -> ServiceError:
        self._logger.error(
            "%s. Payment hash: %s", message, payment_hash or "-", exc_info=cause,
        )
        return ServiceError(message, payment_hash=payment_hash)

    @staticmethod
    async def _respond_error(adapter: RequestAdapter, error: PaywallError) -> None:
        await adapter.respond(error.status_code, dict(_ERROR_HEADERS), error.message.encode())
