"""HTTP client that pays ``402 Payment Required`` invoices transparently.

The caller sends requests as usual; for each one the client first fetches
an invoice for the same method and path, pays it through an
``InvoicePayer`` and then sends the original request with the preimage.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import httpx

from lnpaywall.constants import PREIMAGE_HEADER

logger = logging.getLogger(__name__)


class PaymentFlowError(Exception):
    """The server didn't answer the invoice request with a 402."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@runtime_checkable
class InvoicePayer(Protocol):
    """Pays a BOLT11 payment request and returns the hex preimage."""

    async def pay(self, payment_request: str) -> str: ...


class PayingClient:
    """Alternative to a bare ``httpx.AsyncClient`` for paywalled APIs.

    If no ``http`` client is passed one is created and owned (closed by
    ``close()``); a passed-in client is left open.
    """

    def __init__(self, payer: InvoicePayer, http: httpx.AsyncClient | None = None) -> None:
        self._payer = payer
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=30.0)

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Pay for and send ``method url``. Extra kwargs go to the final request."""
        target = httpx.URL(url)
        # Only method and path are bound to the invoice; no query or body needed.
        invoice_url = target.copy_with(query=None, fragment=None)

        invoice_response = await self._http.request(method, invoice_url)
        if invoice_response.status_code != 402:
            raise PaymentFlowError(
                "Request expected to trigger \"402 Payment Required\" response, "
                f"but was: {invoice_response.status_code}",
                status_code=invoice_response.status_code,
            )

        payment_request = invoice_response.text.strip()
        logger.info("Paying invoice for %s %s.", method, target.path)
        preimage = await self._payer.pay(payment_request)

        headers = dict(kwargs.pop("headers", None) or {})
        headers[PREIMAGE_HEADER] = preimage
        return await self._http.request(method, target, headers=headers, **kwargs)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    # -- lifecycle ------------------------------------------------------------

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> PayingClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
