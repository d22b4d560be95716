"""Async HTTP client for Lightning Charge (c-lightning's REST invoicing service)."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from lnpaywall.config import ChargeOptions
from lnpaywall.invoice import Invoice
from lnpaywall.oracle import (
    InvoiceNotFoundError,
    OracleAuthError,
    OracleError,
    OracleTransientError,
)

logger = logging.getLogger(__name__)

_STATUS_MAP: dict[int, type[OracleError]] = {
    401: OracleAuthError,
    403: OracleAuthError,
    404: InvoiceNotFoundError,
}

_SETTLED_STATUSES = {"paid": True, "unpaid": False, "expired": False}


class ChargeClient:
    """Async client for the Lightning Charge REST API.

    Charge assigns its own invoice ids, so ``Invoice.implementation_id``
    differs from the payment hash. Auth is HTTP basic with the fixed user
    ``api-token`` and the configured token as password.
    """

    def __init__(self, options: ChargeOptions | None = None) -> None:
        opts = (options or ChargeOptions()).with_defaults()
        self._client = httpx.AsyncClient(
            base_url=opts.address.rstrip("/"),
            auth=httpx.BasicAuth("api-token", opts.api_token),
            timeout=httpx.Timeout(connect=5.0, read=15.0, write=10.0, pool=5.0),
        )

    # -- internal request dispatcher -----------------------------------------

    async def _request(
        self,
        method: str,
        endpoint: str,
        form_data: dict[str, str] | None = None,
    ) -> Any:
        """Send a request and map errors to the oracle exception hierarchy."""
        try:
            response = await self._client.request(method, endpoint, data=form_data)
        except httpx.TransportError as exc:
            # Timeouts and connections dropped mid-response included.
            raise OracleTransientError(f"{type(exc).__name__}: {exc}") from exc

        if response.status_code >= 400:
            body = response.text
            exc_cls = _STATUS_MAP.get(response.status_code)
            if exc_cls is not None:
                raise exc_cls(body, status_code=response.status_code)
            if response.status_code >= 500:
                raise OracleTransientError(body, status_code=response.status_code)
            raise OracleError(body, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise OracleError(f"Charge returned a non-JSON body: {response.text!r}") from exc
        if not isinstance(data, dict):
            raise OracleError("Charge returned a non-object body.")
        return data

    # -- SettlementOracle -----------------------------------------------------

    async def generate_invoice(self, amount_sats: int, memo: str) -> Invoice:
        """POST /invoice: Charge prices invoices in millisatoshis."""
        logger.info("Creating Charge invoice for %d sat(s).", amount_sats)
        data = await self._request(
            "POST",
            "/invoice",
            form_data={"msatoshi": str(1000 * amount_sats), "description": memo},
        )
        try:
            return Invoice(
                payment_request=data["payreq"],
                payment_hash=data["rhash"],
                implementation_id=data["id"],
            )
        except KeyError as exc:
            raise OracleError(f"Charge invoice response is missing {exc}") from exc

    async def check_invoice(self, implementation_id: str) -> bool:
        """GET /invoice/{id}: True once Charge reports the invoice paid."""
        logger.debug("Checking Charge invoice %s.", implementation_id)
        data = await self._request("GET", f"/invoice/{quote(implementation_id, safe='')}")
        status = data.get("status")
        if status not in _SETTLED_STATUSES:
            raise OracleError(
                f"Charge invoice {implementation_id} has an unknown status: {status!r}"
            )
        return _SETTLED_STATUSES[status]

    # -- lifecycle ------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> ChargeClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
