"""Async HTTP client for lnd's REST gateway."""

from __future__ import annotations

import base64
import binascii
import logging
import ssl
from pathlib import Path
from typing import Any

import httpx

from lnpaywall.config import LNDOptions
from lnpaywall.invoice import Invoice
from lnpaywall.oracle import (
    InvoiceNotFoundError,
    OracleAuthError,
    OracleError,
    OracleTransientError,
)

logger = logging.getLogger(__name__)

# lnd reports a missing invoice as 404 on recent versions and as a 500
# carrying this message on older ones.
_NOT_FOUND_MESSAGE = "unable to locate invoice"

_STATUS_MAP: dict[int, type[OracleError]] = {
    401: OracleAuthError,
    403: OracleAuthError,
    404: InvoiceNotFoundError,
}


def _b64_to_hex(value: str) -> str:
    """lnd's REST gateway encodes ``bytes`` fields as (possibly URL-safe) base64."""
    try:
        raw = base64.b64decode(value.replace("-", "+").replace("_", "/"), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise OracleError(f"lnd returned a malformed base64 field: {value!r}") from exc
    return raw.hex()


class LNDClient:
    """Async client for lnd's REST API (``/v1``).

    Implements both ``SettlementOracle`` (for the gate) and ``InvoicePayer``
    (for ``PayingClient``). Authenticates with the hex-encoded macaroon in
    the ``Grpc-Metadata-macaroon`` header and pins lnd's self-signed TLS cert.
    """

    def __init__(
        self,
        options: LNDOptions | None = None,
        *,
        macaroon_hex: str | None = None,
    ) -> None:
        opts = (options or LNDOptions()).with_defaults()
        if macaroon_hex is None:
            macaroon_hex = Path(opts.macaroon_file).read_bytes().hex()

        address = opts.address.rstrip("/")
        if "://" not in address:
            address = f"https://{address}"

        verify: ssl.SSLContext | bool = False
        if opts.verify_tls:
            verify = ssl.create_default_context(cafile=opts.cert_file)

        self._client = httpx.AsyncClient(
            base_url=address + "/v1",
            headers={"Grpc-Metadata-macaroon": macaroon_hex},
            verify=verify,
            timeout=httpx.Timeout(connect=5.0, read=30.0, write=10.0, pool=5.0),
        )

    # -- internal request dispatcher -----------------------------------------

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and map errors to the oracle exception hierarchy."""
        try:
            response = await self._client.request(method, endpoint, json=json_data)
        except httpx.TransportError as exc:
            # Timeouts and connections dropped mid-response included.
            raise OracleTransientError(f"{type(exc).__name__}: {exc}") from exc

        if response.status_code >= 400:
            body = response.text
            if _NOT_FOUND_MESSAGE in body:
                raise InvoiceNotFoundError(body, status_code=response.status_code)
            exc_cls = _STATUS_MAP.get(response.status_code)
            if exc_cls is not None:
                raise exc_cls(body, status_code=response.status_code)
            if response.status_code >= 500:
                raise OracleTransientError(body, status_code=response.status_code)
            raise OracleError(body, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise OracleError(f"lnd returned a non-JSON body: {response.text!r}") from exc

    # -- SettlementOracle -----------------------------------------------------

    async def generate_invoice(self, amount_sats: int, memo: str) -> Invoice:
        """POST /invoices: add an invoice; the payment hash is its lnd id."""
        logger.info("Creating lnd invoice for %d sat(s).", amount_sats)
        data = await self._request(
            "POST", "/invoices", json_data={"value": str(amount_sats), "memo": memo}
        )
        try:
            r_hash = data["r_hash"]
            payment_request = data["payment_request"]
        except (KeyError, TypeError) as exc:
            raise OracleError(f"lnd invoice response is missing {exc}") from exc

        payment_hash = _b64_to_hex(r_hash)
        return Invoice(
            payment_request=payment_request,
            payment_hash=payment_hash,
            implementation_id=payment_hash,
        )

    async def check_invoice(self, implementation_id: str) -> bool:
        """GET /invoice/{r_hash_str}: True once the invoice is settled."""
        try:
            bytes.fromhex(implementation_id)
        except ValueError as exc:
            raise InvoiceNotFoundError(
                f"Not a hex payment hash: {implementation_id!r}"
            ) from exc

        logger.debug("Checking lnd invoice %s.", implementation_id)
        data = await self._request("GET", f"/invoice/{implementation_id}")
        if not isinstance(data, dict):
            raise OracleError("lnd invoice lookup returned a non-object body.")
        return bool(data.get("settled")) or data.get("state") == "SETTLED"

    # -- InvoicePayer ---------------------------------------------------------

    async def pay(self, payment_request: str) -> str:
        """POST /channels/transactions: pay synchronously, return the hex preimage."""
        data = await self._request(
            "POST", "/channels/transactions", json_data={"payment_request": payment_request}
        )
        payment_error = data.get("payment_error") if isinstance(data, dict) else None
        if payment_error:
            raise OracleError(f"Payment failed: {payment_error}")
        preimage = data.get("payment_preimage") if isinstance(data, dict) else None
        if not preimage:
            raise OracleError("lnd payment response has no preimage.")
        return _b64_to_hex(preimage)

    # -- lifecycle ------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> LNDClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
