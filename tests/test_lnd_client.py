"""Tests for the lnd REST client."""

import base64
from unittest.mock import AsyncMock

import httpx
import pytest

from lnpaywall.config import LNDOptions
from lnpaywall.invoice import Invoice
from lnpaywall.oracle import (
    InvoiceNotFoundError,
    OracleAuthError,
    OracleError,
    OracleErrorKind,
    OracleTransientError,
    SettlementOracle,
)
from lnpaywall.oracles.lnd import LNDClient

R_HASH = bytes(range(32))
R_HASH_HEX = R_HASH.hex()
R_HASH_B64 = base64.b64encode(R_HASH).decode()


def _client(**overrides) -> LNDClient:
    options = LNDOptions(verify_tls=False, **overrides)
    return LNDClient(options, macaroon_hex="0201036c6e64")


def _mock_response(status: int = 200, json_data: dict | None = None, text: str | None = None) -> httpx.Response:
    request = httpx.Request("GET", "https://localhost:8080")
    if text is not None:
        return httpx.Response(status_code=status, text=text, request=request)
    return httpx.Response(status_code=status, json=json_data or {}, request=request)


# ---------------------------------------------------------------------------
# Init / constructor
# ---------------------------------------------------------------------------


class TestLNDClientInit:
    def test_default_address_gets_https(self) -> None:
        client = _client()
        assert str(client._client.base_url).rstrip("/") == "https://localhost:8080/v1"

    def test_explicit_scheme_kept(self) -> None:
        client = _client(address="http://lnd.internal:8080/")
        assert str(client._client.base_url).rstrip("/") == "http://lnd.internal:8080/v1"

    def test_macaroon_header(self) -> None:
        client = _client()
        assert client._client.headers["grpc-metadata-macaroon"] == "0201036c6e64"

    def test_macaroon_read_from_file(self, tmp_path) -> None:
        macaroon = tmp_path / "invoice.macaroon"
        macaroon.write_bytes(b"\x02\x01\x03")
        client = LNDClient(LNDOptions(macaroon_file=str(macaroon), verify_tls=False))
        assert client._client.headers["grpc-metadata-macaroon"] == "020103"

    def test_empty_options_take_defaults(self) -> None:
        opts = LNDOptions(address="", cert_file="", macaroon_file="").with_defaults()
        assert opts == LNDOptions()

    def test_satisfies_oracle_protocol(self) -> None:
        assert isinstance(_client(), SettlementOracle)


# ---------------------------------------------------------------------------
# generate_invoice / check_invoice
# ---------------------------------------------------------------------------


class TestLNDClientInvoices:
    @pytest.mark.asyncio
    async def test_generate_invoice(self) -> None:
        client = _client()
        client._client.request = AsyncMock(
            return_value=_mock_response(
                200, {"r_hash": R_HASH_B64, "payment_request": "lntb10n1abc", "add_index": "7"}
            )
        )
        invoice = await client.generate_invoice(10, "API call")
        assert invoice == Invoice("lntb10n1abc", R_HASH_HEX, R_HASH_HEX)
        client._client.request.assert_called_once_with(
            "POST", "/invoices", json={"value": "10", "memo": "API call"}
        )

    @pytest.mark.asyncio
    async def test_generate_invoice_urlsafe_hash(self) -> None:
        client = _client()
        urlsafe = base64.urlsafe_b64encode(b"\xfb\xff" * 16).decode()
        client._client.request = AsyncMock(
            return_value=_mock_response(200, {"r_hash": urlsafe, "payment_request": "lntb1"})
        )
        invoice = await client.generate_invoice(1, "")
        assert invoice.payment_hash == "fbff" * 16

    @pytest.mark.asyncio
    async def test_generate_invoice_missing_field(self) -> None:
        client = _client()
        client._client.request = AsyncMock(return_value=_mock_response(200, {"add_index": "1"}))
        with pytest.raises(OracleError, match="missing"):
            await client.generate_invoice(1, "x")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body, expected",
        [
            ({"settled": True}, True),
            ({"settled": False, "state": "OPEN"}, False),
            ({"state": "SETTLED"}, True),
            ({}, False),
        ],
    )
    async def test_check_invoice(self, body: dict, expected: bool) -> None:
        client = _client()
        client._client.request = AsyncMock(return_value=_mock_response(200, body))
        assert await client.check_invoice(R_HASH_HEX) is expected
        client._client.request.assert_called_once_with(
            "GET", f"/invoice/{R_HASH_HEX}", json=None
        )

    @pytest.mark.asyncio
    async def test_check_invoice_non_hex_id_not_found(self) -> None:
        client = _client()
        client._client.request = AsyncMock()
        with pytest.raises(InvoiceNotFoundError):
            await client.check_invoice("inv-123")
        client._client.request.assert_not_called()


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


class TestLNDClientErrors:
    @pytest.mark.asyncio
    async def test_404_is_not_found(self) -> None:
        client = _client()
        client._client.request = AsyncMock(
            return_value=_mock_response(404, {"code": 5, "message": "there are no existing invoices"})
        )
        with pytest.raises(InvoiceNotFoundError) as exc_info:
            await client.check_invoice(R_HASH_HEX)
        assert exc_info.value.kind is OracleErrorKind.NOT_FOUND
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_500_unable_to_locate_is_not_found(self) -> None:
        client = _client()
        client._client.request = AsyncMock(
            return_value=_mock_response(500, {"error": "unable to locate invoice", "code": 2})
        )
        with pytest.raises(InvoiceNotFoundError):
            await client.check_invoice(R_HASH_HEX)

    @pytest.mark.asyncio
    async def test_other_500_is_transient(self) -> None:
        client = _client()
        client._client.request = AsyncMock(
            return_value=_mock_response(503, {"error": "server is still starting"})
        )
        with pytest.raises(OracleTransientError) as exc_info:
            await client.check_invoice(R_HASH_HEX)
        assert exc_info.value.kind is OracleErrorKind.TRANSIENT

    @pytest.mark.asyncio
    async def test_403_is_auth_error(self) -> None:
        client = _client()
        client._client.request = AsyncMock(
            return_value=_mock_response(403, {"error": "permission denied"})
        )
        with pytest.raises(OracleAuthError) as exc_info:
            await client.generate_invoice(1, "x")
        assert exc_info.value.kind is OracleErrorKind.OTHER

    @pytest.mark.asyncio
    async def test_connect_error(self) -> None:
        client = _client()
        client._client.request = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(OracleTransientError, match="refused"):
            await client.generate_invoice(1, "x")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [httpx.ReadError("connection reset by peer"), httpx.RemoteProtocolError("peer closed")],
    )
    async def test_mid_response_transport_error_is_transient(self, error) -> None:
        client = _client()
        client._client.request = AsyncMock(side_effect=error)
        with pytest.raises(OracleTransientError, match=type(error).__name__):
            await client.check_invoice(R_HASH_HEX)

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        client = _client()
        client._client.request = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        with pytest.raises(OracleTransientError):
            await client.check_invoice(R_HASH_HEX)

    @pytest.mark.asyncio
    async def test_non_json_body(self) -> None:
        client = _client()
        client._client.request = AsyncMock(return_value=_mock_response(200, text="<html>"))
        with pytest.raises(OracleError, match="non-JSON"):
            await client.check_invoice(R_HASH_HEX)


# ---------------------------------------------------------------------------
# pay
# ---------------------------------------------------------------------------


class TestLNDClientPay:
    @pytest.mark.asyncio
    async def test_pay_returns_hex_preimage(self) -> None:
        client = _client()
        preimage = bytes(32)
        client._client.request = AsyncMock(
            return_value=_mock_response(
                200,
                {"payment_error": "", "payment_preimage": base64.b64encode(preimage).decode()},
            )
        )
        assert await client.pay("lntb1abc") == "00" * 32
        client._client.request.assert_called_once_with(
            "POST", "/channels/transactions", json={"payment_request": "lntb1abc"}
        )

    @pytest.mark.asyncio
    async def test_pay_error(self) -> None:
        client = _client()
        client._client.request = AsyncMock(
            return_value=_mock_response(200, {"payment_error": "no route"})
        )
        with pytest.raises(OracleError, match="no route"):
            await client.pay("lntb1abc")

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        client = _client()
        client._client.aclose = AsyncMock()
        async with client:
            pass
        client._client.aclose.assert_called_once()
