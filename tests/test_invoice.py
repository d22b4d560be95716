"""Tests for InvoiceMetadata model and serialization."""

import json

import pytest

from lnpaywall.invoice import Invoice, InvoiceMetadata, InvoiceMetadataError


class TestInvoice:
    def test_frozen(self) -> None:
        invoice = Invoice("lntb1x", "aa" * 32, "aa" * 32)
        with pytest.raises(AttributeError):
            invoice.payment_hash = "bb" * 32  # type: ignore[misc]


class TestInvoiceMetadata:
    def test_defaults_unused(self) -> None:
        assert InvoiceMetadata("id-1", "GET", "/ping").used is False

    def test_mark_used_returns_copy(self) -> None:
        original = InvoiceMetadata("id-1", "GET", "/ping")
        used = original.mark_used()
        assert used.used is True
        assert original.used is False
        assert used.implementation_id == "id-1"

    def test_to_dict(self) -> None:
        metadata = InvoiceMetadata("id-1", "POST", "/orders", used=True)
        assert metadata.to_dict() == {
            "v": 1,
            "implementation_id": "id-1",
            "method": "POST",
            "path": "/orders",
            "used": True,
        }

    def test_json_roundtrip(self) -> None:
        original = InvoiceMetadata("id-1", "GET", "/a/b?c", used=False)
        assert InvoiceMetadata.from_json(original.to_json()) == original

    def test_from_json_bytes(self) -> None:
        raw = InvoiceMetadata("id-1", "GET", "/ping").to_json().encode()
        assert InvoiceMetadata.from_json(raw).path == "/ping"


class TestInvoiceMetadataCorrupt:
    def test_invalid_json(self) -> None:
        with pytest.raises(InvoiceMetadataError, match="corrupt"):
            InvoiceMetadata.from_json("{not json")

    def test_not_an_object(self) -> None:
        with pytest.raises(InvoiceMetadataError, match="not a JSON object"):
            InvoiceMetadata.from_json(json.dumps(["GET", "/ping"]))

    def test_missing_fields(self) -> None:
        with pytest.raises(InvoiceMetadataError, match="method, path"):
            InvoiceMetadata.from_json(json.dumps({"implementation_id": "x"}))

    def test_missing_used_is_not_read_as_unused(self) -> None:
        with pytest.raises(InvoiceMetadataError, match=r"missing field\(s\): used"):
            InvoiceMetadata.from_dict({"implementation_id": "x", "method": "GET", "path": "/"})

    def test_non_bool_used(self) -> None:
        with pytest.raises(InvoiceMetadataError, match="used"):
            InvoiceMetadata.from_dict(
                {"implementation_id": "x", "method": "GET", "path": "/", "used": "yes"}
            )

    def test_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            InvoiceMetadata.from_json("")
