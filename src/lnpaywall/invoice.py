"""Invoice and the per-invoice anti-replay record.

Pure data model, no I/O. ``InvoiceMetadata`` is what record stores persist
under the invoice's payment hash.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Any

logger = logging.getLogger(__name__)

_SCHEMA_VERSION = 1


class InvoiceMetadataError(ValueError):
    """Stored metadata could not be decoded."""


# ---------------------------------------------------------------------------
# Invoice
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Invoice:
    """A payable obligation as returned by a settlement oracle."""

    payment_request: str  # BOLT11, opaque to the gate
    payment_hash: str  # hex, doubles as the record-store key
    implementation_id: str  # lnd: the payment hash; Charge: its own invoice id


# ---------------------------------------------------------------------------
# InvoiceMetadata
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InvoiceMetadata:
    """Binding and anti-replay record for one issued invoice.

    Created with ``used=False`` at issuance and replaced by a ``used=True``
    copy at the single successful redemption.
    """

    implementation_id: str
    method: str
    path: str
    used: bool = False

    def mark_used(self) -> InvoiceMetadata:
        return replace(self, used=True)

    # -- serialization --------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "v": _SCHEMA_VERSION,
            "implementation_id": self.implementation_id,
            "method": self.method,
            "path": self.path,
            "used": self.used,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InvoiceMetadata:
        missing = [
            k for k in ("implementation_id", "method", "path", "used") if k not in data
        ]
        if missing:
            raise InvoiceMetadataError(
                f"Invoice metadata is missing field(s): {', '.join(missing)}"
            )
        used = data["used"]
        if not isinstance(used, bool):
            raise InvoiceMetadataError(f"Invoice metadata 'used' is not a bool: {used!r}")
        return cls(
            implementation_id=str(data["implementation_id"]),
            method=str(data["method"]),
            path=str(data["path"]),
            used=used,
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json(cls, data: str | bytes) -> InvoiceMetadata:
        """Deserialize from JSON. Raises InvoiceMetadataError on corrupt data.

        A corrupt record must never be treated as a fresh one, since that
        would reset the ``used`` flag.
        """
        try:
            obj = json.loads(data)
        except (json.JSONDecodeError, TypeError, UnicodeDecodeError) as e:
            logger.warning("Invoice metadata is corrupt: %s", e)
            raise InvoiceMetadataError(f"Invoice metadata is corrupt: {e}") from e

        if not isinstance(obj, dict):
            raise InvoiceMetadataError("Invoice metadata is not a JSON object.")
        return cls.from_dict(obj)
