"""Settlement oracle interface and its typed error hierarchy.

Defines the SettlementOracle Protocol that PaywallGate depends on.
Concrete implementations (LNDClient, ChargeClient) live in
``lnpaywall.oracles``.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol, runtime_checkable

from lnpaywall.invoice import Invoice


class OracleErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    TRANSIENT = "transient"
    OTHER = "other"


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------


class OracleError(Exception):
    """Base exception for settlement oracle operations."""

    kind: OracleErrorKind = OracleErrorKind.OTHER

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvoiceNotFoundError(OracleError):
    """The oracle has no invoice with the given id (stale or foreign proof)."""

    kind = OracleErrorKind.NOT_FOUND


class OracleTransientError(OracleError):
    """Network failure, timeout or 5xx: the oracle may recover."""

    kind = OracleErrorKind.TRANSIENT


class OracleAuthError(OracleError):
    """401/403: credentials rejected by the oracle."""


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class SettlementOracle(Protocol):
    """Creates payment obligations and reports whether they were paid.

    ``check_invoice`` takes the oracle-specific ``Invoice.implementation_id``
    and raises InvoiceNotFoundError when the oracle doesn't know it.
    """

    async def generate_invoice(self, amount_sats: int, memo: str) -> Invoice: ...

    async def check_invoice(self, implementation_id: str) -> bool: ...
