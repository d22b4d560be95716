"""lnpaywall: Lightning Network paywall for HTTP APIs.

Each request must be paid for with its own invoice; the preimage proves
payment and can be redeemed exactly once, for the method and path the
invoice was issued for.
"""

__version__ = "0.1.0"

from lnpaywall.adapter import RequestAdapter
from lnpaywall.client import InvoicePayer, PayingClient, PaymentFlowError
from lnpaywall.config import ChargeOptions, LNDOptions, PaywallConfig, RedisOptions
from lnpaywall.constants import BOLT11_CONTENT_TYPE, PREIMAGE_HEADER
from lnpaywall.errors import ClientError, PaywallError, ServiceError
from lnpaywall.gate import Outcome, PaywallGate
from lnpaywall.invoice import Invoice, InvoiceMetadata, InvoiceMetadataError
from lnpaywall.middleware import PaywallMiddleware, StarletteAdapter
from lnpaywall.oracle import (
    InvoiceNotFoundError,
    OracleAuthError,
    OracleError,
    OracleErrorKind,
    OracleTransientError,
    SettlementOracle,
)
from lnpaywall.oracles import ChargeClient, LNDClient
from lnpaywall.preimage import PreimageFormatError, hash_preimage, validate_format
from lnpaywall.record_store import AtomicRecordStore, RecordStore, StoreError
from lnpaywall.stores import MemoryStore, SQLiteStore

__all__ = [
    "PaywallGate",
    "Outcome",
    "PaywallConfig",
    "LNDOptions",
    "ChargeOptions",
    "RedisOptions",
    "PaywallError",
    "ClientError",
    "ServiceError",
    "PreimageFormatError",
    "Invoice",
    "InvoiceMetadata",
    "InvoiceMetadataError",
    "SettlementOracle",
    "OracleError",
    "OracleErrorKind",
    "OracleAuthError",
    "OracleTransientError",
    "InvoiceNotFoundError",
    "RecordStore",
    "AtomicRecordStore",
    "StoreError",
    "RequestAdapter",
    "PaywallMiddleware",
    "StarletteAdapter",
    "LNDClient",
    "ChargeClient",
    "MemoryStore",
    "SQLiteStore",
    "PayingClient",
    "InvoicePayer",
    "PaymentFlowError",
    "validate_format",
    "hash_preimage",
    "PREIMAGE_HEADER",
    "BOLT11_CONTENT_TYPE",
]
