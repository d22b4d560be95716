"""Constants for Lightning paywall gating."""

PREIMAGE_HEADER = "X-Preimage"
BOLT11_CONTENT_TYPE = "application/vnd.lightning.bolt11"

PREIMAGE_HEX_LENGTH = 64  # 32 raw bytes

DEFAULT_PRICE_SATS = 1
DEFAULT_MEMO = "API call"
DEFAULT_TIMEOUT_SECS = 10.0

# ---------------------------------------------------------------------------
# Rejection reasons (sent verbatim as 400 bodies)
# ---------------------------------------------------------------------------

REASON_BAD_FORMAT = "The provided preimage isn't properly formatted"
REASON_BAD_HEX = "The provided preimage isn't properly hex encoded"
REASON_UNKNOWN = (
    "You seem to have sent an invalid preimage or one that doesn't "
    "correspond to an issued invoice"
)
REASON_ALREADY_USED = (
    "You already sent a request with the same preimage. You have to pay a "
    "new invoice and include its preimage in each request (preimage already used)."
)
REASON_NOT_FOUND_AT_ORACLE = (
    "No corresponding invoice was found for the provided preimage"
)
REASON_NOT_SETTLED = (
    "You somehow obtained the preimage of the invoice, "
    "but the invoice is not yet settled"
)
