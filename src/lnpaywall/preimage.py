"""Preimage format validation and payment-hash derivation."""

from __future__ import annotations

import hashlib
import string

from lnpaywall.constants import PREIMAGE_HEX_LENGTH, REASON_BAD_FORMAT, REASON_BAD_HEX
from lnpaywall.errors import ClientError

_HEX_DIGITS = frozenset(string.hexdigits)


class PreimageFormatError(ClientError):
    """The presented preimage is not 64 hex characters."""


def validate_format(preimage: str) -> None:
    """Raise PreimageFormatError unless *preimage* is exactly 64 hex characters.

    Length is checked first so the two failure reasons stay distinguishable.
    """
    if len(preimage) != PREIMAGE_HEX_LENGTH:
        raise PreimageFormatError(REASON_BAD_FORMAT)
    if not _HEX_DIGITS.issuperset(preimage):
        raise PreimageFormatError(REASON_BAD_HEX)


def hash_preimage(preimage: str) -> str:
    """Return the hex SHA-256 of the decoded preimage (the payment hash).

    Callers must run ``validate_format`` first.
    """
    return hashlib.sha256(bytes.fromhex(preimage)).hexdigest()
