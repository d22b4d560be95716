"""Gate-level error kinds surfaced to HTTP callers."""

from __future__ import annotations


class PaywallError(Exception):
    """Base exception for paywall outcomes that end in an error response."""

    status_code: int = 500

    def __init__(self, message: str, payment_hash: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.payment_hash = payment_hash


class ClientError(PaywallError):
    """400: the caller sent a proof that can't be redeemed. Never retried."""

    status_code = 400


class ServiceError(PaywallError):
    """500: the oracle or the store failed. Left to the caller to retry."""

    status_code = 500
