"""Paywall configuration as plain frozen dataclasses, no pydantic.

The host application constructs these from its own settings (env vars,
pydantic-settings, etc.) and passes them to the gate and the clients.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from lnpaywall.constants import DEFAULT_MEMO, DEFAULT_PRICE_SATS, DEFAULT_TIMEOUT_SECS


@dataclass(frozen=True)
class PaywallConfig:
    price_sats: int = DEFAULT_PRICE_SATS
    memo: str = DEFAULT_MEMO
    timeout_secs: float | None = DEFAULT_TIMEOUT_SECS

    def normalized(self) -> PaywallConfig:
        """Return a copy with prices below 1 raised to the default.

        An empty memo is allowed and kept as-is.
        """
        if self.price_sats <= 0:
            return replace(self, price_sats=DEFAULT_PRICE_SATS)
        return self


@dataclass(frozen=True)
class LNDOptions:
    address: str = "localhost:8080"
    cert_file: str = "tls.cert"
    macaroon_file: str = "invoice.macaroon"
    verify_tls: bool = True

    def with_defaults(self) -> LNDOptions:
        defaults = LNDOptions()
        return replace(
            self,
            address=self.address or defaults.address,
            cert_file=self.cert_file or defaults.cert_file,
            macaroon_file=self.macaroon_file or defaults.macaroon_file,
        )


@dataclass(frozen=True)
class ChargeOptions:
    address: str = "http://localhost:9112"
    api_token: str = ""

    def with_defaults(self) -> ChargeOptions:
        return replace(self, address=self.address or ChargeOptions.address)


@dataclass(frozen=True)
class RedisOptions:
    address: str = "localhost:6379"
    password: str = ""
    db: int = 0
    key_prefix: str = "lnpaywall:"

    def with_defaults(self) -> RedisOptions:
        return replace(self, address=self.address or RedisOptions.address)
