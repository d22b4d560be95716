"""Settlement oracle backends."""

from lnpaywall.oracles.charge import ChargeClient
from lnpaywall.oracles.lnd import LNDClient

__all__ = ["ChargeClient", "LNDClient"]
