#!/usr/bin/env python3
"""Serve ``GET /ping`` behind a Lightning paywall.

Reads its settings from the environment:

  LNPAYWALL_BACKEND      lnd (default) or charge
  LNPAYWALL_PRICE_SATS   price per request (default 1)
  LNPAYWALL_MEMO         invoice memo (default "API call")
  LNPAYWALL_REDIS        Redis address (host:port); takes precedence over LNPAYWALL_DB
  LNPAYWALL_REDIS_PASSWORD
  LNPAYWALL_DB           SQLite file; unset keeps records in memory
  LND_ADDRESS, LND_CERT_FILE, LND_MACAROON_FILE
  CHARGE_ADDRESS, CHARGE_API_TOKEN

Requires: pip install 'lnpaywall[server]' (plus the redis extra for LNPAYWALL_REDIS)
"""

from __future__ import annotations

import logging
import os
import sys

try:
    import uvicorn
except ImportError:
    print("Error: uvicorn not installed. Run: pip install 'lnpaywall[server]'", file=sys.stderr)
    sys.exit(1)

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from lnpaywall import (
    ChargeClient,
    ChargeOptions,
    LNDClient,
    LNDOptions,
    MemoryStore,
    PaywallConfig,
    PaywallGate,
    PaywallMiddleware,
    RedisOptions,
    SQLiteStore,
)


async def ping(request: Request) -> PlainTextResponse:
    return PlainTextResponse("pong")


def build_app() -> Starlette:
    if os.getenv("LNPAYWALL_BACKEND", "lnd") == "charge":
        oracle = ChargeClient(ChargeOptions(
            address=os.getenv("CHARGE_ADDRESS", ""),
            api_token=os.getenv("CHARGE_API_TOKEN", ""),
        ))
    else:
        oracle = LNDClient(LNDOptions(
            address=os.getenv("LND_ADDRESS", ""),
            cert_file=os.getenv("LND_CERT_FILE", ""),
            macaroon_file=os.getenv("LND_MACAROON_FILE", ""),
        ))

    redis_address = os.getenv("LNPAYWALL_REDIS")
    db_path = os.getenv("LNPAYWALL_DB")
    if redis_address:
        from lnpaywall.stores.redis import RedisStore

        store = RedisStore(RedisOptions(
            address=redis_address,
            password=os.getenv("LNPAYWALL_REDIS_PASSWORD", ""),
        ))
    elif db_path:
        store = SQLiteStore(db_path)
    else:
        store = MemoryStore()

    config = PaywallConfig(
        price_sats=int(os.getenv("LNPAYWALL_PRICE_SATS", "1")),
        memo=os.getenv("LNPAYWALL_MEMO", "API call"),
    )
    gate = PaywallGate(oracle, store, config)

    app = Starlette(routes=[Route("/ping", ping)])
    app.add_middleware(PaywallMiddleware, gate=gate)
    return app


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    uvicorn.run(build_app(), host="0.0.0.0", port=int(os.getenv("PORT", "8080")))


if __name__ == "__main__":
    main()
