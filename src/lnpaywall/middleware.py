"""Starlette / FastAPI binding for PaywallGate.

Usage::

    gate = PaywallGate(LNDClient(options), SQLiteStore())
    app.add_middleware(PaywallMiddleware, gate=gate)
"""

from __future__ import annotations

import logging
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from lnpaywall.constants import PREIMAGE_HEADER
from lnpaywall.gate import PaywallGate

logger = logging.getLogger(__name__)


class StarletteAdapter:
    """``RequestAdapter`` over a Starlette request inside a middleware."""

    def __init__(self, request: Request, call_next: RequestResponseEndpoint) -> None:
        self._request = request
        self._call_next = call_next
        self.response: Response | None = None

    def preimage_header(self) -> str | None:
        return self._request.headers.get(PREIMAGE_HEADER)

    def method(self) -> str:
        return self._request.method

    def path(self) -> str:
        return self._request.url.path

    async def respond(self, status_code: int, headers: dict[str, str], body: bytes) -> None:
        self.response = Response(content=body, status_code=status_code, headers=headers)

    async def continue_to_next(self) -> None:
        self.response = await self._call_next(self._request)


class PaywallMiddleware(BaseHTTPMiddleware):
    """Put every request (except skipped ones) behind the paywall.

    ``skip(request)`` returning True lets a request through unpaid, e.g.
    health checks or static assets.
    """

    def __init__(
        self,
        app: ASGIApp,
        gate: PaywallGate,
        *,
        skip: Callable[[Request], bool] | None = None,
    ) -> None:
        super().__init__(app)
        self._gate = gate
        self._skip = skip

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._skip is not None and self._skip(request):
            return await call_next(request)

        adapter = StarletteAdapter(request, call_next)
        outcome = await self._gate.handle(adapter)
        if adapter.response is None:
            raise RuntimeError(f"Paywall ended in {outcome.value} without a response.")
        logger.debug("%s %s -> %s", request.method, request.url.path, outcome.value)
        return adapter.response
