"""Web-framework seam: what the gate needs from an inbound request."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class RequestAdapter(Protocol):
    """One instance per inbound request.

    ``respond`` is awaited at most once, and only when ``continue_to_next``
    is not.
    """

    def preimage_header(self) -> str | None: ...

    def method(self) -> str: ...

    def path(self) -> str: ...

    async def respond(
        self, status_code: int, headers: dict[str, str], body: bytes
    ) -> None: ...

    async def continue_to_next(self) -> None: ...
