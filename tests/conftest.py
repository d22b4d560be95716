"""Shared fakes for gate, middleware and client tests."""

import hashlib

import pytest

from lnpaywall.invoice import Invoice


class FakeNode:
    """Settlement oracle and invoice payer in one, like a single lnd node."""

    def __init__(self) -> None:
        self._preimages: dict[str, str] = {}  # payment_request -> preimage
        self._ids: dict[str, str] = {}  # payment_request -> implementation_id
        self.settled: dict[str, bool] = {}
        self.issued = 0

    async def generate_invoice(self, amount_sats: int, memo: str) -> Invoice:
        self.issued += 1
        preimage = f"{self.issued:064x}"
        payment_hash = hashlib.sha256(bytes.fromhex(preimage)).hexdigest()
        payment_request = f"lntb{amount_sats}n1node{self.issued}"
        self._preimages[payment_request] = preimage
        self._ids[payment_request] = payment_hash
        self.settled[payment_hash] = False
        return Invoice(payment_request, payment_hash, payment_hash)

    async def check_invoice(self, implementation_id: str) -> bool:
        return self.settled[implementation_id]

    def settle(self, payment_request: str) -> str:
        self.settled[self._ids[payment_request]] = True
        return self._preimages[payment_request]

    async def pay(self, payment_request: str) -> str:
        return self.settle(payment_request)


@pytest.fixture()
def node() -> FakeNode:
    return FakeNode()
