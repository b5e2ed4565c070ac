import asyncio
from typing import Dict, List, Optional

import pytest
from eth_account import Account

from nft_ownership.models import AssetMetadata
from nft_ownership.wallet import LocalWallet

# Deterministic keys so addresses are stable across runs.
KEY_A = "0x" + "11" * 32
KEY_B = "0x" + "22" * 32
ADDRESS_A = Account.from_key(KEY_A).address.lower()
ADDRESS_B = Account.from_key(KEY_B).address.lower()

URL_A = "https://opensea.io/assets/ethereum/0xABC123/42"
URL_B = "https://testnets.opensea.io/assets/goerli/0xdead/7"


class FakeFetcher:
    """
    Metadata fetcher whose responses are released by hand.

    `gate(key)` returns an Event; a fetch for that key blocks until it is set.
    Keys are (network, contract, token_id).
    """

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.results: Dict[tuple, object] = {}
        self.gates: Dict[tuple, asyncio.Event] = {}

    def gate(self, key: tuple) -> asyncio.Event:
        return self.gates.setdefault(key, asyncio.Event())

    async def fetch(self, network, contract_address, token_id):
        key = (network, contract_address, token_id)
        self.calls.append(key)
        if key in self.gates:
            await self.gates[key].wait()
        result = self.results.get(key, AssetMetadata(title=f"Token #{token_id}"))
        if isinstance(result, Exception):
            raise result
        return result


class FakeVerifier:
    def __init__(self, result: object = True) -> None:
        self.result = result
        self.calls: List[list] = []
        self.gate: Optional[asyncio.Event] = None

    async def submit(self, claims):
        self.calls.append(list(claims))
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeAuthority:
    def __init__(self) -> None:
        self.verified: Dict[str, bool] = {}
        self.verify_result: object = True
        self.lookups: List[str] = []
        self.verify_gate: Optional[asyncio.Event] = None
        self.lookup_gate: Optional[asyncio.Event] = None

    async def is_verified(self, address):
        self.lookups.append(address)
        if self.lookup_gate is not None:
            await self.lookup_gate.wait()
        result = self.verified.get(address, False)
        if isinstance(result, Exception):
            raise result
        return result

    async def verify(self, address):
        if self.verify_gate is not None:
            await self.verify_gate.wait()
        if isinstance(self.verify_result, Exception):
            raise self.verify_result
        if self.verify_result:
            self.verified[address] = True
        return self.verify_result


class ErrorSink:
    def __init__(self) -> None:
        self.errors: List[tuple] = []

    def __call__(self, err, message):
        self.errors.append((err, message))


@pytest.fixture
def wallet():
    w = LocalWallet(KEY_A)
    w.connect()
    return w


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def authority():
    return FakeAuthority()


@pytest.fixture
def errors():
    return ErrorSink()
