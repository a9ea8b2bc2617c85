"""
Shared fakes for the FHE instance, the wallet and the gateway.
"""

import json
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from fhevm_sdk.crypto.base import FheInputBuilder, FheInstance
from fhevm_sdk.errors import UserRejected
from fhevm_sdk.networks import NETWORKS
from fhevm_sdk.providers.gateway import GatewayProvider
from fhevm_sdk.session import ClientSession
from fhevm_sdk.signers import TypedDataSigner
from fhevm_sdk.types.fhe import EncryptedInput


USER = "0x1111111111111111111111111111111111111111"
CONTRACT = "0x2222222222222222222222222222222222222222"
PUBLIC_KEY = "0x" + "ab" * 32
GATEWAY_URL = "http://gateway.test"


# =============================================================================
# FHE instance
# =============================================================================

class FakeInputBuilder(FheInputBuilder):
    def __init__(self, instance: "FakeFheInstance", contract: str, user: str):
        self.instance = instance
        self.contract = contract
        self.user = user
        self.added: List[Tuple[str, Any]] = []

    def add8(self, value):
        self.added.append(("uint8", value))

    def add16(self, value):
        self.added.append(("uint16", value))

    def add32(self, value):
        self.added.append(("uint32", value))

    def add64(self, value):
        self.added.append(("uint64", value))

    def add_bool(self, value):
        self.added.append(("bool", value))

    def add_address(self, value):
        self.added.append(("address", value))

    async def encrypt(self):
        if self.instance.fail_with is not None:
            raise self.instance.fail_with
        self.instance.encrypted.append(list(self.added))
        data = json.dumps([[kind, str(value)] for kind, value in self.added]).encode()
        return EncryptedInput(data=data, signature="0x" + "cd" * 65)


class FakeFheInstance(FheInstance):
    def __init__(self, public_key: str = PUBLIC_KEY):
        self.public_key = public_key
        self.builders: List[FakeInputBuilder] = []
        self.encrypted: List[List[Tuple[str, Any]]] = []
        self.fail_with: Optional[Exception] = None

    def get_public_key(self) -> str:
        return self.public_key

    def create_encrypted_input(self, contract_address: str, user_address: str) -> FakeInputBuilder:
        builder = FakeInputBuilder(self, contract_address, user_address)
        self.builders.append(builder)
        return builder


# =============================================================================
# Wallet
# =============================================================================

class FakeSigner(TypedDataSigner):
    def __init__(self, address: str = USER, reject: bool = False, fail_with: Optional[Exception] = None):
        self._address = address
        self.reject = reject
        self.fail_with = fail_with
        self.requests: List[Dict[str, Any]] = []

    @property
    def address(self) -> str:
        return self._address

    async def sign_typed_data(self, domain, types, message) -> str:
        self.requests.append({"domain": domain, "types": types, "message": message})
        if self.reject:
            raise UserRejected("User rejected signature request")
        if self.fail_with is not None:
            raise self.fail_with
        return "0x" + format(len(self.requests), "x").rjust(130, "e")


# =============================================================================
# Gateway
# =============================================================================

class GatewayStub:
    """httpx.MockTransport handler emulating the gateway endpoints."""

    def __init__(self, public_key: str = PUBLIC_KEY):
        self.public_key = public_key
        self.values: Dict[str, Any] = {}
        self.failing_handles: Dict[str, int] = {}
        self.valid = True
        self.validate_status = 200
        self.revoke_status = 200
        self.public_key_status = 200
        self.calls: List[Tuple[str, str, Optional[Dict[str, Any]]]] = []

    def calls_to(self, path: str) -> int:
        return sum(1 for _, called, _ in self.calls if called == path)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, request.url.path, body))

        if request.url.path == "/publicKey":
            if self.public_key_status != 200:
                return httpx.Response(self.public_key_status)
            return httpx.Response(200, json={"publicKey": self.public_key})

        if request.url.path == "/decrypt":
            handle = body["handle"]
            if handle in self.failing_handles:
                return httpx.Response(self.failing_handles[handle], json={"error": "nope"})
            if handle not in self.values:
                return httpx.Response(404, json={"error": "unknown handle"})
            return httpx.Response(200, json={"value": str(self.values[handle])})

        if request.url.path == "/permit/validate":
            if self.validate_status != 200:
                return httpx.Response(self.validate_status)
            return httpx.Response(200, json={"valid": self.valid})

        if request.url.path == "/permit/revoke":
            return httpx.Response(self.revoke_status)

        return httpx.Response(404)

    def provider(self, **kwargs: Any) -> GatewayProvider:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self))
        return GatewayProvider(GATEWAY_URL, client=client, **kwargs)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fhe_instance() -> FakeFheInstance:
    return FakeFheInstance()


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def gateway_stub() -> GatewayStub:
    return GatewayStub()


@pytest.fixture
def session(fhe_instance, signer, gateway_stub) -> ClientSession:
    """Ready session on the localhost network backed by the fakes."""
    return ClientSession(
        instance=fhe_instance,
        connection=None,
        network=NETWORKS["localhost"],
        gateway=gateway_stub.provider(),
        address=USER,
        signer=signer,
    )
