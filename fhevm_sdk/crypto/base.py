"""
Interface to the external FHE library.

The SDK never performs homomorphic cryptography itself. A session owns one
``FheInstance`` built by an application-supplied factory from an
``InstanceConfig``; the SDK only talks to it through the methods below.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union


@dataclass(frozen=True)
class InstanceConfig:
    """Parameters an FHE instance is created with."""
    chain_id: int
    public_key: str
    gateway_url: str
    acl_address: str


class FheInputBuilder(ABC):
    """Accumulates plaintexts bound to one (contract, user) pair.

    ``encrypt`` returns an ``EncryptedInput``, a ``{"data", "signature"}``
    mapping or a ``(data, signature)`` pair; it may be a coroutine.
    """

    @abstractmethod
    def add8(self, value: int) -> Any:
        pass

    @abstractmethod
    def add16(self, value: int) -> Any:
        pass

    @abstractmethod
    def add32(self, value: int) -> Any:
        pass

    @abstractmethod
    def add64(self, value: int) -> Any:
        pass

    @abstractmethod
    def add_bool(self, value: bool) -> Any:
        pass

    @abstractmethod
    def add_address(self, value: str) -> Any:
        pass

    @abstractmethod
    def encrypt(self) -> Any:
        pass


class FheInstance(ABC):
    """Live cryptographic instance owned by a ClientSession."""

    @abstractmethod
    def get_public_key(self) -> str:
        """Hex-encoded public key bound into decryption permits."""
        pass

    @abstractmethod
    def create_encrypted_input(self, contract_address: str, user_address: str) -> FheInputBuilder:
        pass


InstanceFactory = Callable[[InstanceConfig], Union[FheInstance, Awaitable[FheInstance]]]
