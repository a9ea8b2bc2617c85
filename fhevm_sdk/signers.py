"""
Typed-data (EIP-712) signers.

A signer stands in for the connected account: it knows its address and
produces a signature for a typed-data payload, or raises ``UserRejected``
when the account declines.

Implementations:
    - LocalAccountSigner: private key held in-process (eth-account)
    - Eip1193Signer: any wallet reachable through an EIP-1193 ``request``
      coroutine (browser bridge, WalletConnect relay, ...)
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_account.signers.local import LocalAccount
from web3 import Web3

from .errors import NetworkError, UserRejected


logger = logging.getLogger(__name__)

ETH_SIGN_TYPED_DATA = "eth_signTypedData_v4"

# EIP-1193 "User Rejected Request"
USER_REJECTED_CODE = 4001
USER_REJECTION_PHRASES = ("user rejected", "user denied")

EIP712_DOMAIN_FIELDS = (
    ("name", "string"),
    ("version", "string"),
    ("chainId", "uint256"),
    ("verifyingContract", "address"),
)

TypedFields = Dict[str, List[Dict[str, str]]]


def primary_type_of(types: TypedFields) -> str:
    names = [name for name in types if name != "EIP712Domain"]
    if len(names) != 1:
        raise ValueError(f"Expected exactly one primary type, got {names}")
    return names[0]


def _normalize_value(field_type: str, value: Any) -> Any:
    if field_type == "address" and isinstance(value, str):
        return Web3.to_checksum_address(value)
    if field_type == "bytes" and isinstance(value, str):
        text = value[2:] if value.lower().startswith("0x") else value
        return bytes.fromhex(text)
    return value


def normalize_typed_data(
    domain: Dict[str, Any],
    types: TypedFields,
    message: Dict[str, Any],
) -> tuple[Dict[str, Any], TypedFields, Dict[str, Any]]:
    """Checksum addresses and decode hex ``bytes`` fields for eth-account."""
    domain_types = dict(EIP712_DOMAIN_FIELDS)
    norm_domain = {
        key: _normalize_value(domain_types.get(key, ""), value)
        for key, value in domain.items()
    }

    field_types = {
        field["name"]: field["type"]
        for field in types[primary_type_of(types)]
    }
    norm_message = {
        key: _normalize_value(field_types.get(key, ""), value)
        for key, value in message.items()
    }
    message_types = {name: fields for name, fields in types.items() if name != "EIP712Domain"}
    return norm_domain, message_types, norm_message


def build_typed_data(
    domain: Dict[str, Any],
    types: TypedFields,
    message: Dict[str, Any],
) -> Dict[str, Any]:
    """Full ``eth_signTypedData_v4`` document."""
    return {
        "types": {
            "EIP712Domain": [
                {"name": name, "type": field_type}
                for name, field_type in EIP712_DOMAIN_FIELDS
                if name in domain
            ],
            **{name: fields for name, fields in types.items() if name != "EIP712Domain"},
        },
        "primaryType": primary_type_of(types),
        "domain": domain,
        "message": message,
    }


class TypedDataSigner(ABC):
    """Account able to sign EIP-712 payloads."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @abstractmethod
    async def sign_typed_data(
        self,
        domain: Dict[str, Any],
        types: TypedFields,
        message: Dict[str, Any],
    ) -> str:
        """Return a 0x-prefixed signature or raise UserRejected."""
        pass


class LocalAccountSigner(TypedDataSigner):
    """Signs with a private key held in memory. Never prompts, never rejects."""

    def __init__(self, account: LocalAccount):
        self._account = account

    @classmethod
    def from_key(cls, private_key: str) -> "LocalAccountSigner":
        return cls(Account.from_key(private_key))

    @property
    def address(self) -> str:
        return self._account.address

    async def sign_typed_data(
        self,
        domain: Dict[str, Any],
        types: TypedFields,
        message: Dict[str, Any],
    ) -> str:
        norm_domain, message_types, norm_message = normalize_typed_data(domain, types, message)
        signed = self._account.sign_typed_data(
            domain_data=norm_domain,
            message_types=message_types,
            message_data=norm_message,
        )
        return Web3.to_hex(signed.signature)


def recover_typed_data_signer(
    domain: Dict[str, Any],
    types: TypedFields,
    message: Dict[str, Any],
    signature: str,
) -> str:
    """Address that produced ``signature`` over the payload."""
    norm_domain, message_types, norm_message = normalize_typed_data(domain, types, message)
    signable = encode_typed_data(
        domain_data=norm_domain,
        message_types=message_types,
        message_data=norm_message,
    )
    return Account.recover_message(signable, signature=signature)


def _is_rejection(exc: Exception) -> bool:
    code = getattr(exc, "code", None)
    if code is None and exc.args and isinstance(exc.args[0], dict):
        code = exc.args[0].get("code")
    if code == USER_REJECTED_CODE:
        return True
    # wallets that drop the code still say who declined
    text = str(exc).lower()
    return any(phrase in text for phrase in USER_REJECTION_PHRASES)


class Eip1193Signer(TypedDataSigner):
    """
    Signs through an EIP-1193 provider.

    ``request`` is a coroutine ``request(method, params)`` forwarding to the
    wallet, for example a WalletConnect session or a browser bridge.
    """

    def __init__(
        self,
        address: str,
        request: Callable[[str, List[Any]], Awaitable[Any]],
    ):
        self._address = Web3.to_checksum_address(address)
        self._request = request

    @property
    def address(self) -> str:
        return self._address

    async def sign_typed_data(
        self,
        domain: Dict[str, Any],
        types: TypedFields,
        message: Dict[str, Any],
    ) -> str:
        typed_data = build_typed_data(domain, types, message)
        try:
            signature = await self._request(
                ETH_SIGN_TYPED_DATA,
                [self._address, json.dumps(typed_data)],
            )
        except UserRejected:
            raise
        except Exception as e:
            if _is_rejection(e):
                raise UserRejected("User rejected signature request") from e
            raise NetworkError(f"Signing failed: {e}") from e

        if not isinstance(signature, str) or not signature.startswith("0x"):
            raise NetworkError(f"Wallet returned a malformed signature: {signature!r}")
        return signature


def signer_address(signer: Optional[TypedDataSigner]) -> Optional[str]:
    return signer.address if signer is not None else None
