"""
FHE value, ciphertext and permit models.

Plaintext values are tagged with one of six encodings before they reach the
FHE instance; ciphertexts and permits are immutable once produced.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple, Union


class FheType(str, Enum):
    """Supported encrypted encodings."""
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    BOOL = "bool"
    ADDRESS = "address"

    @property
    def is_integer(self) -> bool:
        return self in INTEGER_TYPES


INTEGER_TYPES = (FheType.UINT8, FheType.UINT16, FheType.UINT32, FheType.UINT64)


@dataclass(frozen=True)
class FheRange:
    """Inclusive bounds of an integer encoding."""
    min: int
    max: int

    def contains(self, value: int) -> bool:
        return self.min <= value <= self.max

    def __str__(self) -> str:
        return f"{self.min} - {self.max}"


FHE_RANGES: Dict[FheType, FheRange] = {
    FheType.UINT8: FheRange(0, 2**8 - 1),
    FheType.UINT16: FheRange(0, 2**16 - 1),
    FheType.UINT32: FheRange(0, 2**32 - 1),
    FheType.UINT64: FheRange(0, 2**64 - 1),
    FheType.BOOL: FheRange(0, 1),
}


class WideInt(int):
    """An integer the caller explicitly wants encrypted as uint64.

    Plain ints above the uint32 ceiling are rejected by the auto-detecting
    ``encrypt``; wrapping them with :func:`wide` states the 64-bit intent.
    """

    def __repr__(self) -> str:
        return f"wide({int(self)})"


def wide(value: int) -> WideInt:
    return WideInt(value)


class FheOperation(str, Enum):
    """Homomorphic operators exposed by FHEVM contracts."""
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    AND = "and"
    OR = "or"
    XOR = "xor"
    NOT = "not"
    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"
    SHL = "shl"
    SHR = "shr"

    @property
    def min_operands(self) -> int:
        return 1 if self is FheOperation.NOT else 2


EncryptedHandle = Union[int, str]


def _as_utc(moment: datetime) -> datetime:
    # Naive timestamps are taken to be UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass(frozen=True)
class EncryptedInput:
    """Ciphertext plus input proof, passed verbatim to a contract call."""
    data: bytes
    signature: str

    def __iter__(self) -> Iterator[Any]:
        # contract.functions.submit(*encrypted)
        return iter((self.data, self.signature))

    def as_tuple(self) -> Tuple[bytes, str]:
        return (self.data, self.signature)


@dataclass(frozen=True)
class DecryptionPermit:
    """
    Signature-backed capability to decrypt handles of one contract/user pair.

    Possession implies authorization. ``contract`` and ``user`` record the
    scope the permit was requested for; the gateway is what enforces it.
    """
    signature: str
    public_key: str
    expires_at: Optional[datetime] = None
    contract: Optional[str] = None
    user: Optional[str] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return _as_utc(self.expires_at) <= _as_utc(now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signature": self.signature,
            "publicKey": self.public_key,
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
            "contract": self.contract,
            "user": self.user,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DecryptionPermit":
        expires_at = data.get("expiresAt")
        return cls(
            signature=data["signature"],
            public_key=data["publicKey"],
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
            contract=data.get("contract"),
            user=data.get("user"),
        )


class PermitState(str, Enum):
    """Lifecycle of a (contract, user) authorization."""
    UNREQUESTED = "unrequested"
    PENDING = "pending"
    GRANTED = "granted"
    EXPIRED = "expired"
    REVOKED = "revoked"


@dataclass
class PermitCacheEntry:
    """Cached permit for one (contract, user) pair."""
    permit: DecryptionPermit
    contract: str
    user: str
    expires_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return self.permit.is_expired(now)
        now = now or datetime.now(timezone.utc)
        return _as_utc(self.expires_at) <= _as_utc(now)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation-layer check."""
    valid: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, error: str) -> "ValidationResult":
        return cls(valid=False, error=error)
