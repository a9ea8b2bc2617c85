"""
Encryption of plaintext values into FHEVM contract inputs.

Each value is tagged with one of six encodings (uint8/16/32/64, bool,
address), range-checked, and only then handed to the session's FHE instance.
Out-of-range values never reach the instance.

Usage:
    encrypted = await encrypt(session, 42)          # uint8
    encrypted = await encrypt(session, wide(2**40))  # uint64, explicit
    await contract.functions.submit(*encrypted).transact()

    builder = create_input_builder(session)
    builder.add8(42).add_bool(True).add_address("0x...")
    combined = await builder.encrypt()               # one proof for all
"""

import inspect
import logging
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..errors import EncryptionFailed, SdkError, UnsupportedOperation, ValidationError
from ..session import ClientSession, require_ready
from ..types.fhe import FHE_RANGES, EncryptedInput, FheType, WideInt
from ..validation import ADDRESS_PATTERN, as_integer, check_fhe_value


logger = logging.getLogger(__name__)

EncryptionFunction = Callable[[ClientSession, Any], Awaitable[EncryptedInput]]

# builder method per encoding
_ADDERS: Dict[FheType, str] = {
    FheType.UINT8: "add8",
    FheType.UINT16: "add16",
    FheType.UINT32: "add32",
    FheType.UINT64: "add64",
    FheType.BOOL: "add_bool",
    FheType.ADDRESS: "add_address",
}

# auto-detect never escalates past uint32 on its own
_AUTO_WIDTHS = (FheType.UINT8, FheType.UINT16, FheType.UINT32)


def normalize_value(value: Any, fhe_type: FheType) -> Any:
    """
    Validate ``value`` for ``fhe_type`` and return the form the instance takes.

    Raises:
        ValidationError: carries the attempted value and the violated bound
    """
    result = check_fhe_value(value, fhe_type)
    if not result.valid:
        if fhe_type is FheType.ADDRESS:
            bound = ADDRESS_PATTERN.pattern
        else:
            bound = FHE_RANGES.get(fhe_type)
        raise ValidationError(result.error, value=value, bound=bound)

    if fhe_type is FheType.BOOL:
        return bool(value)
    if fhe_type is FheType.ADDRESS:
        return value
    return as_integer(value)


def resolve_encryption_type(value: Any) -> Tuple[FheType, Any]:
    """
    Map a runtime value to exactly one encoding.

    Order: bool, address-shaped string, WideInt (explicit uint64), then the
    smallest of uint8/uint16/uint32 that fits. Everything else is rejected.

    Raises:
        ValidationError: no encoding applies
    """
    if isinstance(value, bool):
        return FheType.BOOL, value

    if isinstance(value, str):
        if ADDRESS_PATTERN.match(value):
            return FheType.ADDRESS, value
        raise ValidationError(
            f"String value must be a valid Ethereum address, got {value!r}",
            value=value,
            bound=ADDRESS_PATTERN.pattern,
        )

    if isinstance(value, WideInt):
        return FheType.UINT64, normalize_value(int(value), FheType.UINT64)

    number = as_integer(value)
    if number is None:
        raise ValidationError(
            f"Unsupported value type for encryption: {type(value).__name__}",
            value=value,
        )

    if number < 0:
        raise ValidationError(
            f"Negative values are not supported: {number}",
            value=value,
            bound=FHE_RANGES[FheType.UINT8],
        )

    for fhe_type in _AUTO_WIDTHS:
        if FHE_RANGES[fhe_type].contains(number):
            return fhe_type, number

    raise ValidationError(
        f"Number value {number} out of range for uint32, use wide() for uint64",
        value=value,
        bound=FHE_RANGES[FheType.UINT32],
    )


def infer_fhe_type(value: Any) -> FheType:
    return resolve_encryption_type(value)[0]


def _coerce_result(result: Any) -> EncryptedInput:
    if isinstance(result, EncryptedInput):
        encrypted = result
    elif isinstance(result, Mapping):
        encrypted = EncryptedInput(data=bytes(result["data"]), signature=str(result["signature"]))
    elif isinstance(result, (tuple, list)) and len(result) == 2:
        encrypted = EncryptedInput(data=bytes(result[0]), signature=str(result[1]))
    else:
        raise TypeError(f"FHE instance returned {type(result).__name__}, expected an encrypted input")

    if not encrypted.data or not encrypted.signature:
        raise ValueError("FHE instance returned an empty ciphertext or proof")
    return encrypted


async def _run_builder(session: ClientSession, entries: List[Tuple[FheType, Any]]) -> EncryptedInput:
    """Feed already-validated entries to a fresh instance input and encrypt."""
    try:
        native = session.instance.create_encrypted_input(
            session.network.acl_address,
            session.address,
        )
        for fhe_type, value in entries:
            getattr(native, _ADDERS[fhe_type])(value)
        result = native.encrypt()
        if inspect.isawaitable(result):
            result = await result
        return _coerce_result(result)
    except SdkError:
        raise
    except Exception as e:
        logger.error(f"FHE instance failed to encrypt {[t.value for t, _ in entries]}: {e}")
        raise EncryptionFailed(f"Encryption failed: {e}") from e


async def encrypt_as(session: ClientSession, value: Any, fhe_type: FheType) -> EncryptedInput:
    """Encrypt ``value`` with an explicit encoding."""
    fhe_type = FheType(fhe_type)
    normalized = normalize_value(value, fhe_type)
    require_ready(session, need_address=True)
    return await _run_builder(session, [(fhe_type, normalized)])


async def encrypt_uint8(session: ClientSession, value: int) -> EncryptedInput:
    return await encrypt_as(session, value, FheType.UINT8)


async def encrypt_uint16(session: ClientSession, value: int) -> EncryptedInput:
    return await encrypt_as(session, value, FheType.UINT16)


async def encrypt_uint32(session: ClientSession, value: int) -> EncryptedInput:
    return await encrypt_as(session, value, FheType.UINT32)


async def encrypt_uint64(session: ClientSession, value: int) -> EncryptedInput:
    return await encrypt_as(session, value, FheType.UINT64)


async def encrypt_bool(session: ClientSession, value: Any) -> EncryptedInput:
    return await encrypt_as(session, value, FheType.BOOL)


async def encrypt_address(session: ClientSession, value: str) -> EncryptedInput:
    return await encrypt_as(session, value, FheType.ADDRESS)


async def encrypt(session: ClientSession, value: Any) -> EncryptedInput:
    """Encrypt with the encoding picked by ``resolve_encryption_type``."""
    fhe_type, normalized = resolve_encryption_type(value)
    logger.debug(f"Auto-detected {fhe_type.value} for {type(value).__name__} value")
    require_ready(session, need_address=True)
    return await _run_builder(session, [(fhe_type, normalized)])


_ENCRYPTION_FUNCTIONS: Dict[FheType, EncryptionFunction] = {
    FheType.UINT8: encrypt_uint8,
    FheType.UINT16: encrypt_uint16,
    FheType.UINT32: encrypt_uint32,
    FheType.UINT64: encrypt_uint64,
    FheType.BOOL: encrypt_bool,
    FheType.ADDRESS: encrypt_address,
}


def get_encryption_function(fhe_type: Any) -> EncryptionFunction:
    try:
        return _ENCRYPTION_FUNCTIONS[FheType(fhe_type)]
    except ValueError as e:
        raise UnsupportedOperation(f"Unknown FHE type: {fhe_type!r}") from e


class EncryptedInputBuilder:
    """
    Collects several typed values and encrypts them under a single proof.

    Values are validated as they are added. The builder is single use: once
    ``encrypt`` has been called it refuses further additions and a second
    ``encrypt``.
    """

    def __init__(self, session: ClientSession):
        self._session = require_ready(session, need_address=True)
        self._entries: List[Tuple[FheType, Any]] = []
        self._used = False

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def types(self) -> List[FheType]:
        return [fhe_type for fhe_type, _ in self._entries]

    @property
    def used(self) -> bool:
        return self._used

    def add(self, value: Any, fhe_type: Optional[FheType] = None) -> "EncryptedInputBuilder":
        """Add a value, auto-detecting its encoding unless one is given."""
        self._ensure_open()
        if fhe_type is None:
            fhe_type, normalized = resolve_encryption_type(value)
        else:
            fhe_type = FheType(fhe_type)
            normalized = normalize_value(value, fhe_type)
        self._entries.append((fhe_type, normalized))
        return self

    def add8(self, value: int) -> "EncryptedInputBuilder":
        return self.add(value, FheType.UINT8)

    def add16(self, value: int) -> "EncryptedInputBuilder":
        return self.add(value, FheType.UINT16)

    def add32(self, value: int) -> "EncryptedInputBuilder":
        return self.add(value, FheType.UINT32)

    def add64(self, value: int) -> "EncryptedInputBuilder":
        return self.add(value, FheType.UINT64)

    def add_bool(self, value: Any) -> "EncryptedInputBuilder":
        return self.add(value, FheType.BOOL)

    def add_address(self, value: str) -> "EncryptedInputBuilder":
        return self.add(value, FheType.ADDRESS)

    def _ensure_open(self) -> None:
        if self._used:
            raise EncryptionFailed("Encrypted input builder has already been used")

    async def encrypt(self) -> EncryptedInput:
        self._ensure_open()
        if not self._entries:
            raise EncryptionFailed("Encrypted input builder is empty")
        self._used = True
        return await _run_builder(self._session, list(self._entries))


def create_input_builder(session: ClientSession) -> EncryptedInputBuilder:
    return EncryptedInputBuilder(session)
