"""
Validation helpers for FHE values, addresses, permits and request payloads.

Every ``check_*`` function is pure and returns a ``ValidationResult``; none
raise for malformed input. Callers that want an exception pass the result to
``raise_for``. The ``parse_*`` normalizers are the exception: they return the
parsed value and raise ``InvalidConfig``.
"""

import re
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Type

from .errors import InvalidConfig, SdkError
from .types.fhe import (
    FHE_RANGES,
    DecryptionPermit,
    EncryptedInput,
    FheType,
    ValidationResult,
)


ADDRESS_PATTERN = re.compile(r"^0x[0-9a-f]{40}$", re.IGNORECASE)

_DECIMAL_PATTERN = re.compile(r"^[0-9]+$")
_HEX_PATTERN = re.compile(r"^0x[0-9a-f]+$", re.IGNORECASE)


def is_valid_address(value: Any) -> bool:
    return isinstance(value, str) and bool(ADDRESS_PATTERN.match(value))


def check_address(value: Any, label: str = "address") -> ValidationResult:
    if not isinstance(value, str):
        return ValidationResult.fail(f"{label} must be a string")
    if not ADDRESS_PATTERN.match(value):
        return ValidationResult.fail(f"Invalid Ethereum {label} format: {value!r}")
    return ValidationResult.ok()


def as_integer(value: Any) -> Optional[int]:
    """Return ``value`` as an int when it is integral, else None.

    ``bool`` is not an integer here.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def check_fhe_value(value: Any, fhe_type: FheType) -> ValidationResult:
    """Check that ``value`` can be encrypted as ``fhe_type``."""
    if fhe_type is FheType.BOOL:
        # Any truthy/falsy value is coercible
        return ValidationResult.ok()

    if fhe_type is FheType.ADDRESS:
        return check_address(value)

    bounds = FHE_RANGES.get(fhe_type)
    if bounds is None:
        return ValidationResult.fail(f"Unknown FHE type: {fhe_type}")

    number = as_integer(value)
    if number is None:
        return ValidationResult.fail(f"Value {value!r} is not an integer")

    if not bounds.contains(number):
        return ValidationResult.fail(
            f"Value {number} out of range for {fhe_type.value} ({bounds})"
        )
    return ValidationResult.ok()


def check_permit(permit: Any, now: Optional[datetime] = None) -> ValidationResult:
    """Shape and expiry check, no network involved."""
    if not isinstance(permit, DecryptionPermit):
        return ValidationResult.fail("Decryption permit is required")
    if not isinstance(permit.signature, str) or not permit.signature:
        return ValidationResult.fail("Permit signature is required")
    if not isinstance(permit.public_key, str) or not permit.public_key:
        return ValidationResult.fail("Permit public key is required")
    if permit.is_expired(now):
        return ValidationResult.fail(
            f"Permit expired at {permit.expires_at.isoformat()}"
        )
    return ValidationResult.ok()


def _coerce_handle(handle: Any) -> Optional[int]:
    if isinstance(handle, bool) or handle is None:
        return None
    if isinstance(handle, int):
        return handle if handle >= 0 else None
    if isinstance(handle, str):
        text = handle.strip()
        if _DECIMAL_PATTERN.match(text):
            return int(text)
        if _HEX_PATTERN.match(text):
            return int(text, 16)
    return None


def check_handle(handle: Any) -> ValidationResult:
    if handle is None:
        return ValidationResult.fail("Encrypted handle is required")
    if _coerce_handle(handle) is None:
        return ValidationResult.fail(f"Invalid encrypted handle format: {handle!r}")
    return ValidationResult.ok()


def check_handle_batch(handles: Any) -> ValidationResult:
    if isinstance(handles, (str, bytes)) or not isinstance(handles, Sequence):
        return ValidationResult.fail("Handles must be a list")
    if not handles:
        return ValidationResult.fail("Handle list cannot be empty")
    for index, handle in enumerate(handles):
        result = check_handle(handle)
        if not result.valid:
            return ValidationResult.fail(f"Invalid handle at index {index}: {result.error}")
    return ValidationResult.ok()


def check_operands(operands: Any, min_count: int = 1) -> ValidationResult:
    """Non-empty, minimum-arity check for compound operations."""
    if isinstance(operands, (str, bytes)) or not isinstance(operands, Sequence):
        return ValidationResult.fail("Operands must be a list")
    if not operands:
        return ValidationResult.fail("Operand list cannot be empty")
    if len(operands) < min_count:
        return ValidationResult.fail(
            f"At least {min_count} operands are required, got {len(operands)}"
        )
    for index, operand in enumerate(operands):
        result = check_handle(operand)
        if not result.valid:
            return ValidationResult.fail(f"Operand at index {index}: {result.error}")
    return ValidationResult.ok()


def check_required_fields(payload: Any, fields: Iterable[str]) -> ValidationResult:
    """Every name in ``fields`` must be present and non-empty in ``payload``."""
    if not isinstance(payload, Mapping):
        return ValidationResult.fail("Request body must be an object")
    missing = [name for name in fields if payload.get(name) in (None, "")]
    if missing:
        return ValidationResult.fail(f"Missing required fields: {', '.join(missing)}")
    return ValidationResult.ok()


def check_network_config(config: Any) -> ValidationResult:
    if config is None:
        return ValidationResult.fail("Network configuration is required")

    chain_id = getattr(config, "chain_id", None)
    if isinstance(chain_id, bool) or not isinstance(chain_id, int) or chain_id <= 0:
        return ValidationResult.fail("Invalid chain_id")

    for label in ("rpc_url", "gateway_url"):
        url = getattr(config, label, None)
        if not isinstance(url, str) or not url.startswith(("http://", "https://")):
            return ValidationResult.fail(f"Invalid {label}: {url!r}")

    return check_address(getattr(config, "acl_address", None), "ACL address")


def check_encrypted_input(encrypted: Any) -> ValidationResult:
    if not isinstance(encrypted, EncryptedInput):
        return ValidationResult.fail("Encrypted input is required")
    if not isinstance(encrypted.data, (bytes, bytearray)) or not encrypted.data:
        return ValidationResult.fail("Encrypted data cannot be empty")
    if not isinstance(encrypted.signature, str) or not encrypted.signature:
        return ValidationResult.fail("Signature is required")
    return ValidationResult.ok()


def raise_for(result: ValidationResult, error_cls: Type[SdkError] = InvalidConfig) -> None:
    """Escalate a failed check to ``error_cls``."""
    if not result.valid:
        raise error_cls(result.error or "Validation failed")


def parse_handle(handle: Any) -> int:
    raise_for(check_handle(handle))
    return _coerce_handle(handle)


def parse_handles(handles: Any) -> List[int]:
    raise_for(check_handle_batch(handles))
    return [_coerce_handle(handle) for handle in handles]
