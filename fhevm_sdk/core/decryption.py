"""
Decryption of ciphertext handles through the gateway.

``decrypt`` returns the plaintext as a Python int; the typed wrappers narrow
it. Narrowing trusts the gateway: the value is assumed to match the type the
caller declares. Pass ``strict=True`` to range-check the narrowed value.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Sequence

from ..errors import DecryptionFailed, InvalidPermit, UnsupportedOperation
from ..session import ClientSession, require_ready
from ..types.fhe import FHE_RANGES, DecryptionPermit, EncryptedHandle, FheType
from ..validation import check_permit, parse_handle, parse_handles


logger = logging.getLogger(__name__)

DecryptionFunction = Callable[..., Awaitable[Any]]

ADDRESS_MAX = 2**160 - 1


def _require_permit(permit: DecryptionPermit) -> None:
    result = check_permit(permit)
    if not result.valid:
        raise InvalidPermit(result.error)


def _check_narrowing(value: int, fhe_type: FheType, strict: bool) -> None:
    if not strict:
        return
    upper = ADDRESS_MAX if fhe_type is FheType.ADDRESS else FHE_RANGES[fhe_type].max
    if not 0 <= value <= upper:
        raise DecryptionFailed(
            f"Decrypted value {value} does not fit declared type {fhe_type.value}",
            details={"value": str(value), "type": fhe_type.value},
        )


async def _decrypt_parsed(session: ClientSession, handle: int, permit: DecryptionPermit) -> int:
    return await session.gateway.decrypt(handle, permit.signature, permit.public_key)


async def decrypt(
    session: ClientSession,
    handle: EncryptedHandle,
    permit: DecryptionPermit,
) -> int:
    """
    Decrypt a single handle.

    Raises:
        InvalidPermit: permit malformed or expired (no request is sent)
        InvalidConfig: handle is not a non-negative integer
        DecryptionFailed: gateway refused or could not be reached
        RateLimitExceeded: the session's rate limiter is exhausted
    """
    session = require_ready(session)
    _require_permit(permit)
    parsed = parse_handle(handle)
    return await _decrypt_parsed(session, parsed, permit)


async def decrypt_batch(
    session: ClientSession,
    handles: Sequence[EncryptedHandle],
    permit: DecryptionPermit,
) -> List[int]:
    """
    Decrypt several handles concurrently, one gateway request each.

    All must succeed: the first failure is raised and no partial result is
    returned. Results are in input order.
    """
    session = require_ready(session)
    _require_permit(permit)
    parsed = parse_handles(handles)

    logger.debug(f"Decrypting batch of {len(parsed)} handles")
    values = await asyncio.gather(
        *(_decrypt_parsed(session, handle, permit) for handle in parsed)
    )
    return list(values)


async def decrypt_bool(
    session: ClientSession,
    handle: EncryptedHandle,
    permit: DecryptionPermit,
    strict: bool = False,
) -> bool:
    value = await decrypt(session, handle, permit)
    _check_narrowing(value, FheType.BOOL, strict)
    return value != 0


async def decrypt_address(
    session: ClientSession,
    handle: EncryptedHandle,
    permit: DecryptionPermit,
    strict: bool = False,
) -> str:
    value = await decrypt(session, handle, permit)
    _check_narrowing(value, FheType.ADDRESS, strict)
    return "0x" + format(value, "x").rjust(40, "0")


async def _decrypt_uint(
    session: ClientSession,
    handle: EncryptedHandle,
    permit: DecryptionPermit,
    fhe_type: FheType,
    strict: bool,
) -> int:
    value = await decrypt(session, handle, permit)
    _check_narrowing(value, fhe_type, strict)
    return value


async def decrypt_uint8(session: ClientSession, handle: EncryptedHandle, permit: DecryptionPermit, strict: bool = False) -> int:
    return await _decrypt_uint(session, handle, permit, FheType.UINT8, strict)


async def decrypt_uint16(session: ClientSession, handle: EncryptedHandle, permit: DecryptionPermit, strict: bool = False) -> int:
    return await _decrypt_uint(session, handle, permit, FheType.UINT16, strict)


async def decrypt_uint32(session: ClientSession, handle: EncryptedHandle, permit: DecryptionPermit, strict: bool = False) -> int:
    return await _decrypt_uint(session, handle, permit, FheType.UINT32, strict)


async def decrypt_uint64(session: ClientSession, handle: EncryptedHandle, permit: DecryptionPermit, strict: bool = False) -> int:
    return await _decrypt_uint(session, handle, permit, FheType.UINT64, strict)


_DECRYPTION_FUNCTIONS: Dict[FheType, DecryptionFunction] = {
    FheType.UINT8: decrypt_uint8,
    FheType.UINT16: decrypt_uint16,
    FheType.UINT32: decrypt_uint32,
    FheType.UINT64: decrypt_uint64,
    FheType.BOOL: decrypt_bool,
    FheType.ADDRESS: decrypt_address,
}


def get_decryption_function(fhe_type: Any) -> DecryptionFunction:
    try:
        return _DECRYPTION_FUNCTIONS[FheType(fhe_type)]
    except ValueError as e:
        raise UnsupportedOperation(f"Unknown FHE type: {fhe_type!r}") from e
