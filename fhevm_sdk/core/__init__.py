"""
Encryption, permit and decryption operations.

Usage:
    from fhevm_sdk.core import encrypt, PermitAuthority, decrypt

    encrypted = await encrypt(session, 42)

    authority = PermitAuthority(session)
    permit = await authority.request_permit(contract="0x...")

    value = await decrypt(session, handle, permit)
"""

from .computation import compute
from .decryption import (
    decrypt,
    decrypt_address,
    decrypt_batch,
    decrypt_bool,
    decrypt_uint8,
    decrypt_uint16,
    decrypt_uint32,
    decrypt_uint64,
    get_decryption_function,
)
from .encryption import (
    EncryptedInputBuilder,
    create_input_builder,
    encrypt,
    encrypt_address,
    encrypt_as,
    encrypt_bool,
    encrypt_uint8,
    encrypt_uint16,
    encrypt_uint32,
    encrypt_uint64,
    get_encryption_function,
    infer_fhe_type,
    resolve_encryption_type,
)
from .permits import (
    PermitAuthority,
    build_permit_payload,
    is_permit_valid,
    request_permit,
    revoke_permit,
)

__all__ = [
    # Encryption
    "encrypt",
    "encrypt_as",
    "encrypt_uint8",
    "encrypt_uint16",
    "encrypt_uint32",
    "encrypt_uint64",
    "encrypt_bool",
    "encrypt_address",
    "resolve_encryption_type",
    "infer_fhe_type",
    "get_encryption_function",
    "EncryptedInputBuilder",
    "create_input_builder",
    # Permits
    "PermitAuthority",
    "build_permit_payload",
    "request_permit",
    "is_permit_valid",
    "revoke_permit",
    # Decryption
    "decrypt",
    "decrypt_batch",
    "decrypt_bool",
    "decrypt_address",
    "decrypt_uint8",
    "decrypt_uint16",
    "decrypt_uint32",
    "decrypt_uint64",
    "get_decryption_function",
    # Computation
    "compute",
]
