"""Client SDK for encrypting inputs to, and decrypting results from, FHEVM contracts."""

from .cache import PermitCache
from .config import Settings, settings
from .core import (
    EncryptedInputBuilder,
    PermitAuthority,
    compute,
    create_input_builder,
    decrypt,
    decrypt_address,
    decrypt_batch,
    decrypt_bool,
    decrypt_uint8,
    decrypt_uint16,
    decrypt_uint32,
    decrypt_uint64,
    encrypt,
    encrypt_address,
    encrypt_bool,
    encrypt_uint8,
    encrypt_uint16,
    encrypt_uint32,
    encrypt_uint64,
    get_decryption_function,
    get_encryption_function,
    infer_fhe_type,
    is_permit_valid,
    request_permit,
    revoke_permit,
)
from .crypto import FheInputBuilder, FheInstance, InstanceConfig
from .errors import (
    ClientNotInitialized,
    DecryptionFailed,
    EncryptionFailed,
    InvalidConfig,
    InvalidPermit,
    NetworkError,
    RateLimitExceeded,
    SdkError,
    SdkErrorCode,
    UnsupportedOperation,
    UserRejected,
    ValidationError,
)
from .logging_config import setup_logging
from .networks import NETWORKS, NetworkConfig, get_network, list_networks, resolve_network
from .providers import GatewayProvider
from .security import (
    JsonFileBackend,
    MemoryBackend,
    RateLimiter,
    SecureStorage,
    generate_random_bytes,
    secure_compare,
)
from .session import ClientSession, create_session, is_session_ready, require_ready
from .signers import Eip1193Signer, LocalAccountSigner, TypedDataSigner, recover_typed_data_signer
from .types import (
    DecryptionPermit,
    EncryptedInput,
    FheOperation,
    FheType,
    PermitState,
    WideInt,
    wide,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Settings",
    "settings",
    "setup_logging",
    # Session
    "ClientSession",
    "create_session",
    "is_session_ready",
    "require_ready",
    "NETWORKS",
    "NetworkConfig",
    "get_network",
    "list_networks",
    "resolve_network",
    "GatewayProvider",
    "FheInstance",
    "FheInputBuilder",
    "InstanceConfig",
    "TypedDataSigner",
    "recover_typed_data_signer",
    "LocalAccountSigner",
    "Eip1193Signer",
    # Types
    "FheType",
    "FheOperation",
    "WideInt",
    "wide",
    "EncryptedInput",
    "DecryptionPermit",
    "PermitState",
    # Operations
    "encrypt",
    "encrypt_uint8",
    "encrypt_uint16",
    "encrypt_uint32",
    "encrypt_uint64",
    "encrypt_bool",
    "encrypt_address",
    "infer_fhe_type",
    "get_encryption_function",
    "EncryptedInputBuilder",
    "create_input_builder",
    "PermitAuthority",
    "PermitCache",
    "request_permit",
    "is_permit_valid",
    "revoke_permit",
    "decrypt",
    "decrypt_batch",
    "decrypt_bool",
    "decrypt_address",
    "decrypt_uint8",
    "decrypt_uint16",
    "decrypt_uint32",
    "decrypt_uint64",
    "get_decryption_function",
    "compute",
    # Security
    "RateLimiter",
    "SecureStorage",
    "MemoryBackend",
    "JsonFileBackend",
    "secure_compare",
    "generate_random_bytes",
    # Errors
    "SdkError",
    "SdkErrorCode",
    "ClientNotInitialized",
    "InvalidConfig",
    "EncryptionFailed",
    "ValidationError",
    "DecryptionFailed",
    "InvalidPermit",
    "UserRejected",
    "NetworkError",
    "RateLimitExceeded",
    "UnsupportedOperation",
]
