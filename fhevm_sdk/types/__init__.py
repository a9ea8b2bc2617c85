from .fhe import (
    FHE_RANGES,
    INTEGER_TYPES,
    DecryptionPermit,
    EncryptedHandle,
    EncryptedInput,
    FheOperation,
    FheRange,
    FheType,
    PermitCacheEntry,
    PermitState,
    ValidationResult,
    WideInt,
    wide,
)
from .gateway import (
    DecryptRequest,
    DecryptResponse,
    GatewayHealth,
    PermitCheckRequest,
    PermitValidationResponse,
    PublicKeyResponse,
)

__all__ = [
    "FHE_RANGES",
    "INTEGER_TYPES",
    "DecryptionPermit",
    "EncryptedHandle",
    "EncryptedInput",
    "FheOperation",
    "FheRange",
    "FheType",
    "PermitCacheEntry",
    "PermitState",
    "ValidationResult",
    "WideInt",
    "wide",
    "DecryptRequest",
    "DecryptResponse",
    "GatewayHealth",
    "PermitCheckRequest",
    "PermitValidationResponse",
    "PublicKeyResponse",
]
