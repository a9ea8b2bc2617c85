"""
SDK error taxonomy.

Every public operation either returns a typed value or raises one of the
classes below. Transport failures keep the original exception as
``__cause__``.
"""

from enum import Enum
from typing import Any, Dict, Optional


class SdkErrorCode(str, Enum):
    """Machine-readable error codes."""
    CLIENT_NOT_INITIALIZED = "CLIENT_NOT_INITIALIZED"
    INVALID_CONFIG = "INVALID_CONFIG"
    ENCRYPTION_FAILED = "ENCRYPTION_FAILED"
    DECRYPTION_FAILED = "DECRYPTION_FAILED"
    INVALID_PERMIT = "INVALID_PERMIT"
    NETWORK_ERROR = "NETWORK_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    USER_REJECTED = "USER_REJECTED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"


class SdkError(Exception):
    """Base exception for all SDK errors."""

    code: SdkErrorCode = SdkErrorCode.INVALID_CONFIG

    def __init__(
        self,
        message: str,
        *,
        code: Optional[SdkErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class ClientNotInitialized(SdkError):
    """Session used before it was ready."""
    code = SdkErrorCode.CLIENT_NOT_INITIALIZED


class InvalidConfig(SdkError):
    """Malformed network, request or handle."""
    code = SdkErrorCode.INVALID_CONFIG


class EncryptionFailed(SdkError):
    """The FHE instance rejected an encryption, or the value was invalid."""
    code = SdkErrorCode.ENCRYPTION_FAILED


class ValidationError(EncryptionFailed):
    """A plaintext value violated the bounds of its encoding."""
    code = SdkErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, *, value: Any = None, bound: Any = None):
        super().__init__(message, details={"value": repr(value), "bound": repr(bound)})
        self.value = value
        self.bound = bound


class DecryptionFailed(SdkError):
    """The gateway rejected a decryption or could not be reached."""
    code = SdkErrorCode.DECRYPTION_FAILED


class InvalidPermit(SdkError):
    """Permit failed the local shape or expiry check."""
    code = SdkErrorCode.INVALID_PERMIT


class UserRejected(SdkError):
    """The connected account declined to sign."""
    code = SdkErrorCode.USER_REJECTED


class NetworkError(SdkError):
    """Gateway or signer transport failure outside of decryption."""
    code = SdkErrorCode.NETWORK_ERROR


class RateLimitExceeded(SdkError):
    """Local rate limiter denied the request."""
    code = SdkErrorCode.RATE_LIMIT_EXCEEDED

    def __init__(self, limit: int, window_ms: int, retry_after_ms: int, identifier: str = ""):
        self.limit = limit
        self.window_ms = window_ms
        self.retry_after_ms = retry_after_ms
        self.identifier = identifier
        super().__init__(
            f"Rate limit exceeded: {limit} requests per {window_ms}ms",
            details={"identifier": identifier, "retry_after_ms": retry_after_ms},
        )


class UnsupportedOperation(SdkError):
    """Computation path that this client does not implement."""
    code = SdkErrorCode.UNSUPPORTED_OPERATION
