from .compare import generate_random_bytes, sanitize_input, secure_compare
from .rate_limit import RateLimiter
from .storage import JsonFileBackend, MemoryBackend, SecureStorage, StorageBackend

__all__ = [
    "RateLimiter",
    "secure_compare",
    "generate_random_bytes",
    "sanitize_input",
    "SecureStorage",
    "StorageBackend",
    "MemoryBackend",
    "JsonFileBackend",
]
