import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .config import settings
from .security.compare import secure_compare
from .security.storage import JsonFileBackend, SecureStorage
from .types.fhe import DecryptionPermit, PermitCacheEntry


logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str]

_STORAGE_KEY_PREFIX = "permit:"


def cache_key(contract: str, user: str) -> CacheKey:
    return (contract.lower(), user.lower())


class PermitCache:
    """In-memory LRU cache of permits, one entry per (contract, user).

    Entries expire with their permit. With ``storage`` set, every entry is
    mirrored into that SecureStorage namespace and reloaded on construction.
    """

    def __init__(self, max_size: int = 1000, storage: Optional[SecureStorage] = None):
        self.max_size = max_size
        self.storage = storage
        self._cache: Dict[CacheKey, PermitCacheEntry] = {}
        self._access_order: List[CacheKey] = []
        if storage is not None:
            self._load()

    def _storage_key(self, key: CacheKey) -> str:
        return f"{_STORAGE_KEY_PREFIX}{key[0]}:{key[1]}"

    def _load(self) -> None:
        for name in self.storage.keys():
            if not name.startswith(_STORAGE_KEY_PREFIX):
                continue
            data = self.storage.get(name)
            try:
                permit = DecryptionPermit.from_dict(data["permit"])
                entry = PermitCacheEntry(
                    permit=permit,
                    contract=data["contract"],
                    user=data["user"],
                    expires_at=permit.expires_at,
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Dropping unreadable stored permit {name}: {e}")
                self.storage.remove(name)
                continue
            if entry.is_expired():
                self.storage.remove(name)
                continue
            self._remember(cache_key(entry.contract, entry.user), entry)

    def _remember(self, key: CacheKey, entry: PermitCacheEntry) -> None:
        self._cache[key] = entry

        if key in self._access_order:
            self._access_order.remove(key)
        self._access_order.append(key)

        # Evict oldest if over max size
        while len(self._cache) > self.max_size:
            oldest_key = self._access_order.pop(0)
            self._drop(oldest_key)

    def _drop(self, key: CacheKey) -> Optional[PermitCacheEntry]:
        entry = self._cache.pop(key, None)
        if key in self._access_order:
            self._access_order.remove(key)
        if self.storage is not None:
            self.storage.remove(self._storage_key(key))
        return entry

    def get(self, contract: str, user: str, now: Optional[datetime] = None) -> Optional[PermitCacheEntry]:
        key = cache_key(contract, user)
        entry = self._cache.get(key)
        if entry is None:
            return None

        if entry.is_expired(now or datetime.now(timezone.utc)):
            self._drop(key)
            return None

        # Update access order for LRU
        self._access_order.remove(key)
        self._access_order.append(key)

        return entry

    def set(self, contract: str, user: str, permit: DecryptionPermit) -> PermitCacheEntry:
        key = cache_key(contract, user)
        entry = PermitCacheEntry(
            permit=permit,
            contract=key[0],
            user=key[1],
            expires_at=permit.expires_at,
        )
        self._remember(key, entry)

        if self.storage is not None:
            self.storage.set(
                self._storage_key(key),
                {"permit": permit.to_dict(), "contract": key[0], "user": key[1]},
            )
        return entry

    def remove(self, contract: str, user: str) -> Optional[PermitCacheEntry]:
        return self._drop(cache_key(contract, user))

    def find(self, permit: DecryptionPermit) -> Optional[CacheKey]:
        """Key of the entry holding ``permit``, if any."""
        for key, entry in self._cache.items():
            if (
                secure_compare(entry.permit.signature, permit.signature)
                and entry.permit.public_key == permit.public_key
            ):
                return key
        return None

    def clear(self) -> None:
        for key in list(self._cache):
            self._drop(key)

    def size(self) -> int:
        return len(self._cache)


# One cache per store file; separate backends would overwrite each other
_shared_caches: Dict[str, PermitCache] = {}


def default_permit_cache() -> PermitCache:
    """Memory-only cache, or the cache shared by everyone persisting to
    settings.permit_store_path."""
    if not settings.permit_store_path:
        return PermitCache()

    path = str(Path(settings.permit_store_path).expanduser().resolve())
    cache = _shared_caches.get(path)
    if cache is None:
        cache = PermitCache(storage=SecureStorage(backend=JsonFileBackend(path)))
        _shared_caches[path] = cache
    return cache
