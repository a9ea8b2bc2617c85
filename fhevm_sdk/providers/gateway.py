"""
Gateway API Client

Async client for the FHEVM gateway, the HTTP service that distributes the
network public key and decrypts ciphertext handles on behalf of permit
holders:

- GET  /publicKey        -> {"publicKey": "0x..."}
- POST /decrypt          -> {"value": "<numeric string>"}
- POST /permit/validate  -> {"valid": true|false}
- POST /permit/revoke    -> status only
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..config import settings
from ..errors import DecryptionFailed, NetworkError
from ..logging_config import redact
from ..security.rate_limit import RateLimiter
from ..types.gateway import (
    DecryptRequest,
    DecryptResponse,
    GatewayHealth,
    PermitCheckRequest,
    PermitValidationResponse,
    PublicKeyResponse,
)
from .base import Provider

logger = logging.getLogger(__name__)

# Answers to /permit/revoke meaning "nothing to revoke"
UNKNOWN_PERMIT_STATUSES = (404, 410)


class GatewayProvider(Provider):
    """
    Client for one gateway deployment.

    The underlying ``httpx.AsyncClient`` is created lazily and reused; pass
    ``client`` to supply one (tests use ``httpx.MockTransport``). When a
    ``rate_limiter`` is attached every request consumes one slot for
    ``rate_limit_key`` before anything is sent.
    """

    name = "gateway"

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        rate_limiter: Optional[RateLimiter] = None,
        rate_limit_key: str = "default",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s if timeout_s is not None else settings.gateway_timeout_seconds
        self._http_client = client
        self._owns_client = client is None
        self.rate_limiter = rate_limiter
        self.rate_limit_key = rate_limit_key

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout_s,
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                },
            )
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client and self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        if self.rate_limiter is not None:
            self.rate_limiter.check(self.rate_limit_key)

        client = await self._get_client()
        response = await client.request(method, f"{self.base_url}{path}", json=json)
        response.raise_for_status()
        return response

    # =========================================================================
    # Keys
    # =========================================================================

    async def get_public_key(self) -> str:
        """Fetch the network FHE public key."""
        try:
            response = await self._request("GET", "/publicKey")
            return PublicKeyResponse.model_validate(response.json()).public_key
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"Failed to fetch public key: HTTP {e.response.status_code}",
                details={"gateway": self.base_url},
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(
                f"Failed to fetch public key from gateway: {e}",
                details={"gateway": self.base_url},
            ) from e
        except (ValueError, PydanticValidationError) as e:
            raise NetworkError(f"Gateway returned a malformed public key response: {e}") from e

    # =========================================================================
    # Decryption
    # =========================================================================

    async def decrypt(self, handle: int, signature: str, public_key: str) -> int:
        """
        Exchange a handle and permit for the plaintext.

        Raises:
            DecryptionFailed: non-success answer, transport error or
                unparseable value; the original error is the cause
        """
        payload = DecryptRequest(handle=str(handle), signature=signature, public_key=public_key)
        try:
            response = await self._request("POST", "/decrypt", json=payload.model_dump(by_alias=True))
            return DecryptResponse.model_validate(response.json()).value
        except httpx.HTTPStatusError as e:
            logger.warning(f"Gateway refused decryption of handle {handle}: HTTP {e.response.status_code}")
            raise DecryptionFailed(
                f"Decryption failed: HTTP {e.response.status_code}",
                details={"handle": str(handle), "status": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Decryption request for handle {handle} failed: {e}")
            raise DecryptionFailed(
                f"Failed to decrypt value: {e}",
                details={"handle": str(handle)},
            ) from e
        except (ValueError, PydanticValidationError) as e:
            raise DecryptionFailed(
                f"Gateway returned an invalid decryption result: {e}",
                details={"handle": str(handle)},
            ) from e

    # =========================================================================
    # Permits
    # =========================================================================

    async def validate_permit(self, signature: str, public_key: str) -> bool:
        """Ask the gateway whether a permit is still honoured.

        A 4xx answer is a verdict ("not valid"); 5xx and transport errors are
        raised as NetworkError.
        """
        payload = PermitCheckRequest(signature=signature, public_key=public_key)
        try:
            response = await self._request(
                "POST", "/permit/validate", json=payload.model_dump(by_alias=True)
            )
        except httpx.HTTPStatusError as e:
            if e.response.status_code < 500:
                logger.info(
                    f"Gateway rejected permit {redact(signature)}: HTTP {e.response.status_code}"
                )
                return False
            raise NetworkError(f"Permit validation failed: HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise NetworkError(f"Failed to validate permit: {e}") from e

        try:
            return PermitValidationResponse.model_validate(response.json()).valid is True
        except (ValueError, PydanticValidationError) as e:
            raise NetworkError(f"Gateway returned a malformed validation response: {e}") from e

    async def revoke_permit(self, signature: str, public_key: str) -> bool:
        """
        Invalidate a permit on the gateway.

        Returns:
            True if the gateway revoked it, False if it did not know it
        """
        payload = PermitCheckRequest(signature=signature, public_key=public_key)
        try:
            await self._request("POST", "/permit/revoke", json=payload.model_dump(by_alias=True))
            return True
        except httpx.HTTPStatusError as e:
            if e.response.status_code in UNKNOWN_PERMIT_STATUSES:
                logger.info(f"Gateway does not know permit {redact(signature)}, nothing to revoke")
                return False
            raise NetworkError(f"Failed to revoke permit: HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise NetworkError(f"Failed to revoke permit: {e}") from e

    # =========================================================================
    # Health
    # =========================================================================

    async def ready(self) -> bool:
        try:
            await self.get_public_key()
            return True
        except NetworkError:
            return False

    async def health_check(self) -> Dict[str, Any]:
        started = time.perf_counter()
        try:
            await self.get_public_key()
        except NetworkError as e:
            health = GatewayHealth(
                status="unhealthy",
                gateway_url=self.base_url,
                available=False,
                error=e.message,
            )
        else:
            health = GatewayHealth(
                status="healthy",
                gateway_url=self.base_url,
                available=True,
                latency_ms=round((time.perf_counter() - started) * 1000, 2),
            )
        return health.model_dump(by_alias=True)
