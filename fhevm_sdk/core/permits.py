"""
Decryption permit manager.

Manages the lifecycle of decryption permits for each (contract, user) pair:
- Request: the connected account signs an EIP-712 authorization binding
  itself, the contract and the session public key
- Validation: local shape/expiry check, then the gateway
- Revocation: idempotent, best effort on the gateway

State per pair: UNREQUESTED -> PENDING -> GRANTED -> EXPIRED / REVOKED.
A declined signature returns the pair to UNREQUESTED and caches nothing.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from ..cache import CacheKey, PermitCache, cache_key, default_permit_cache
from ..config import settings
from ..errors import ClientNotInitialized, InvalidConfig, NetworkError, UserRejected
from ..logging_config import redact
from ..session import ClientSession, require_ready
from ..types.fhe import DecryptionPermit, EncryptedHandle, PermitState
from ..validation import check_address, check_permit, parse_handles, raise_for


logger = logging.getLogger(__name__)

PERMIT_DOMAIN_NAME = "Authorization token"
PERMIT_DOMAIN_VERSION = "1"

PERMIT_TYPES: Dict[str, List[Dict[str, str]]] = {
    "Permit": [
        {"name": "account", "type": "address"},
        {"name": "publicKey", "type": "bytes"},
    ],
}


def build_permit_payload(
    session: ClientSession,
    contract: str,
    user: str,
) -> Dict[str, Any]:
    """EIP-712 domain, types and message for a permit request."""
    return {
        "domain": {
            "name": PERMIT_DOMAIN_NAME,
            "version": PERMIT_DOMAIN_VERSION,
            "chainId": session.network.chain_id,
            "verifyingContract": contract,
        },
        "types": PERMIT_TYPES,
        "message": {
            "account": user,
            "publicKey": session.instance.get_public_key(),
        },
    }


class PermitAuthority:
    """
    Requests, tracks, validates and revokes decryption permits for a session.

    Permits are cached per (contract, user) and never shared across accounts.
    The contract/user scope of a permit is not checked again when it is
    used; the gateway enforces it.
    """

    def __init__(
        self,
        session: ClientSession,
        cache: Optional[PermitCache] = None,
        ttl_seconds: Optional[int] = None,
    ):
        self.session = session
        self.cache = cache if cache is not None else default_permit_cache()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.permit_ttl_seconds
        self._states: Dict[CacheKey, PermitState] = {}

    # =========================================================================
    # State
    # =========================================================================

    def get_state(self, contract: str, user: str) -> PermitState:
        key = cache_key(contract, user)
        state = self._states.get(key, PermitState.UNREQUESTED)

        if state is PermitState.GRANTED and self.cache.get(contract, user) is None:
            state = PermitState.EXPIRED
            self._states[key] = state
        elif state is PermitState.UNREQUESTED and self.cache.get(contract, user) is not None:
            # loaded from persistent storage
            state = PermitState.GRANTED
            self._states[key] = state

        return state

    def get_cached_permit(self, contract: str, user: Optional[str] = None) -> Optional[DecryptionPermit]:
        """Unexpired permit previously granted for this exact pair."""
        user = user or self.session.address
        if not user:
            return None
        entry = self.cache.get(contract, user)
        return entry.permit if entry else None

    # =========================================================================
    # Request
    # =========================================================================

    async def request_permit(
        self,
        contract: str,
        user: Optional[str] = None,
        handles: Optional[Sequence[EncryptedHandle]] = None,
        ttl_seconds: Optional[int] = None,
    ) -> DecryptionPermit:
        """
        Ask the connected account to sign a decryption permit.

        Args:
            contract: contract holding the encrypted values
            user: account the permit is for (default: session address)
            handles: optional handles the caller intends to decrypt; they
                are validated but the signature covers the whole contract
            ttl_seconds: permit lifetime (default: settings.permit_ttl_seconds)

        Returns:
            The granted permit, also cached for (contract, user)

        Raises:
            ClientNotInitialized: session not ready or no signer
            InvalidConfig: malformed contract, user or handles
            UserRejected: the account declined to sign
            NetworkError: the signer failed for another reason
        """
        session = require_ready(self.session)
        if session.signer is None:
            raise ClientNotInitialized("FHEVM session has no signer for permit requests")

        user = user or session.address or session.signer.address
        raise_for(check_address(contract, "contract address"))
        raise_for(check_address(user, "user address"))
        if handles is not None:
            parse_handles(handles)

        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        if ttl <= 0:
            raise InvalidConfig(f"Permit lifetime must be positive, got {ttl}")

        key = cache_key(contract, user)
        previous = self._states.get(key, PermitState.UNREQUESTED)
        self._states[key] = PermitState.PENDING

        payload = build_permit_payload(session, contract, user)

        try:
            signature = await session.signer.sign_typed_data(
                payload["domain"],
                payload["types"],
                payload["message"],
            )
        except UserRejected:
            self._states[key] = PermitState.UNREQUESTED
            self.cache.remove(contract, user)
            logger.info(f"Account {user} declined permit for contract {contract}")
            raise
        except NetworkError:
            self._states[key] = previous if previous is not PermitState.PENDING else PermitState.UNREQUESTED
            raise
        except Exception as e:
            self._states[key] = previous if previous is not PermitState.PENDING else PermitState.UNREQUESTED
            raise NetworkError(f"Permit signature request failed: {e}") from e

        permit = DecryptionPermit(
            signature=signature,
            public_key=payload["message"]["publicKey"],
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl),
            contract=key[0],
            user=key[1],
        )

        self.cache.set(contract, user, permit)
        self._states[key] = PermitState.GRANTED

        logger.info(
            f"Granted permit {redact(signature)} for {user} on {contract}, "
            f"expires at {permit.expires_at.isoformat()}"
        )
        return permit

    async def get_or_request_permit(
        self,
        contract: str,
        user: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ) -> DecryptionPermit:
        cached = self.get_cached_permit(contract, user)
        if cached is not None:
            return cached
        return await self.request_permit(contract, user, ttl_seconds=ttl_seconds)

    # =========================================================================
    # Validation / revocation
    # =========================================================================

    async def is_permit_valid(self, permit: DecryptionPermit) -> bool:
        """
        Check a permit locally, then with the gateway.

        A malformed or expired permit returns False without any network call.

        Raises:
            NetworkError: gateway unreachable or failing
        """
        session = require_ready(self.session)
        result = check_permit(permit)
        if not result.valid:
            logger.debug(f"Permit rejected locally: {result.error}")
            key = self.cache.find(permit) if isinstance(permit, DecryptionPermit) else None
            if key is not None and permit.is_expired():
                self.cache.remove(*key)
                self._states[key] = PermitState.EXPIRED
            return False

        return await session.gateway.validate_permit(permit.signature, permit.public_key)

    async def revoke_permit(self, permit: DecryptionPermit) -> bool:
        """
        Revoke a permit. Idempotent.

        Expired, malformed and unknown permits are not errors: they are
        dropped locally and the gateway is only asked about live ones.

        Returns:
            True if the gateway acknowledged a revocation

        Raises:
            NetworkError: gateway unreachable or failing
        """
        session = require_ready(self.session)

        key = self.cache.find(permit) if isinstance(permit, DecryptionPermit) else None
        if key is not None:
            self.cache.remove(*key)
            self._states[key] = PermitState.REVOKED

        if not check_permit(permit).valid:
            logger.debug("Skipping gateway revocation of an expired or malformed permit")
            return False

        return await session.gateway.revoke_permit(permit.signature, permit.public_key)


# =========================================================================
# Function API
# =========================================================================

async def request_permit(
    session: ClientSession,
    contract: str,
    user: Optional[str] = None,
    handles: Optional[Sequence[EncryptedHandle]] = None,
    ttl_seconds: Optional[int] = None,
) -> DecryptionPermit:
    """Request a permit without keeping an authority around."""
    return await PermitAuthority(session).request_permit(
        contract, user=user, handles=handles, ttl_seconds=ttl_seconds
    )


async def is_permit_valid(session: ClientSession, permit: DecryptionPermit) -> bool:
    return await PermitAuthority(session).is_permit_valid(permit)


async def revoke_permit(session: ClientSession, permit: DecryptionPermit) -> bool:
    return await PermitAuthority(session).revoke_permit(permit)
