"""
Client session: the root object every encrypt/decrypt call is threaded through.

A session bundles the FHE instance, the chain connection, the resolved
network, the gateway client and (optionally) the caller's account. Sessions
are created explicitly with ``create_session``; there is no shared global
session. Create a new one when the account changes.

Usage:
    session = await create_session(
        "sepolia",
        instance_factory=my_fhe_library.create_instance,
        signer=LocalAccountSigner.from_key(private_key),
    )
    encrypted = await encrypt(session, 42)
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from web3 import AsyncHTTPProvider, AsyncWeb3

from .config import settings
from .crypto.base import FheInstance, InstanceConfig, InstanceFactory
from .errors import ClientNotInitialized, EncryptionFailed, InvalidConfig
from .networks import NetworkConfig, resolve_network
from .providers.gateway import GatewayProvider
from .security.rate_limit import RateLimiter
from .signers import TypedDataSigner, signer_address
from .validation import check_address


logger = logging.getLogger(__name__)


@dataclass
class ClientSession:
    """Live connection to one FHEVM network for one account."""
    instance: Optional[FheInstance]
    connection: Any
    network: NetworkConfig
    gateway: GatewayProvider
    address: Optional[str] = None
    signer: Optional[TypedDataSigner] = None
    rate_limiter: Optional[RateLimiter] = None

    @property
    def chain_id(self) -> int:
        return self.network.chain_id

    @property
    def identifier(self) -> str:
        """Key used for rate limiting this session."""
        return (self.address or "anonymous").lower()

    def public_key(self) -> str:
        return require_ready(self).instance.get_public_key()

    async def close(self) -> None:
        await self.gateway.close()

    async def __aenter__(self) -> "ClientSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def is_session_ready(session: Optional[ClientSession]) -> bool:
    return session is not None and session.instance is not None


def require_ready(session: Optional[ClientSession], need_address: bool = False) -> ClientSession:
    """
    Return ``session`` if it can serve requests.

    Raises:
        ClientNotInitialized: no session, no FHE instance, or no account
            address when ``need_address`` is set
    """
    if not is_session_ready(session):
        raise ClientNotInitialized("FHEVM session not initialized")
    if need_address and not session.address:
        raise ClientNotInitialized("FHEVM session has no account address")
    return session


def get_network(session: ClientSession) -> NetworkConfig:
    return session.network


def get_connection(session: ClientSession) -> Any:
    return session.connection


async def _build_instance(factory: InstanceFactory, config: InstanceConfig) -> FheInstance:
    instance = factory(config)
    if inspect.isawaitable(instance):
        instance = await instance
    return instance


async def create_session(
    network: Union[str, NetworkConfig, None],
    instance_factory: InstanceFactory,
    *,
    signer: Optional[TypedDataSigner] = None,
    address: Optional[str] = None,
    gateway_url: Optional[str] = None,
    acl_address: Optional[str] = None,
    rpc_url: Optional[str] = None,
    rate_limiter: Optional[RateLimiter] = None,
    gateway: Optional[GatewayProvider] = None,
    connection: Any = None,
) -> ClientSession:
    """
    Resolve the network, fetch the gateway key and build the FHE instance.

    Args:
        network: registered name, explicit NetworkConfig, or None for the
            configured default
        instance_factory: callable building the FHE instance (may be async)
        signer: account used for permit signatures; also provides the
            address when ``address`` is not given
        address: account address for encryption inputs
        gateway_url, acl_address, rpc_url: per-session overrides
        rate_limiter: applied to every gateway request of this session
        gateway: pre-built gateway client (overrides gateway_url)
        connection: pre-built chain connection (default: AsyncWeb3 over HTTP)

    Raises:
        InvalidConfig: unknown network, malformed config or address
        NetworkError: gateway unreachable
        EncryptionFailed: the FHE instance could not be created
    """
    resolved = resolve_network(
        network if network is not None else settings.default_network,
        gateway_url=gateway_url or (settings.gateway_url if settings.has_gateway_override() else None),
        acl_address=acl_address,
        rpc_url=rpc_url,
    )

    account = address or signer_address(signer)
    if account is not None:
        result = check_address(account, "account address")
        if not result.valid:
            raise InvalidConfig(result.error)

    owns_gateway = gateway is None
    if gateway is None:
        gateway = GatewayProvider(resolved.gateway_url)
    if rate_limiter is not None:
        gateway.rate_limiter = rate_limiter
        gateway.rate_limit_key = (account or "anonymous").lower()

    try:
        public_key = await gateway.get_public_key()
        try:
            instance = await _build_instance(
                instance_factory,
                InstanceConfig(
                    chain_id=resolved.chain_id,
                    public_key=public_key,
                    gateway_url=resolved.gateway_url,
                    acl_address=resolved.acl_address,
                ),
            )
        except Exception as e:
            raise EncryptionFailed(f"Failed to create FHE instance: {e}") from e
    except Exception:
        # a caller-supplied gateway stays open
        if owns_gateway:
            await gateway.close()
        raise

    if connection is None:
        connection = AsyncWeb3(AsyncHTTPProvider(resolved.rpc_url))

    logger.info(
        f"Created FHEVM session on chain {resolved.chain_id} "
        f"(gateway {resolved.gateway_url}, account {account or 'none'})"
    )

    return ClientSession(
        instance=instance,
        connection=connection,
        network=resolved,
        gateway=gateway,
        address=account,
        signer=signer,
        rate_limiter=gateway.rate_limiter,
    )
