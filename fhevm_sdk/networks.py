"""
Network registry for FHEVM deployments.

Maps network identifiers to chain id, RPC endpoint, gateway endpoint and ACL
contract address. Entries are frozen; overrides produce a new config.
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional, Union

from .errors import InvalidConfig
from .validation import check_network_config


@dataclass(frozen=True)
class NetworkConfig:
    """Connection parameters of one FHEVM network."""
    chain_id: int
    rpc_url: str
    gateway_url: str
    acl_address: str

    def with_overrides(
        self,
        gateway_url: Optional[str] = None,
        acl_address: Optional[str] = None,
        rpc_url: Optional[str] = None,
    ) -> "NetworkConfig":
        changes = {
            key: value
            for key, value in (
                ("gateway_url", gateway_url),
                ("acl_address", acl_address),
                ("rpc_url", rpc_url),
            )
            if value
        }
        return replace(self, **changes) if changes else self


# ACL addresses are deployment specific; pass acl_address= for other deployments
NETWORKS: Dict[str, NetworkConfig] = {
    "sepolia": NetworkConfig(
        chain_id=11155111,
        rpc_url="https://rpc.sepolia.org",
        gateway_url="https://gateway.zama.ai",
        acl_address="0x687820221192C5B662b25367F70076A37bc79b6c",
    ),
    "localhost": NetworkConfig(
        chain_id=31337,
        rpc_url="http://localhost:8545",
        gateway_url="http://localhost:8080",
        acl_address="0x339EcE85B9E11a3A3AA557582784a15d7F82AAf2",
    ),
}


def list_networks() -> list[str]:
    return sorted(NETWORKS)


def get_network(name: str) -> NetworkConfig:
    """Look up a registered network by identifier (case-insensitive)."""
    config = NETWORKS.get(name.strip().lower()) if isinstance(name, str) else None
    if config is None:
        raise InvalidConfig(
            f"Unknown network: {name!r}",
            details={"known": list_networks()},
        )
    return config


def resolve_network(
    network: Union[str, NetworkConfig],
    gateway_url: Optional[str] = None,
    acl_address: Optional[str] = None,
    rpc_url: Optional[str] = None,
) -> NetworkConfig:
    """Resolve a name or explicit config, apply overrides and validate."""
    if isinstance(network, NetworkConfig):
        base = network
    elif isinstance(network, str):
        base = get_network(network)
    else:
        raise InvalidConfig(f"Network must be a name or NetworkConfig, got {type(network).__name__}")

    resolved = base.with_overrides(
        gateway_url=gateway_url,
        acl_address=acl_address,
        rpc_url=rpc_url,
    )

    result = check_network_config(resolved)
    if not result.valid:
        raise InvalidConfig(result.error)

    return replace(resolved, gateway_url=resolved.gateway_url.rstrip("/"))
