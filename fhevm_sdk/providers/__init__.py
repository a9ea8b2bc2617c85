from .base import Provider
from .gateway import GatewayProvider

__all__ = [
    "Provider",
    "GatewayProvider",
]
