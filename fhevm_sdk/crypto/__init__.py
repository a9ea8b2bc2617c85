from .base import FheInputBuilder, FheInstance, InstanceConfig, InstanceFactory

__all__ = [
    "FheInputBuilder",
    "FheInstance",
    "InstanceConfig",
    "InstanceFactory",
]
