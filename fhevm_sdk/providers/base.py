from abc import ABC, abstractmethod
from typing import Any, Dict


class Provider(ABC):
    """Remote service the SDK depends on (gateway, relayer, ...)"""

    name: str
    base_url: str
    timeout_s: float = 30.0

    @abstractmethod
    async def ready(self) -> bool:
        """Whether the service answers at all"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Status, availability and latency as a JSON-ready dict"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release connections held by the provider"""
        pass

    def describe(self) -> Dict[str, Any]:
        return {"name": self.name, "url": self.base_url, "timeout_s": self.timeout_s}
