import os

from pathlib import Path
from typing import Any, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FHEVM_",
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Pick up the unprefixed gateway override some deployments export."""

        super().model_post_init(__context)

        if not self.gateway_url:
            fallback = os.getenv("GATEWAY_URL")
            if fallback:
                object.__setattr__(self, "gateway_url", fallback)

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # Network
    default_network: str = Field(default="sepolia", description="Network used when none is given")
    gateway_url: str = Field(default="", description="Gateway URL override for every session")
    gateway_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single gateway request",
    )

    # Permits
    permit_ttl_seconds: int = Field(
        default=86400,
        ge=1,
        description="Lifetime of a freshly granted decryption permit",
    )

    # Storage
    storage_prefix: str = Field(default="fhevm_", description="Namespace for SecureStorage keys")
    permit_store_path: Optional[str] = Field(
        default=None,
        description="JSON file used to persist permits between runs (memory only when unset)",
    )

    # Rate Limiting
    rate_limit_max_requests: int = Field(
        default=60,
        ge=1,
        description="Gateway requests allowed per window",
    )
    rate_limit_window_ms: int = Field(
        default=60_000,
        ge=1,
        description="Sliding window length in milliseconds",
    )

    def has_gateway_override(self) -> bool:
        return bool(self.gateway_url)


# Global settings instance
settings = Settings()
