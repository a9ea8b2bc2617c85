from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GatewayModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PublicKeyResponse(GatewayModel):
    public_key: str = Field(alias="publicKey", min_length=1, description="Gateway FHE public key (hex)")


class DecryptRequest(GatewayModel):
    handle: str = Field(description="Ciphertext handle as a decimal string")
    signature: str = Field(min_length=1, description="Permit signature")
    public_key: str = Field(alias="publicKey", min_length=1, description="Permit public key")


class DecryptResponse(GatewayModel):
    value: int = Field(ge=0, description="Decrypted plaintext")

    @field_validator("value", mode="before")
    @classmethod
    def _parse_numeric_string(cls, value: Union[int, str]) -> int:
        # Gateways answer with numeric strings to avoid JSON precision loss
        if isinstance(value, bool):
            raise ValueError("value must be numeric")
        if isinstance(value, str):
            text = value.strip()
            return int(text, 16) if text.lower().startswith("0x") else int(text)
        return value


class PermitCheckRequest(GatewayModel):
    signature: str = Field(min_length=1, description="Permit signature")
    public_key: str = Field(alias="publicKey", min_length=1, description="Permit public key")


class PermitValidationResponse(GatewayModel):
    valid: bool = Field(default=False, description="Whether the gateway accepts the permit")


class GatewayHealth(GatewayModel):
    status: str = Field(description="healthy, degraded or unhealthy")
    gateway_url: str = Field(alias="gatewayUrl")
    available: bool = Field(default=False)
    latency_ms: Optional[float] = Field(default=None, alias="latencyMs")
    error: Optional[str] = Field(default=None)
