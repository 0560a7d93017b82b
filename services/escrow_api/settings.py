from __future__ import annotations

from pydantic import Field

from guardescrow.config import Settings


class EscrowApiSettings(Settings):
    redis_url: str = Field(..., alias="REDIS_URL")
    api_host: str = Field("0.0.0.0", alias="API_HOST")
    api_port: int = Field(8080, alias="API_PORT")

    signature_max_age_seconds: int = Field(60, alias="SIGNATURE_MAX_AGE_SECONDS")
    nonce_ttl_seconds: int = Field(120, alias="NONCE_TTL_SECONDS")


def load_settings() -> EscrowApiSettings:
    return EscrowApiSettings()
