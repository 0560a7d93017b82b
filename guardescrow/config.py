from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from guardescrow.amounts import DEFAULT_EXEMPTION_THRESHOLD, DEFAULT_LAMPORTS_PER_BYTE_YEAR


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = Field("development", alias="ENVIRONMENT")
    database_url: str = Field(..., alias="DATABASE_URL")
    program_namespace: str = Field("guardescrow-v1", alias="PROGRAM_NAMESPACE")

    lamports_per_byte_year: int = Field(DEFAULT_LAMPORTS_PER_BYTE_YEAR, alias="LAMPORTS_PER_BYTE_YEAR")
    rent_exemption_threshold: int = Field(DEFAULT_EXEMPTION_THRESHOLD, alias="RENT_EXEMPTION_THRESHOLD")

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


def load_settings() -> Settings:
    return Settings()
