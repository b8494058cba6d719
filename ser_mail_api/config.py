"""Configuration for the SER mail client."""

from __future__ import annotations

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .region import Region

# Load .env early so BaseSettings can pick values up seamlessly.
load_dotenv()


class Settings(BaseSettings):
    """Client configuration derived from environment variables."""

    client_id: str = Field(..., alias="SER_CLIENT_ID")
    client_secret: str = Field(..., alias="SER_CLIENT_SECRET")
    region: Region = Field(Region.US, alias="SER_REGION")
    scope: str | None = Field(None, alias="SER_SCOPE")
    token_url: str | None = Field(None, alias="SER_TOKEN_URL")
    token_refresh_offset: int = Field(60, ge=0, alias="SER_TOKEN_REFRESH_OFFSET")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("scope", "token_url", mode="before")
    @classmethod
    def _empty_str_to_none(cls, value):
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("region", mode="before")
    @classmethod
    def _parse_region(cls, value):
        if isinstance(value, str):
            return Region.parse(value)
        return value

    @property
    def resolved_token_url(self) -> str:
        if self.token_url:
            return self.token_url.rstrip("/")
        return self.region.token_url
