from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MEMORY_URL = "http://localhost:8000/api/v1/mcp/memory"
TOKEN_ENV = "MCP_MEMORY_TOKEN"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MCP_",
        extra="ignore",
        frozen=True,
    )

    # Backend JSON-RPC endpoint every forwarded call is POSTed to
    memory_url: str = DEFAULT_MEMORY_URL
    # Bearer credential, checked when a call is forwarded, not at startup
    memory_token: str | None = None
    log_level: Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"] = "INFO"

    @field_validator("memory_token")
    @classmethod
    def _blank_token_is_missing(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("memory_url")
    @classmethod
    def _blank_url_uses_default(cls, value: str) -> str:
        return value.strip() or DEFAULT_MEMORY_URL
