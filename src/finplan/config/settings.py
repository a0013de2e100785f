"""Configuration settings for the finplan backend."""

import json
from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class FlatSettings(BaseSettings):
    """Flat settings read from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # BaaS (auth, tables, storage)
    supabase_url: str = Field(..., validation_alias="SUPABASE_URL")
    supabase_anon_key: SecretStr = Field(..., validation_alias="SUPABASE_ANON_KEY")
    supabase_service_role_key: SecretStr = Field(
        ..., validation_alias="SUPABASE_SERVICE_ROLE_KEY"
    )
    baas_timeout: float = Field(default=30.0, validation_alias="BAAS_TIMEOUT")
    baas_max_retries: int = Field(default=3, validation_alias="BAAS_MAX_RETRIES")

    # LLM gateway (OpenAI-compatible chat completions)
    gateway_url: str = Field(
        default="https://ai.gateway.lovable.dev/v1", validation_alias="LLM_GATEWAY_URL"
    )
    gateway_api_key: SecretStr = Field(..., validation_alias="LLM_GATEWAY_API_KEY")
    fast_model: str = Field(
        default="google/gemini-2.5-flash", validation_alias="LLM_FAST_MODEL"
    )
    pro_model: str = Field(default="google/gemini-2.5-pro", validation_alias="LLM_PRO_MODEL")
    llm_max_tokens: int = Field(default=16384, validation_alias="LLM_MAX_TOKENS")
    llm_temperature: float = Field(default=0.3, validation_alias="LLM_TEMPERATURE")

    # Transaction categorization
    categorize_batch_size: int = Field(default=25, validation_alias="CATEGORIZE_BATCH_SIZE")
    categorize_parallel_batches: int = Field(
        default=3, validation_alias="CATEGORIZE_PARALLEL_BATCHES"
    )
    categorize_timeout: float = Field(default=30.0, validation_alias="CATEGORIZE_TIMEOUT")
    categorize_group_delay: float = Field(
        default=0.3, validation_alias="CATEGORIZE_GROUP_DELAY"
    )

    # Bank statement parsing
    statement_timeout: float = Field(default=120.0, validation_alias="STATEMENT_TIMEOUT")
    statement_max_retries: int = Field(default=3, validation_alias="STATEMENT_MAX_RETRIES")
    statement_retry_delay: float = Field(
        default=2.0, validation_alias="STATEMENT_RETRY_DELAY"
    )

    # HTTP server
    host: str = Field(default="0.0.0.0", validation_alias="FINPLAN_HOST")
    port: int = Field(default=8000, validation_alias="FINPLAN_PORT")
    # "*" or a comma-separated list; a JSON array also works.
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["*"], validation_alias="CORS_ORIGINS"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                return json.loads(text)
            return [origin.strip() for origin in text.split(",") if origin.strip()]
        return value


@lru_cache
def get_settings() -> FlatSettings:
    """Get cached settings instance."""
    return FlatSettings()
