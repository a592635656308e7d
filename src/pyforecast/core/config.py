"""
Application configuration management using Pydantic Settings.

Loads configuration from environment variables and .env files.
"""

from functools import lru_cache
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Application Settings
    # ==========================================================================
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    app_name: str = Field(default="PyForecast", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    api_v1_prefix: str = Field(default="/api/v1", description="API v1 prefix")

    # CORS
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:3000", "http://localhost:5173", "http://localhost:8000"],
        description="Allowed CORS origins",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalise and check the logging level name."""
        level = str(v).upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid LOG_LEVEL '{v}'")
        return level

    # ==========================================================================
    # Formula Engine
    # ==========================================================================
    formula_max_depth: int = Field(
        default=256,
        ge=1,
        description="Maximum dependency depth followed when calculating an entity",
    )
    formula_legacy_id_keys: bool = Field(
        default=False,
        description=(
            "Key the dependency graph by bare numeric entity id instead of "
            "'<type>_<id>'. Only for data that relies on the old id collision behaviour."
        ),
    )
    formula_ast_cache_size: int = Field(
        default=1024,
        ge=0,
        description="Number of parsed formulas kept in the parser cache",
    )

    # Authoritative server-side evaluator used by FormulaClient
    formula_server_url: str | None = Field(
        default=None,
        description="Base URL of the server exposing /calculate-formula (e.g. http://localhost:8000/api/v1)",
    )
    formula_server_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Timeout in seconds for server-side formula calculation",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Global settings instance
settings = get_settings()
