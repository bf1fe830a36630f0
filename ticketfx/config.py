"""
Application configuration management using Pydantic Settings.
All settings are loaded from environment variables.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Rate Providers
    # =========================================================================
    exchange_api_base: str = Field(default="https://open.er-api.com/v6")
    ars_provider: Literal["criptoya", "dolarapi"] = Field(default="criptoya")
    criptoya_url: str = Field(default="https://criptoya.com/api/dolar")
    dolarapi_url: str = Field(default="https://dolarapi.com/v1/dolares")
    provider_timeout_seconds: float = Field(default=5.0, gt=0)
    http_user_agent: str = Field(default="PEN-USD-ARS-Converter/1.0")

    # =========================================================================
    # Rate Cache
    # =========================================================================
    forex_cache_ttl_seconds: float = Field(default=60.0, gt=0)
    ars_cache_ttl_seconds: float = Field(default=45.0, gt=0)

    # =========================================================================
    # Language Model
    # =========================================================================
    openai_base_url: str = Field(default="https://api.openai.com/v1")
    default_scan_model: str = Field(default="gpt-4o-mini")
    model_initial_timeout_seconds: float = Field(default=25.0, gt=0)
    model_followup_timeout_seconds: float = Field(default=15.0, gt=0)
    model_final_timeout_seconds: float = Field(default=15.0, gt=0)
    max_tool_iterations: int = Field(default=5, ge=1)

    # Detections below this confidence must be confirmed by the user
    confirmation_threshold: float = Field(default=0.75, ge=0.0, le=1.0)

    # =========================================================================
    # Logging Configuration
    # =========================================================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "console"] = Field(default="json")

    # =========================================================================
    # Application Settings
    # =========================================================================
    environment: Literal["development", "staging", "production"] = Field(
        default="development"
    )

    @property
    def ars_fallback_provider(self) -> Literal["criptoya", "dolarapi"]:
        """The ARS provider tried when the configured one fails."""
        return "dolarapi" if self.ars_provider == "criptoya" else "criptoya"


# Global settings instance
settings = Settings()
