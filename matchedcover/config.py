"""MatchedCover configuration — loaded from environment variables and .env file."""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parent.parent / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Carrier environment (stamped onto every CarrierConfig)
    insurance_environment: Literal["sandbox", "production"] = "sandbox"

    # Carrier credentials
    progressive_api_endpoint: str = "https://api.progressive.com/v1"
    progressive_api_key: str = ""
    geico_api_endpoint: str = "https://partner-api.geico.com/v2"
    geico_api_key: str = ""
    state_farm_api_endpoint: str = "https://api.statefarm.com/partner/v1"
    state_farm_api_key: str = ""
    allstate_api_endpoint: str = "https://partner.allstate.com/api/v1"
    allstate_api_key: str = ""

    # Outbound identity
    partner_id: str = "MATCHEDCOVER_MGA"
    platform_source: str = "MATCHEDCOVER_PLATFORM"

    # Carrier calls
    carrier_max_attempts: int = 2
    carrier_retry_delay_seconds: float = 1.0

    # Quote cache
    quote_cache_ttl_seconds: float = 300.0
    quote_cache_max_entries: int = 1024

    # API
    matchedcover_api_key: str = "matchedcover-dev-key-change-me"
    matchedcover_api_port: int = 8002

    # Logging
    log_level: str = "INFO"


settings = Settings()
