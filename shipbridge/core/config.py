# shipbridge/core/config.py

import os
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> Optional[str]:
    env_file = os.environ.get("ENV_FILE", ".env")
    return env_file if os.path.exists(env_file) else None


class Settings(BaseSettings):
    """
    Carrier credentials and transport settings.
    Loads values from environment variables (.env file)
    """

    # UPS (OAuth2 client credentials)
    UPS_CLIENT_ID: str = ""
    UPS_CLIENT_SECRET: str = ""
    UPS_ACCOUNT_NUMBER: str = ""    # Enables negotiated rates, required for labels
    UPS_PICKUP_TYPE: str = "01"     # Daily Pickup
    UPS_ADD_DECLARED_VALUE: bool = False
    UPS_TEST_MODE: bool = True

    # DHL Express MyDHL API (basic auth)
    DHL_API_KEY: str = ""
    DHL_API_SECRET: str = ""
    DHL_ACCOUNT_NUMBER: str = ""
    DHL_TEST_MODE: bool = True

    # Transport
    HTTP_TIMEOUT: float = 30.0

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=_env_file(),
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Cached settings to avoid loading .env file for every carrier"""
    return Settings()

def clear_settings_cache():
    """Clear the settings cache - useful when switching between environments"""
    get_settings.cache_clear()
