"""Application configuration settings."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_default_database_url() -> str:
    """Get the default database URL, using the mounted volume path if available."""
    if os.path.isdir("/data"):
        return "sqlite:////data/fuelstation.db"
    return "sqlite:///./fuelstation.db"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    PROJECT_NAME: str = "Fuel Station Back Office"
    VERSION: str = "0.1.0"
    DEBUG: bool = True
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database - defaults to the mounted volume path if /data exists
    DATABASE_URL: str = _get_default_database_url()

    LOG_LEVEL: str = "INFO"

    # Local timezone of the station; defines where "today" starts for backdating
    STATION_TIMEZONE: str = "UTC"


settings = Settings()
