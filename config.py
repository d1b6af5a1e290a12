import os
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Google Maps (route optimization, distance matrix, geocoding)
    GOOGLE_MAPS_API_KEY: str = ""
    MAPS_API_BASE_URL: str = "https://maps.googleapis.com/maps/api"
    MAPS_REQUEST_TIMEOUT_SECONDS: int = 10

    # Number of box change records returned with a single location
    BOX_HISTORY_LIMIT: int = 10

    ALLOWED_ORIGINS: str = "*"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        # Use absolute path to make sure .env is found
        env_file=os.path.join(os.path.dirname(__file__), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def allowed_origins(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


# Create the settings instance
settings = Settings()
