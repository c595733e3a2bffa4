from pydantic_settings import BaseSettings
from typing import Optional
from functools import lru_cache
import os

class Settings(BaseSettings):
    # Application Settings
    APP_NAME: str = "Field Tracking Service"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Database Settings
    DATABASE_URL: str = "sqlite:///./fieldtrack.db"
    DATABASE_ECHO: bool = False

    # Geographical Settings
    DEFAULT_TIMEZONE: str = "Asia/Kolkata"

    # Destination Settings
    MAX_INITIAL_PRIORITY: int = 6

    # Place Lookup (Nominatim)
    GEOCODER_USER_AGENT: str = "fieldtrack_service"
    GEOCODER_COUNTRY_CODES: Optional[str] = "in"
    GEOCODER_TIMEOUT: int = 5  # seconds
    AUTOCOMPLETE_LIMIT: int = 5

    # CORS Settings
    CORS_ORIGINS: list = ["http://localhost:3000"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    CORS_ALLOW_HEADERS: list = ["*"]

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    LOG_FILE: Optional[str] = "logs/app.log"

    class Config:
        env_file = ".env"
        case_sensitive = True

# Environment-specific settings
class DevelopmentSettings(Settings):
    DEBUG: bool = True
    LOG_LEVEL: str = "DEBUG"

class ProductionSettings(Settings):
    DEBUG: bool = False
    LOG_LEVEL: str = "WARNING"

class TestingSettings(Settings):
    DATABASE_URL: str = "sqlite://"
    LOG_FILE: Optional[str] = None

def get_settings_by_env(env: str = "development") -> Settings:
    if env == "development":
        return DevelopmentSettings()
    elif env == "production":
        return ProductionSettings()
    elif env == "testing":
        return TestingSettings()
    else:
        return Settings()

@lru_cache()
def get_settings() -> Settings:
    """Settings for the environment named by APP_ENV"""
    return get_settings_by_env(os.getenv("APP_ENV", "default"))
