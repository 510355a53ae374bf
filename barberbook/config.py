# barberbook/config.py

from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    APP_NAME: str = "barberbook"

    # SQLite database (file-based) unless overridden
    DATABASE_URL: str = "sqlite:///./barber.db"

    # JWT auth
    SECRET_KEY: str = "change-me-later"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Scheduling
    SLOT_MINUTES: int = 30
    DEFAULT_SERVICE_DURATION: int = 60
    # datetimes are stored naive in this zone; aware input is converted into it
    SHOP_TIMEZONE: str = "America/New_York"

    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
    ]


settings = Settings()
