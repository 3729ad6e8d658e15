"""
Client configuration using pydantic-settings.
All config is loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Timeleft Events"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Remote API
    API_URL: str = "http://localhost:5000/api"
    REQUEST_TIMEOUT: float = Field(20.0, gt=0)  # seconds

    # Event list fetch retry policy
    EVENTS_FETCH_MAX_ATTEMPTS: int = Field(3, ge=1)
    EVENTS_FETCH_BACKOFF_SECONDS: float = Field(2.0, ge=0)  # doubles after every failed attempt

    # Credential persistence
    TOKEN_STORE: str = "memory"  # memory | file
    TOKEN_FILE: str = ".timeleft_token"

    # Payment gateway (public key only, the secret stays on the server)
    RAZORPAY_KEY_ID: str = ""
    CHECKOUT_MERCHANT_NAME: str = "Timeleft Events"

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
    }


@lru_cache()
def get_settings() -> Settings:
    return Settings()
