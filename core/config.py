"""
Configuration settings for the SOS backend.

Uses Pydantic Settings for environment variable management.
"""

import os
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Environment
    ENV: str = Field(default="development", env="ENV")
    DEBUG: bool = Field(default=False, env="DEBUG")
    LOG_LEVEL: str = Field(default="INFO", env="LOG_LEVEL")

    # Logging Control
    ENABLE_FILE_LOGGING: bool = Field(default=True, env="ENABLE_FILE_LOGGING")
    ENABLE_REQUEST_LOGGING: bool = Field(default=True, env="ENABLE_REQUEST_LOGGING")

    # Application
    APP_NAME: str = Field(default="SOS Backend", env="APP_NAME")
    VERSION: str = Field(default="1.0.0", env="VERSION")

    # Server
    HOST: str = Field(default="0.0.0.0", env="HOST")
    PORT: int = Field(default=8000, env="PORT")

    REDIS_URL: str = Field(default="redis://localhost:6379/0", env="REDIS_URL")
    CELERY_BROKER_URL: Optional[str] = Field(default=None, env="CELERY_BROKER_URL")
    CELERY_RESULT_BACKEND: Optional[str] = Field(default=None, env="CELERY_RESULT_BACKEND")

    # CORS
    CORS_ORIGINS: List[str] = Field(default=["*"], env="CORS_ORIGINS")

    DATABASE_URL: Optional[str] = Field(default=None, env="DATABASE_URL")
    PRODUCTION_DATABASE_URL: Optional[str] = Field(default=None, env="PRODUCTION_DATABASE_URL")

    @property
    def database_url(self) -> str:
        if self.ENV == "development":
            return self.DATABASE_URL or ""
        return self.PRODUCTION_DATABASE_URL or ""

    @property
    def celery_broker_url(self) -> str:
        return self.CELERY_BROKER_URL or self.REDIS_URL

    @property
    def celery_result_backend(self) -> str:
        return self.CELERY_RESULT_BACKEND or self.REDIS_URL

    DATABASE_POOL_SIZE: int = Field(default=10, env="DATABASE_POOL_SIZE")
    DATABASE_MAX_OVERFLOW: int = Field(default=20, env="DATABASE_MAX_OVERFLOW")

    # Internal callers (service-to-service)
    INTERNAL_HEADER_NAME: str = Field(default="x-internal", env="INTERNAL_HEADER_NAME")
    INTERNAL_API_SECRET: Optional[str] = Field(default=None, env="INTERNAL_API_SECRET")

    # SOS policy
    SOS_ACCESS_TTL_HOURS: int = Field(default=24, env="SOS_ACCESS_TTL_HOURS")
    SOS_ACCESS_SCOPE: str = Field(default="live_only", env="SOS_ACCESS_SCOPE")
    SPAIN_RULE_COUNTRY_CODE: str = Field(default="ES", env="SPAIN_RULE_COUNTRY_CODE")
    AUTO_DISPATCH_FAMILY_ALERTS: bool = Field(default=True, env="AUTO_DISPATCH_FAMILY_ALERTS")
    DEFAULT_ACK_MESSAGE: str = Field(default="Received & On It", env="DEFAULT_ACK_MESSAGE")

    # Geofencing
    DEFAULT_PLACE_RADIUS_M: float = Field(default=150.0, env="DEFAULT_PLACE_RADIUS_M")

    # Notification channels
    CHANNEL_TIMEOUT_SECONDS: float = Field(default=5.0, env="CHANNEL_TIMEOUT_SECONDS")
    FIREBASE_CREDENTIALS: Optional[str] = Field(default=None, env="FIREBASE_CREDENTIALS")

    # Emergency call sequence control
    CALL_CONTROL_URL: Optional[str] = Field(default=None, env="CALL_CONTROL_URL")
    CALL_CONTROL_API_KEY: Optional[str] = Field(default=None, env="CALL_CONTROL_API_KEY")

    # Sentry (Optional)
    SENTRY_DSN: Optional[str] = Field(default=None, env="SENTRY_DSN")
    SENTRY_ENVIRONMENT: str = Field(default="development", env="SENTRY_ENVIRONMENT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Create settings instance
settings = Settings()


def get_env_file() -> str:
    """Get the appropriate environment file based on ENV setting."""
    env_file = f".env.{settings.ENV}"
    if os.path.exists(env_file):
        return env_file
    return ".env"


# Update settings with environment-specific file
settings = Settings(_env_file=get_env_file())
