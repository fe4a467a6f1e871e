from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Base
    APP_ENV: str = "development"  # development | staging | production
    APP_NAME: str = "FileVault API"
    APP_VERSION: str = "0.1.0"

    # CORS
    CORS_ORIGINS: str = "*"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Object storage (S3 ou compatible : MinIO, R2...)
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    S3_ENDPOINT_URL: Optional[str] = None
    S3_CONNECT_TIMEOUT_SECONDS: int = 5
    S3_READ_TIMEOUT_SECONDS: int = 60

    # Délais des opérations
    UPLOAD_TIMEOUT_SECONDS: int = 60
    DELETE_TIMEOUT_SECONDS: int = 5
    PRESIGN_TTL_SECONDS: int = 15 * 60

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
