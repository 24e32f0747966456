"""Application configuration from environment variables."""
from pydantic import Field
from pydantic_settings import BaseSettings

from tubed.services.image_transform import OutputFormat


class Settings(BaseSettings):
    """All config comes from env vars or .env file."""

    DATABASE_URL: str = "sqlite+aiosqlite:///./data/tubed.db"
    STORAGE_ROOT: str = "./public/uploads"
    PUBLIC_URL_PREFIX: str = "/uploads"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3000
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Shared access code and session tokens
    AUTH_CODE: str = ""
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24

    # Listing
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Image proxy
    IMAGE_DEFAULT_FORMAT: OutputFormat = "webp"
    IMAGE_DEFAULT_QUALITY: int = Field(80, ge=1, le=100)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
