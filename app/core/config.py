"""
Application configuration.

Values are read from environment variables (or a local .env file).
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the budget allocation service."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Application
    app_name: str = "SKU Budget Allocation API"
    app_version: str = "1.0.0"
    debug: bool = False
    ENVIRONMENT: str = "development"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./budget_allocation.db"
    AUTO_CREATE_TABLES: bool = True

    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]
    cors_allow_credentials: bool = True

    # CSV import limits
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    MAX_UPLOAD_ROWS: int = 50000

    @property
    def log_format(self) -> str:
        if self.debug:
            return "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
        return "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


settings = Settings()
