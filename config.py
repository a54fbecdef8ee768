# config.py
import os
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables (or a `.env` file).

    Defaults are meant for local development; production deployments must
    provide real secrets.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Oral Cancer Screening API")
    app_version: str = Field(default="1.0.0")
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 3005
    cors_origins: list[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"]
    )

    # Database
    database_url: str = Field(
        default=f"sqlite:///{os.path.join(BASE_DIR, 'database', 'app_data.db')}"
    )

    # Anthropic
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-opus-20240229"
    anthropic_max_tokens: int = 2000
    anthropic_temperature: float = 0.5

    # Auth
    jwt_secret: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440  # 24 hours
    dev_auth_bypass: bool = False
    dev_token: str = "dev-token"

    # Scans
    persist_analyses: bool = True
    reports_dir: str = Field(default=os.path.join(BASE_DIR, "reports"))

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "console"

    @field_validator("database_url")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        # Heroku-style URLs are not accepted by SQLAlchemy
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @model_validator(mode="after")
    def check_dev_bypass(self) -> "Settings":
        if self.dev_auth_bypass and self.is_production:
            raise ValueError("dev_auth_bypass cannot be enabled in production")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_safe_config_dict(self) -> dict:
        """Return configuration dict with secrets redacted for logging."""
        config = self.model_dump()
        for key in ("anthropic_api_key", "jwt_secret", "dev_token"):
            if config.get(key):
                config[key] = "***REDACTED***"
        return config


@lru_cache
def get_settings() -> Settings:
    return Settings()
