# sensidoc/config.py
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: Optional[str]) -> List[str]:
    if not value or not value.strip():
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application
    APP_NAME: str = "SensiDoc API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite:///./sensidoc.db"

    # Tokens are issued elsewhere; this service only verifies them
    SECRET_KEY: str = Field(
        default="change-me-in-prod",
        validation_alias=AliasChoices("JWT_SECRET_KEY", "SECRET_KEY"),
    )
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # CORS (comma-separated; CORS_ORIGINS is accepted for ALLOWED_ORIGINS)
    ALLOWED_ORIGINS: str = Field(default="*", validation_alias=AliasChoices("CORS_ORIGINS", "ALLOWED_ORIGINS"))
    ALLOWED_METHODS: str = "GET,POST,PUT,OPTIONS"
    ALLOWED_HEADERS: str = "*"
    CORS_ALLOW_CREDENTIALS: bool = True
    GZIP_MIN_SIZE: int = 500

    # AI advisory
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-1.5-flash"
    AI_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)

    # Metered usage
    FREE_TIER_MONTHLY_LIMIT: int = Field(default=3, ge=0)
    USAGE_STORE_BACKEND: Literal["sql", "redis", "memory"] = "sql"
    REDIS_URL: Optional[str] = None
    REDIS_USAGE_PREFIX: str = "usage:"

    # Per-client request throttling, independent of the monthly quota
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_BACKEND: Literal["memory", "redis"] = "memory"
    RATE_LIMIT_MAX_REQUESTS: int = Field(default=100, gt=0)
    RATE_LIMIT_WINDOW_SEC: int = Field(default=900, gt=0)
    AI_RATE_LIMIT_MAX_REQUESTS: int = Field(default=10, gt=0)
    AI_RATE_LIMIT_WINDOW_SEC: int = Field(default=60, gt=0)
    REDIS_RATE_LIMIT_PREFIX: str = "rl:"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @field_validator("LOG_LEVEL")
    @classmethod
    def _known_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return v

    @field_validator("USAGE_STORE_BACKEND", "RATE_LIMIT_BACKEND", mode="before")
    @classmethod
    def _lower_backend(cls, v):
        return v.lower() if isinstance(v, str) else v

    @property
    def allowed_origins_list(self) -> List[str]:
        return _split_csv(self.ALLOWED_ORIGINS)

    @property
    def allowed_methods_list(self) -> List[str]:
        return _split_csv(self.ALLOWED_METHODS)

    @property
    def allowed_headers_list(self) -> List[str]:
        return _split_csv(self.ALLOWED_HEADERS)


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings: Settings = get_settings()
