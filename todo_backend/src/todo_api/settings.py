from __future__ import annotations

from typing import Annotated, Any, List, Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .errors import ConfigurationError

BACKENDS = {"memory", "sqlite"}
LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables and an optional
    `.env` file in the working directory. Process environment wins over `.env`.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file (required when backend is 'sqlite')
    - HOST: listen address. Default '0.0.0.0'
    - PORT: listen port. Default 3000
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: logging level name. Default 'INFO'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    persistence_backend: str = "memory"
    sqlite_db_path: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    cors_allow_origins: Annotated[List[str], NoDecode] = ["*"]
    log_level: str = "INFO"

    @field_validator("persistence_backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        backend = v.strip().lower()
        if backend not in BACKENDS:
            raise ValueError(f"PERSISTENCE_BACKEND must be one of {sorted(BACKENDS)}, got {v!r}")
        return backend

    @field_validator("sqlite_db_path")
    @classmethod
    def strip_path(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("host")
    @classmethod
    def strip_host(cls, v: str) -> str:
        host = v.strip()
        if not host:
            raise ValueError("HOST may not be blank")
        return host

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def parse_origins(cls, v: Any) -> Any:
        """
        Parse CORS origins from env. Supports:
        - '*' to allow all origins
        - Comma-separated list of origins
        """
        if not isinstance(v, str):
            return v
        value = v.strip()
        if value == "*":
            return ["*"]
        return [o.strip() for o in value.split(",") if o.strip()]

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown LOG_LEVEL {v!r}")
        return level

    @model_validator(mode="after")
    def require_sqlite_path(self) -> "Settings":
        if self.persistence_backend == "sqlite" and self.sqlite_db_path is None:
            raise ValueError("SQLITE_DB_PATH is required when PERSISTENCE_BACKEND=sqlite")
        return self


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """
    Return application settings loaded from the environment and `.env`.

    Raises:
        ConfigurationError: on an unknown backend, a missing SQLITE_DB_PATH for
        the sqlite backend, an invalid PORT or an unknown LOG_LEVEL.
    """
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
