"""
ReviewDesk Configuration Module
===============================

Centralized configuration management using environment variables.
Supports both .env files and system environment variables.

Environment Variables:
    REVIEWDESK_STORE: Document store backend, "memory" or "postgres" (default: memory)

    DATABASE_HOST: PostgreSQL host (default: localhost)
    DATABASE_PORT: PostgreSQL port (default: 5432)
    DATABASE_NAME: Database name (default: reviewdesk)
    DATABASE_USER: Database user (default: postgres)
    DATABASE_PASSWORD: Database password (default: empty)
    DATABASE_SSL_MODE: libpq sslmode (default: prefer)
    DATABASE_CONNECT_TIMEOUT: Connect timeout in seconds (default: 10)
    DATABASE_POOL_MIN: Minimum pool connections (default: 2)
    DATABASE_POOL_MAX: Maximum pool connections (default: 10)

    API_HOST: Bind host for uvicorn (default: 0.0.0.0)
    API_PORT: Bind port for uvicorn (default: 8000)
    CORS_ORIGINS: Extra comma-separated CORS origins

    LOG_LEVEL: Root log level (default: INFO)
    LOG_JSON: Emit JSON log lines (default: false)
    LOG_FILE: Optional rotating log file path
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv


# Load environment variables from .env file if present
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

STORE_BACKENDS = ("memory", "postgres")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


def get_env(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """
    Get environment variable with optional default and required validation.

    Raises:
        ValueError: If required=True and variable is not set
    """
    value = os.getenv(key, default)
    if required and value is None:
        raise ValueError(f"Required environment variable '{key}' is not set")
    return value


def get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be an integer, got: {value}")


def get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def get_env_list(key: str) -> List[str]:
    """Get a comma-separated environment variable as a list."""
    value = os.getenv(key, "")
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class StoreConfig:
    """Document store configuration."""

    backend: str = field(default_factory=lambda: get_env("REVIEWDESK_STORE", "memory").lower())

    host: str = field(default_factory=lambda: get_env("DATABASE_HOST", "localhost"))
    port: int = field(default_factory=lambda: get_env_int("DATABASE_PORT", 5432))
    database: str = field(default_factory=lambda: get_env("DATABASE_NAME", "reviewdesk"))
    user: str = field(default_factory=lambda: get_env("DATABASE_USER", "postgres"))
    password: str = field(default_factory=lambda: get_env("DATABASE_PASSWORD", ""))
    ssl_mode: str = field(default_factory=lambda: get_env("DATABASE_SSL_MODE", "prefer"))
    connect_timeout: int = field(default_factory=lambda: get_env_int("DATABASE_CONNECT_TIMEOUT", 10))

    pool_min: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MIN", 2))
    pool_max: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MAX", 10))

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.backend not in STORE_BACKENDS:
            raise ValueError(f"REVIEWDESK_STORE must be one of {STORE_BACKENDS}, got: {self.backend}")
        if self.pool_min < 1:
            raise ValueError("DATABASE_POOL_MIN must be at least 1")
        if self.pool_max < self.pool_min:
            raise ValueError("DATABASE_POOL_MAX must be >= DATABASE_POOL_MIN")

    @property
    def connection_params(self) -> Dict[str, Any]:
        """psycopg2 connection keyword arguments."""
        return {
            "host": self.host,
            "port": self.port,
            "dbname": self.database,
            "user": self.user,
            "password": self.password,
            "sslmode": self.ssl_mode,
            "connect_timeout": self.connect_timeout,
        }


@dataclass
class ApiConfig:
    """HTTP API configuration."""

    host: str = field(default_factory=lambda: get_env("API_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: get_env_int("API_PORT", 8000))
    cors_origins: List[str] = field(
        default_factory=lambda: DEFAULT_CORS_ORIGINS + get_env_list("CORS_ORIGINS")
    )

    def __post_init__(self):
        if not (0 < self.port < 65536):
            raise ValueError(f"API_PORT must be a valid port, got: {self.port}")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO").upper())
    json_output: bool = field(default_factory=lambda: get_env_bool("LOG_JSON", False))
    log_file: Optional[str] = field(default_factory=lambda: get_env("LOG_FILE"))

    def __post_init__(self):
        if self.level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {LOG_LEVELS}, got: {self.level}")


@dataclass
class AppConfig:
    """Top-level application configuration."""

    store: StoreConfig = field(default_factory=StoreConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config() -> AppConfig:
    """Build the application configuration from the environment."""
    return AppConfig()
