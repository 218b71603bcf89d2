"""
Cross-cutting concerns: environment configuration and logging setup.
"""

from .config import AppConfig, ApiConfig, LoggingConfig, StoreConfig, load_config
from .logging_config import JSONFormatter, setup_logging
