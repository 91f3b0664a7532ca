"""Core modules for configuration, logging and identifiers."""

from core.config import (
    AppConfig,
    CacheConfig,
    ConfigurationError,
    RetryConfig,
    SheetsConfig,
    get_config,
    load_config_from_env,
    reset_config,
)
from core.identifiers import generate_job_id, kst_iso, kst_now
from core.logging_config import (
    LogContext,
    clear_context,
    generate_request_id,
    set_context,
    setup_logging,
)

__all__ = [
    "AppConfig",
    "SheetsConfig",
    "CacheConfig",
    "RetryConfig",
    "ConfigurationError",
    "load_config_from_env",
    "get_config",
    "reset_config",
    "generate_job_id",
    "kst_iso",
    "kst_now",
    "setup_logging",
    "LogContext",
    "generate_request_id",
    "set_context",
    "clear_context",
]
