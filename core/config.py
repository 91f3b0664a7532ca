"""Centralized configuration management with validation."""
import os
from dataclasses import dataclass, field
from typing import Optional, List


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""
    pass


def _mask_secret(value: str, visible_chars: int = 4) -> str:
    """Mask a secret value for logging, showing only first few chars."""
    if not value:
        return "<empty>"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _unescape_private_key(value: str) -> str:
    """Service account keys pasted into env files carry literal \\n sequences."""
    return value.replace("\\n", "\n") if value else ""


@dataclass
class SheetsConfig:
    """Google Sheets backing store configuration."""
    spreadsheet_id: str = ""
    service_account_email: str = ""
    service_account_private_key: str = ""

    # Logical table -> sheet (tab) name
    spec_sheet: str = "spec_master"
    jobs_sheet: str = "jobs_raw"
    vendors_sheet: str = "vendors"
    vendor_pricing_sheet: str = "vendor_pricing"

    def validate(self) -> List[str]:
        """Validate sheets configuration, return list of errors."""
        errors = []
        if not self.spreadsheet_id:
            errors.append("GOOGLE_SHEET_ID is required")
        if not self.service_account_email:
            errors.append("GOOGLE_SERVICE_ACCOUNT_EMAIL is required")
        if not self.service_account_private_key:
            errors.append("GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY is required")
        return errors

    def __repr__(self) -> str:
        return (f"SheetsConfig(spreadsheet_id={self.spreadsheet_id}, "
                f"email={self.service_account_email}, "
                f"private_key={_mask_secret(self.service_account_private_key)})")


@dataclass
class CacheConfig:
    """Read cache configuration."""
    spec_ttl_seconds: float = 60.0

    def validate(self) -> List[str]:
        errors = []
        if self.spec_ttl_seconds < 0:
            errors.append("SPEC_CACHE_TTL_SECONDS must not be negative")
        return errors


@dataclass
class RetryConfig:
    """Read-after-write retry configuration for job lookups."""
    job_lookup_attempts: int = 2
    job_lookup_delay_seconds: float = 0.8

    def validate(self) -> List[str]:
        errors = []
        if self.job_lookup_attempts < 1:
            errors.append("JOB_LOOKUP_ATTEMPTS must be at least 1")
        if self.job_lookup_delay_seconds < 0:
            errors.append("JOB_LOOKUP_DELAY_MS must not be negative")
        return errors


@dataclass
class AppConfig:
    """Main application configuration."""
    sheets: SheetsConfig = field(default_factory=SheetsConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)

    # Runtime settings
    log_level: str = "INFO"
    log_format: str = "text"  # "json" or "text"

    def validate(self, require_sheets: bool = True) -> None:
        """Validate all configuration, raise ConfigurationError if invalid."""
        errors = []

        if require_sheets:
            errors.extend(self.sheets.validate())

        errors.extend(self.cache.validate())
        errors.extend(self.retry.validate())

        if errors:
            raise ConfigurationError("Configuration errors:\n  - " + "\n  - ".join(errors))

    def __repr__(self) -> str:
        return (f"AppConfig(\n  sheets={self.sheets},\n  cache={self.cache},\n  "
                f"retry={self.retry},\n  log_level={self.log_level}\n)")


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables."""
    from dotenv import load_dotenv
    load_dotenv()

    config = AppConfig(
        sheets=SheetsConfig(
            spreadsheet_id=os.getenv("GOOGLE_SHEET_ID", ""),
            service_account_email=os.getenv("GOOGLE_SERVICE_ACCOUNT_EMAIL", ""),
            service_account_private_key=_unescape_private_key(
                os.getenv("GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY", "")
            ),
            spec_sheet=os.getenv("SPEC_SHEET", "spec_master"),
            jobs_sheet=os.getenv("JOBS_SHEET", "jobs_raw"),
            vendors_sheet=os.getenv("VENDORS_SHEET", "vendors"),
            vendor_pricing_sheet=os.getenv("VENDOR_PRICING_SHEET", "vendor_pricing"),
        ),
        cache=CacheConfig(
            spec_ttl_seconds=float(os.getenv("SPEC_CACHE_TTL_SECONDS", "60")),
        ),
        retry=RetryConfig(
            job_lookup_attempts=int(os.getenv("JOB_LOOKUP_ATTEMPTS", "2")),
            job_lookup_delay_seconds=int(os.getenv("JOB_LOOKUP_DELAY_MS", "800")) / 1000,
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_format=os.getenv("LOG_FORMAT", "text"),
    )

    return config


# Singleton config instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config_from_env()
    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
