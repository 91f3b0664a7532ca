"""Wiring of the client and the four table repositories from configuration."""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from core.config import AppConfig, get_config
from services.cache import TTLCache
from services.jobs import JobRepository
from services.retry import RetryPolicy
from services.sheets import SheetsClient, create_client_from_config
from services.specs import SpecRepository
from services.vendor_pricing import VendorPricingRepository
from services.vendors import VendorRepository

logger = logging.getLogger(__name__)


@dataclass
class PrintOrderStore:
    """Everything an API layer needs, sharing one client and one spec cache."""
    client: SheetsClient
    specs: SpecRepository
    jobs: JobRepository
    vendors: VendorRepository
    vendor_pricing: VendorPricingRepository

    def close(self) -> None:
        self.client.close()


def create_store(config: Optional[AppConfig] = None, service: Optional[Any] = None) -> PrintOrderStore:
    """Build the store. Raises ConfigurationError before any network call if misconfigured."""
    config = config or get_config()
    config.validate(require_sheets=True)

    client = create_client_from_config(config.sheets, service=service)
    sheets = config.sheets

    specs = SpecRepository(
        client,
        sheet_name=sheets.spec_sheet,
        cache=TTLCache(ttl_seconds=config.cache.spec_ttl_seconds),
    )
    vendors = VendorRepository(client, sheet_name=sheets.vendors_sheet)
    vendor_pricing = VendorPricingRepository(client, sheet_name=sheets.vendor_pricing_sheet)
    jobs = JobRepository(
        client,
        sheet_name=sheets.jobs_sheet,
        retry_policy=RetryPolicy.from_config(config.retry),
        pricing=vendor_pricing,
        vendors=vendors,
        specs=specs,
    )

    logger.info(f"Store ready for spreadsheet {sheets.spreadsheet_id}")
    return PrintOrderStore(
        client=client,
        specs=specs,
        jobs=jobs,
        vendors=vendors,
        vendor_pricing=vendor_pricing,
    )
