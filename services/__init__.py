"""Services for the print-order spreadsheet store."""

from services.cache import TTLCache
from services.jobs import JobFilters, JobRepository
from services.pin_hash import hash_pin, is_valid_pin, verify_pin
from services.pricing import (
    BookCost,
    PriceBook,
    SheetCost,
    compute_book_cost,
    compute_job_cost,
    compute_sheet_cost,
    split_stored_cost,
)
from services.retry import RetryPolicy, retry_until_found
from services.sheets import AppendStrategy, SheetsClient, SheetsError, create_client_from_config
from services.specs import SpecRepository
from services.store import PrintOrderStore, create_store
from services.vendor_pricing import VendorPricingRepository
from services.vendors import VendorRepository

__all__ = [
    # Google Sheets
    "SheetsClient",
    "SheetsError",
    "AppendStrategy",
    "create_client_from_config",
    # Cache / retry
    "TTLCache",
    "RetryPolicy",
    "retry_until_found",
    # Repositories
    "PrintOrderStore",
    "create_store",
    "SpecRepository",
    "JobRepository",
    "JobFilters",
    "VendorRepository",
    "VendorPricingRepository",
    # Pricing
    "PriceBook",
    "BookCost",
    "SheetCost",
    "compute_book_cost",
    "compute_sheet_cost",
    "compute_job_cost",
    "split_stored_cost",
    # Vendor PINs
    "hash_pin",
    "verify_pin",
    "is_valid_pin",
]
