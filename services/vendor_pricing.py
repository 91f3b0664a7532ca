"""Per-vendor unit price overrides."""
import logging
from typing import List, Optional, Union

from models.records import PriceItemType, VendorPriceRecord
from schemas.row_codec import decode_rows, normalize_cell
from schemas.sheet_tables import VENDOR_PRICING_TABLE
from services.pricing import PriceBook
from services.sheets import SheetsClient

logger = logging.getLogger(__name__)


class VendorPricingRepository:
    """Read access to the vendor price sheet."""

    def __init__(self, client: SheetsClient, sheet_name: str = VENDOR_PRICING_TABLE.name):
        self.client = client
        self.sheet_name = sheet_name

    async def list(self, vendor_id: str) -> List[VendorPriceRecord]:
        """All price rows for one vendor."""
        needle = normalize_cell(vendor_id)
        if not needle:
            return []
        rows = await self.client.fetch_range(self.sheet_name, VENDOR_PRICING_TABLE.col_span)
        return [
            record for _, record in decode_rows(rows, VENDOR_PRICING_TABLE)
            if normalize_cell(record.vendor_id) == needle
        ]

    async def lookup(
        self,
        vendor_id: str,
        item_type: Union[PriceItemType, str],
        item_name: str,
    ) -> Optional[int]:
        """Unit price override, or None to use the engine default."""
        return (await self.price_book(vendor_id)).lookup(item_type, item_name)

    async def price_book(self, vendor_id: Optional[str]) -> PriceBook:
        """Every override for a vendor, resolved with a single read."""
        if not vendor_id:
            return PriceBook()
        book = PriceBook.from_records(await self.list(vendor_id))
        logger.debug(f"Loaded {len(book)} price overrides for vendor {vendor_id}")
        return book
