"""Vendor table access.

Each vendor row keeps the PIN twice: in plaintext, so administrators can
read it back, and as a base64-wrapped bcrypt hash used for verification.
The plaintext column makes the vendors sheet a credential store; share it
accordingly.
"""
import logging
from dataclasses import replace
from typing import Any, Callable, List, Mapping, Optional

from core.identifiers import kst_iso
from core.logging_config import LogContext
from models.records import VendorRecord
from schemas.row_codec import (
    decode_row,
    decode_rows,
    find_row,
    layout_row,
    normalize_cell,
    span_for,
    vendor_to_row,
)
from schemas.sheet_tables import VENDOR_TABLE
from services.pin_hash import hash_pin, is_valid_pin, verify_pin
from services.sheets import AppendStrategy, SheetsClient, ensure_schema_columns

logger = logging.getLogger(__name__)


def _normalize_active(value: Any) -> str:
    return "FALSE" if str(value).strip().upper() == "FALSE" else "TRUE"


class VendorRepository:
    """List, look up, create, update and delete vendors."""

    UPDATABLE_FIELDS = ("vendor_name", "pin", "is_active")

    def __init__(
        self,
        client: SheetsClient,
        sheet_name: str = VENDOR_TABLE.name,
        timestamp: Callable[[], str] = kst_iso,
    ):
        self.client = client
        self.sheet_name = sheet_name
        self._timestamp = timestamp

    async def _fetch_rows(self) -> List[List[str]]:
        return await self.client.fetch_range(self.sheet_name, VENDOR_TABLE.col_span)

    async def list(self, include_inactive: bool = False) -> List[VendorRecord]:
        """Active vendors (blank is_active counts as active)."""
        vendors = [vendor for _, vendor in decode_rows(await self._fetch_rows(), VENDOR_TABLE)]
        if include_inactive:
            return vendors
        return [vendor for vendor in vendors if vendor.active]

    async def get_by_key(self, vendor_id: str) -> Optional[VendorRecord]:
        rows = await self._fetch_rows()
        index = find_row(rows, VENDOR_TABLE, vendor_id)
        if index is None:
            return None
        return decode_row(rows[index], rows, VENDOR_TABLE)

    async def find_by_name(self, vendor_name: str) -> Optional[VendorRecord]:
        """Active vendor whose name matches exactly (after trimming)."""
        needle = normalize_cell(vendor_name)
        if not needle:
            return None
        for vendor in await self.list():
            if normalize_cell(vendor.vendor_name) == needle:
                return vendor
        return None

    async def create(
        self,
        vendor_id: str,
        vendor_name: str,
        pin: str,
        is_active: str = "TRUE",
    ) -> bool:
        """Add a vendor. Returns False if vendor_id is taken.

        Raises ValueError for a blank id/name or a PIN that is not 6 digits.
        """
        vendor_id = normalize_cell(vendor_id)
        vendor_name = (vendor_name or "").strip()
        if not vendor_id or not vendor_name:
            raise ValueError("vendor_id and vendor_name are required")
        if not is_valid_pin(pin):
            raise ValueError("PIN must be 6 digits")

        rows = await self._fetch_rows()
        if find_row(rows, VENDOR_TABLE, vendor_id) is not None:
            logger.warning(f"Vendor {vendor_id} already exists; not created")
            return False

        now = self._timestamp()
        vendor = VendorRecord(
            vendor_id=vendor_id,
            vendor_name=vendor_name,
            pin=pin.strip(),
            pin_hash_b64=hash_pin(pin),
            is_active=_normalize_active(is_active),
            created_at=now,
            updated_at=now,
        )
        rows = await ensure_schema_columns(self.client, self.sheet_name, rows, VENDOR_TABLE)
        row = layout_row(vendor_to_row(vendor), rows, VENDOR_TABLE)
        await self.client.append_row(
            self.sheet_name, span_for(row), row, strategy=AppendStrategy.APPEND
        )
        logger.info(f"Vendor created: {vendor_id}")
        return True

    async def update(self, vendor_id: str, updates: Mapping[str, Any]) -> bool:
        """Merge vendor_name / pin / is_active onto the live row and restamp updated_at.

        A new PIN is re-hashed. Returns False if the vendor does not exist.
        """
        changes = {
            k: v for k, v in updates.items()
            if k in self.UPDATABLE_FIELDS and v is not None
        }
        if "pin" in changes and not is_valid_pin(changes["pin"]):
            raise ValueError("PIN must be 6 digits")

        rows = await self._fetch_rows()
        index = find_row(rows, VENDOR_TABLE, vendor_id)
        if index is None:
            return False

        vendor = decode_row(rows[index], rows, VENDOR_TABLE)
        if "vendor_name" in changes:
            vendor = replace(vendor, vendor_name=str(changes["vendor_name"]).strip())
        if "is_active" in changes:
            vendor = replace(vendor, is_active=_normalize_active(changes["is_active"]))
        if "pin" in changes:
            pin = str(changes["pin"]).strip()
            vendor = replace(vendor, pin=pin, pin_hash_b64=hash_pin(pin))
        vendor = replace(vendor, updated_at=self._timestamp())

        rows = await ensure_schema_columns(self.client, self.sheet_name, rows, VENDOR_TABLE)
        row = layout_row(vendor_to_row(vendor), rows, VENDOR_TABLE, existing=rows[index])
        with LogContext(table=self.sheet_name, vendor_id=vendor.vendor_id):
            await self.client.write_row(self.sheet_name, index + 1, span_for(row), row)
            logger.info(f"Vendor updated (row {index + 1}) fields={sorted(changes)}")
        return True

    async def delete(self, vendor_id: str) -> bool:
        """Remove the vendor's row. Rows below shift up by one."""
        rows = await self._fetch_rows()
        index = find_row(rows, VENDOR_TABLE, vendor_id)
        if index is None:
            return False
        with LogContext(table=self.sheet_name, vendor_id=vendor_id):
            await self.client.delete_row(self.sheet_name, index + 1)
            logger.info(f"Vendor deleted (row {index + 1})")
        return True

    async def authenticate(self, vendor_id: str, pin: str) -> Optional[VendorRecord]:
        """Active vendor whose stored hash matches ``pin``, else None."""
        vendor = await self.get_by_key(vendor_id)
        if vendor is None or not vendor.active:
            return None
        if not verify_pin(pin, vendor.pin_hash_b64):
            return None
        return vendor
