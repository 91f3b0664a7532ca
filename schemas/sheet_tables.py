"""
Sheet table schemas - column layout of every logical table

Each logical table lives in its own tab of one spreadsheet. Row 1 is
optionally a header row; the oldest tabs were created without one and are
read positionally.

Column order below is the *current* schema. Writes always emit this order.
Older positional tabs hold a prefix of it (columns were only ever appended),
so positional decoding uses the same list.

Schema history:
- spec_master: A:N, then A:O (additional_inner_pages)
- jobs_raw:    A:N, A:P (order_type, type_spec_snapshot), A:R (production_cost, vendor_id)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class SheetTable:
    """Definition of one logical table."""
    name: str                 # logical name, also the default tab name
    key_column: str           # primary key, used to detect a header row
    columns: Tuple[str, ...]
    # Legacy column aliases: field -> columns consulted, in order, when blank
    fallbacks: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    @property
    def width(self) -> int:
        return len(self.columns)

    @property
    def last_column_letter(self) -> str:
        return column_index_to_letter(self.width - 1)

    @property
    def col_span(self) -> str:
        """Column-letter span covering the whole table, e.g. "A:O"."""
        return f"A:{self.last_column_letter}"

    def position(self, name: str) -> int:
        """Positional index of a column in the current schema, -1 if unknown."""
        try:
            return self.columns.index(name)
        except ValueError:
            return -1


def column_index_to_letter(index: int) -> str:
    """Convert 0-based column index to Excel-style letter (A, B, ..., Z, AA, AB, ...)."""
    result = ""
    while index >= 0:
        result = chr(index % 26 + ord('A')) + result
        index = index // 26 - 1
    return result


# =============================================================================
# TABLE DEFINITIONS
# =============================================================================

SPEC_COLUMNS = (
    "media_id",
    "media_name",
    "default_vendor",
    "trim_size",
    "cover_type",
    "cover_paper",
    "cover_print",
    "inner_pages",
    "inner_paper",
    "inner_print",
    "binding",
    "finishing",
    "packaging_delivery",
    "file_rule",
    "additional_inner_pages",
)

# pages / print_color were split into the cover_* / inner_* columns
SPEC_FALLBACKS = {
    "cover_print": ("print_color",),
    "inner_pages": ("pages",),
    "inner_print": ("print_color",),
}

JOB_COLUMNS = (
    "job_id",
    "created_at",
    "requester_name",
    "media_id",
    "media_name",
    "vendor",
    "due_date",
    "qty",
    "file_link",
    "changes_note",
    "status",
    "spec_snapshot",
    "last_updated_at",
    "last_updated_by",
    "order_type",
    "type_spec_snapshot",
    "production_cost",
    "vendor_id",
)

VENDOR_COLUMNS = (
    "vendor_id",
    "vendor_name",
    "pin",
    "pin_hash_b64",
    "is_active",
    "created_at",
    "updated_at",
)

VENDOR_PRICING_COLUMNS = (
    "vendor_id",
    "item_type",
    "item_name",
    "unit_price",
    "unit",
    "notes",
)

SPEC_TABLE = SheetTable(
    name="spec_master",
    key_column="media_id",
    columns=SPEC_COLUMNS,
    fallbacks=SPEC_FALLBACKS,
)

JOB_TABLE = SheetTable(
    name="jobs_raw",
    key_column="job_id",
    columns=JOB_COLUMNS,
)

VENDOR_TABLE = SheetTable(
    name="vendors",
    key_column="vendor_id",
    columns=VENDOR_COLUMNS,
)

VENDOR_PRICING_TABLE = SheetTable(
    name="vendor_pricing",
    key_column="vendor_id",
    columns=VENDOR_PRICING_COLUMNS,
)

# Job columns that update_status_fields may touch
JOB_STATUS_FIELDS = ("status", "last_updated_by", "production_cost")

# Job columns editable while an order has not been picked up yet
JOB_CONTENT_FIELDS = (
    "requester_name",
    "media_id",
    "media_name",
    "vendor",
    "vendor_id",
    "due_date",
    "qty",
    "file_link",
    "changes_note",
    "spec_snapshot",
    "order_type",
    "type_spec_snapshot",
    "production_cost",
    "last_updated_by",
)


def get_header_row(table: SheetTable) -> List[str]:
    """Header row for a freshly created tab."""
    return list(table.columns)
