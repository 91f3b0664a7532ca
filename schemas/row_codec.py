"""
Header-tolerant row codec

Converts between spreadsheet rows (lists of strings, trailing cells possibly
missing) and typed records. Two decoding modes:

- positional: no header row, columns follow SheetTable.columns
- by header:  row 1 names the columns; lookup is by normalized name, so the
              tab's column order does not matter

The mode is picked per read: if row 1 contains the table's key column, the
tab has a header. Encoding always emits the current column order;
layout_row() then maps that row onto a header tab's own column positions.
"""

import base64
import re
from dataclasses import fields
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from models.records import (
    JobRecord,
    SpecRecord,
    VendorPriceRecord,
    VendorRecord,
    dump_additional_inner_pages,
)
from schemas.sheet_tables import (
    JOB_TABLE,
    SPEC_TABLE,
    VENDOR_PRICING_TABLE,
    VENDOR_TABLE,
    SheetTable,
    column_index_to_letter,
)

Row = Sequence[Any]
T = TypeVar("T")

_WHITESPACE = re.compile(r"\s+")


# =============================================================================
# CELL / HEADER NORMALIZATION
# =============================================================================

def normalize_header(name: Any) -> str:
    """Lowercase, trim and collapse inner whitespace to "_"."""
    return _WHITESPACE.sub("_", str(name if name is not None else "").lower().strip())


def column_index(header: Row, name: str) -> int:
    """Index of ``name`` in a header row, -1 if absent."""
    target = normalize_header(name)
    for i, value in enumerate(header):
        if normalize_header(value) == target:
            return i
    return -1


def normalize_cell(value: Any) -> str:
    """Strip BOMs and surrounding whitespace left by spreadsheet exports."""
    return str(value if value is not None else "").replace("\ufeff", "").strip()


def cell(row: Row, index: int) -> str:
    """Cell value at ``index``; missing trailing cells read as ""."""
    if index < 0 or index >= len(row):
        return ""
    value = row[index]
    return "" if value is None else str(value)


def has_header(rows: Sequence[Row], table: SheetTable) -> bool:
    """True when row 1 carries the table's key column name."""
    if not rows:
        return False
    return column_index(rows[0], table.key_column) >= 0


def key_column_index(rows: Sequence[Row], table: SheetTable) -> int:
    """Column holding the primary key (header lookup, else position 0)."""
    if has_header(rows, table):
        return column_index(rows[0], table.key_column)
    return table.position(table.key_column)


def data_start(rows: Sequence[Row], table: SheetTable) -> int:
    """0-based index of the first data row."""
    return 1 if has_header(rows, table) else 0


# =============================================================================
# GENERIC DECODE / ENCODE
# =============================================================================

def decode_positional(row: Row, table: SheetTable) -> Dict[str, str]:
    return {name: cell(row, i) for i, name in enumerate(table.columns)}


def decode_by_header(row: Row, header: Row, table: SheetTable) -> Dict[str, str]:
    """Look every column up by name and apply the table's fallback chains."""
    def get(name: str) -> str:
        return cell(row, column_index(header, name)).strip()

    values = {}
    for name in table.columns:
        value = get(name)
        for alias in table.fallbacks.get(name, ()):
            if value:
                break
            value = get(alias)
        values[name] = value
    return values


def _to_record(cls: Callable[..., T], values: Dict[str, str]) -> T:
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in values.items() if k in known})


def _encode(record: Any, table: SheetTable) -> List[str]:
    row = []
    for name in table.columns:
        value = getattr(record, name, "")
        row.append("" if value is None else str(value))
    return row


# =============================================================================
# SPEC
# =============================================================================

def row_to_spec(row: Row) -> SpecRecord:
    return SpecRecord.from_dict(decode_positional(row, SPEC_TABLE))


def row_to_spec_by_header(row: Row, header: Row) -> SpecRecord:
    return SpecRecord.from_dict(decode_by_header(row, header, SPEC_TABLE))


def spec_to_row(spec: SpecRecord) -> List[str]:
    row = _encode(spec, SPEC_TABLE)
    row[SPEC_TABLE.position("additional_inner_pages")] = dump_additional_inner_pages(
        spec.additional_inner_pages
    )
    return row


# =============================================================================
# JOB
# =============================================================================

def row_to_job(row: Row) -> JobRecord:
    return _to_record(JobRecord, decode_positional(row, JOB_TABLE))


def row_to_job_by_header(row: Row, header: Row) -> JobRecord:
    return _to_record(JobRecord, decode_by_header(row, header, JOB_TABLE))


def job_to_row(job: JobRecord) -> List[str]:
    return _encode(job, JOB_TABLE)


# =============================================================================
# VENDOR
# =============================================================================

def row_to_vendor(row: Row) -> VendorRecord:
    return _to_record(VendorRecord, decode_positional(row, VENDOR_TABLE))


def row_to_vendor_by_header(row: Row, header: Row) -> VendorRecord:
    values = decode_by_header(row, header, VENDOR_TABLE)
    if not values["pin_hash_b64"]:
        # Early tabs stored the raw bcrypt hash in a pin_hash column
        raw_hash = cell(row, column_index(header, "pin_hash")).strip()
        if raw_hash:
            values["pin_hash_b64"] = base64.b64encode(raw_hash.encode("utf-8")).decode("ascii")
    return _to_record(VendorRecord, values)


def vendor_to_row(vendor: VendorRecord) -> List[str]:
    return _encode(vendor, VENDOR_TABLE)


# =============================================================================
# VENDOR PRICING
# =============================================================================

def row_to_vendor_price(row: Row) -> VendorPriceRecord:
    return _to_record(VendorPriceRecord, decode_positional(row, VENDOR_PRICING_TABLE))


def row_to_vendor_price_by_header(row: Row, header: Row) -> VendorPriceRecord:
    return _to_record(VendorPriceRecord, decode_by_header(row, header, VENDOR_PRICING_TABLE))


# =============================================================================
# TABLE-LEVEL DECODING
# =============================================================================

DECODERS: Dict[str, Tuple[Callable[[Row], Any], Callable[[Row, Row], Any]]] = {
    SPEC_TABLE.name: (row_to_spec, row_to_spec_by_header),
    JOB_TABLE.name: (row_to_job, row_to_job_by_header),
    VENDOR_TABLE.name: (row_to_vendor, row_to_vendor_by_header),
    VENDOR_PRICING_TABLE.name: (row_to_vendor_price, row_to_vendor_price_by_header),
}


def decode_row(row: Row, rows: Sequence[Row], table: SheetTable) -> Any:
    """Decode one row of ``rows`` using the mode the tab calls for."""
    positional, by_header = DECODERS[table.name]
    if has_header(rows, table):
        return by_header(row, rows[0])
    return positional(row)


def decode_rows(rows: Sequence[Row], table: SheetTable) -> List[Tuple[int, Any]]:
    """Decode all data rows as (1-based sheet row number, record).

    Rows with a blank key are skipped.
    """
    key_col = key_column_index(rows, table)
    result = []
    for i in range(data_start(rows, table), len(rows)):
        row = rows[i] or []
        if not normalize_cell(cell(row, key_col)):
            continue
        result.append((i + 1, decode_row(row, rows, table)))
    return result


def find_row(rows: Sequence[Row], table: SheetTable, key: str) -> Optional[int]:
    """0-based index of the first data row whose key cell matches ``key``."""
    needle = normalize_cell(key)
    if not needle:
        return None
    key_col = key_column_index(rows, table)
    for i in range(data_start(rows, table), len(rows)):
        if normalize_cell(cell(rows[i] or [], key_col)) == needle:
            return i
    return None


# =============================================================================
# WRITING INTO AN EXISTING TAB
# =============================================================================

def missing_columns(rows: Sequence[Row], table: SheetTable) -> List[str]:
    """Schema columns a header tab does not have yet ([] for positional tabs)."""
    if not has_header(rows, table):
        return []
    return [name for name in table.columns if column_index(rows[0], name) < 0]


def extend_header(rows: Sequence[Row], table: SheetTable) -> List[str]:
    """Header row with the missing schema columns appended after the last named cell."""
    header = [cell(rows[0], i) for i in range(len(rows[0]))]
    while header and not header[-1].strip():
        header.pop()
    return header + missing_columns(rows, table)


def layout_row(
    row: Sequence[str],
    rows: Sequence[Row],
    table: SheetTable,
    existing: Optional[Row] = None,
    keep: Sequence[str] = (),
) -> List[str]:
    """Place a current-order row into the tab's own column layout.

    Positional tabs take the row as is. Header tabs get each value under its
    named column; columns the schema does not know keep their existing
    value. Columns named in ``keep`` are copied verbatim from ``existing``.
    Schema columns missing from the header are not written; callers extend
    the header first (see extend_header).
    """
    if not has_header(rows, table):
        out = list(row)
        for name in keep:
            col = table.position(name)
            if 0 <= col < len(out):
                out[col] = cell(existing or [], col)
        return out

    header = rows[0]
    out = [cell(existing or [], i) for i in range(len(header))]
    for i, name in enumerate(table.columns):
        col = column_index(header, name)
        if col < 0:
            continue
        if name in keep:
            out[col] = cell(existing or [], col)
        else:
            out[col] = row[i] if i < len(row) else ""
    return out


def patch_row(
    rows: Sequence[Row],
    index: int,
    table: SheetTable,
    updates: Dict[str, str],
) -> List[str]:
    """Copy of rows[index] with only the named columns replaced.

    Raises KeyError for a column the tab has no cell for.
    """
    header_mode = has_header(rows, table)
    width = len(rows[0]) if header_mode else table.width
    original = rows[index] or []
    out = [cell(original, i) for i in range(max(width, len(original)))]
    for name, value in updates.items():
        col = column_index(rows[0], name) if header_mode else table.position(name)
        if col < 0:
            raise KeyError(f"{table.name} has no {name} column")
        out[col] = value
    return out


def span_for(row: Sequence[Any]) -> str:
    """Column span that covers ``row`` exactly, e.g. "A:R"."""
    return f"A:{column_index_to_letter(max(len(row), 1) - 1)}"
