"""
Production cost calculation for book and sheet orders

All amounts are whole won. The order form computes the same numbers on its
own, so every rule here must stay in step with it:

Sheet orders
    total_sheets   = kinds_count * sheets_per_kind
    print_cost     = total_sheets * page price (300)
    finishing_cost = 0                                  no finishing
                   = 120000 * kinds_count               epoxy / embossing
                   = effective_sheets * 500             coating / laminating
                     (effective_sheets doubles for 양면 printing)

Book orders
    cover_cost      = (2 if 단면 else 4) * cover page price * qty
    inner_cost      = first number in inner_pages * inner page price * qty
    additional_cost = same as inner_cost, per additional inner section
    binding_cost    = 2000 * qty (무선제본) | 1500 * qty (중철제본) | 0
    finishing_cost  = 0 | 120000 flat (epoxy) | (4 if 양면 else 2) * 500 * qty (coating)

VAT is floor(subtotal * 10%). Unit prices come from a PriceBook, which
falls back to the defaults above when a vendor has no override.
"""

import json
import logging
import re
from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from models.records import (
    JobRecord,
    OrderType,
    PriceItemType,
    SpecRecord,
    VendorPriceRecord,
    parse_additional_inner_pages,
)

logger = logging.getLogger(__name__)

# Default unit prices (won)
DEFAULT_PAGE_PRICE = 300
DEFAULT_COATING_PRICE = 500
DEFAULT_EPOXY_PRICE = 120000
DEFAULT_PERFECT_BINDING_PRICE = 2000
DEFAULT_SADDLE_STITCH_PRICE = 1500
CUTTING_COST = 0

VAT_RATE_PERCENT = 10

# Keywords (matched as case-folded substrings)
NONE_KEYWORD = "없음"
SINGLE_SIDED = "단면"
DOUBLE_SIDED = "양면"
EPOXY_KEYWORDS = ("에폭시", "형압")
COATING_KEYWORDS = ("코팅", "라미네이팅", "라미테이팅")
COATING_ITEM = "코팅"
PERFECT_BINDING = "무선제본"
SADDLE_STITCH = "중철제본"

# Page item names in the vendor price sheet
COVER_ITEM = "표지"
INNER_ITEM = "내지"
SHEET_ITEM = "낱장"

_FIRST_NUMBER = re.compile(r"(\d+)")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


# =============================================================================
# PRICE BOOK
# =============================================================================

def _price_key(item_type: str, item_name: str) -> Tuple[str, str]:
    return (str(item_type or "").strip().casefold(), str(item_name or "").strip().casefold())


class PriceBook:
    """Unit prices for one vendor, keyed by (item_type, item_name)."""

    def __init__(self, prices: Optional[Mapping[Tuple[str, str], int]] = None):
        self._prices: Dict[Tuple[str, str], int] = {}
        for (item_type, item_name), price in (prices or {}).items():
            self._prices[_price_key(item_type, item_name)] = int(price)

    @classmethod
    def from_records(cls, records: Iterable[VendorPriceRecord]) -> "PriceBook":
        """Build from price sheet rows; rows without a numeric price are ignored."""
        prices = {}
        for record in records:
            price = record.price
            if price is None:
                continue
            prices[(record.item_type, record.item_name)] = price
        return cls(prices)

    def lookup(self, item_type: Union[PriceItemType, str], item_name: str) -> Optional[int]:
        if isinstance(item_type, PriceItemType):
            item_type = item_type.value
        return self._prices.get(_price_key(item_type, item_name))

    def unit_price(self, item_type: Union[PriceItemType, str], item_name: str, default: int) -> int:
        price = self.lookup(item_type, item_name)
        return default if price is None else price

    def __len__(self) -> int:
        return len(self._prices)


DEFAULT_PRICES = PriceBook()


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class SheetCost:
    """Cost breakdown of a sheet order."""
    total_sheets: int
    print_cost: int
    effective_sheets: int
    finishing_cost: int
    cutting_cost: int
    subtotal: int
    vat: int
    total: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class BookCost:
    """Cost breakdown of a book order."""
    qty: int
    cover_page_count: int
    cover_cost: int
    inner_page_count: int
    inner_cost: int
    additional_cost: int
    binding_cost: int
    finishing_cost: int
    subtotal: int
    vat: int
    total: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


# =============================================================================
# HELPERS
# =============================================================================

def compute_vat(subtotal: int) -> int:
    """10% VAT, truncated downward."""
    return subtotal * VAT_RATE_PERCENT // 100


def extract_page_count(value: Any) -> int:
    """First run of digits in a page-count field ("32p" -> 32), 0 if none."""
    if not value:
        return 0
    match = _FIRST_NUMBER.search(str(value))
    return int(match.group(1)) if match else 0


def _parse_int(value: Any) -> Optional[int]:
    """Leading integer of a value ("3.7" -> 3, "12장" -> 12), None if none."""
    if value is None:
        return None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def _at_least_one(value: Any) -> int:
    parsed = _parse_int(value if value not in (None, "") else "1")
    return max(1, parsed or 1)


def _finishing_text(finishing: Any) -> str:
    if isinstance(finishing, (list, tuple)):
        finishing = ", ".join(str(f) for f in finishing)
    return str(finishing or "").strip().casefold()


def _is_no_finishing(text: str) -> bool:
    return text == "" or text.startswith(NONE_KEYWORD)


def _matched_keyword(text: str, keywords: Iterable[str]) -> Optional[str]:
    for keyword in keywords:
        if keyword in text:
            return keyword
    return None


def _get(spec: Union[SpecRecord, Mapping[str, Any]], name: str) -> Any:
    if isinstance(spec, Mapping):
        return spec.get(name)
    return getattr(spec, name, None)


# =============================================================================
# SHEET ORDERS
# =============================================================================

def compute_sheet_cost(
    kinds_count: Any,
    sheets_per_kind: Any,
    finishing: Any = "",
    print_side: str = DOUBLE_SIDED,
    prices: Optional[PriceBook] = None,
) -> SheetCost:
    """Cost of a sheet order.

    kinds_count and sheets_per_kind are floor-parsed and clamped to at least 1.
    """
    prices = prices or DEFAULT_PRICES
    kinds = _at_least_one(kinds_count)
    per_kind = _at_least_one(sheets_per_kind)
    total_sheets = kinds * per_kind

    page_price = prices.unit_price(PriceItemType.PAGE, SHEET_ITEM, DEFAULT_PAGE_PRICE)
    print_cost = total_sheets * page_price

    double_sided = str(print_side or DOUBLE_SIDED).strip() == DOUBLE_SIDED
    effective_sheets = total_sheets * 2 if double_sided else total_sheets

    text = _finishing_text(finishing)
    finishing_cost = 0
    if not _is_no_finishing(text):
        epoxy = _matched_keyword(text, EPOXY_KEYWORDS)
        if epoxy:
            # once per design, not per sheet
            finishing_cost = prices.unit_price(
                PriceItemType.FINISHING, epoxy, DEFAULT_EPOXY_PRICE
            ) * kinds
        elif _matched_keyword(text, COATING_KEYWORDS):
            finishing_cost = effective_sheets * prices.unit_price(
                PriceItemType.FINISHING, COATING_ITEM, DEFAULT_COATING_PRICE
            )

    subtotal = print_cost + finishing_cost + CUTTING_COST
    vat = compute_vat(subtotal)
    return SheetCost(
        total_sheets=total_sheets,
        print_cost=print_cost,
        effective_sheets=effective_sheets,
        finishing_cost=finishing_cost,
        cutting_cost=CUTTING_COST,
        subtotal=subtotal,
        vat=vat,
        total=subtotal + vat,
    )


# =============================================================================
# BOOK ORDERS
# =============================================================================

def compute_book_cost(
    spec: Union[SpecRecord, Mapping[str, Any], None],
    qty: Any,
    prices: Optional[PriceBook] = None,
) -> Optional[BookCost]:
    """Cost of a book order from a spec snapshot.

    ``spec`` may be a SpecRecord or the decoded snapshot dict (which may
    still carry the legacy pages / print_color keys). Returns None without
    a spec. A missing or unparsable qty counts as 1.
    """
    if spec is None:
        return None
    prices = prices or DEFAULT_PRICES
    qty_num = _parse_int(str(qty).strip() if qty is not None else "") or 1

    cover_print = str(_get(spec, "cover_print") or _get(spec, "print_color") or "")
    cover_page_count = 2 if SINGLE_SIDED in cover_print else 4
    cover_price = prices.unit_price(PriceItemType.PAGE, COVER_ITEM, DEFAULT_PAGE_PRICE)
    cover_cost = cover_page_count * cover_price * qty_num

    page_price = prices.unit_price(PriceItemType.PAGE, INNER_ITEM, DEFAULT_PAGE_PRICE)
    inner_pages = _get(spec, "inner_pages") or _get(spec, "pages") or ""
    inner_page_count = extract_page_count(inner_pages)
    inner_cost = inner_page_count * page_price * qty_num

    additional_cost = 0
    for extra in parse_additional_inner_pages(_get(spec, "additional_inner_pages")):
        additional_cost += extract_page_count(extra.pages) * page_price * qty_num

    binding = str(_get(spec, "binding") or "").casefold()
    binding_cost = 0
    if PERFECT_BINDING in binding:
        binding_cost = prices.unit_price(
            PriceItemType.BINDING, PERFECT_BINDING, DEFAULT_PERFECT_BINDING_PRICE
        ) * qty_num
    elif SADDLE_STITCH in binding:
        binding_cost = prices.unit_price(
            PriceItemType.BINDING, SADDLE_STITCH, DEFAULT_SADDLE_STITCH_PRICE
        ) * qty_num

    text = _finishing_text(_get(spec, "finishing"))
    finishing_cost = 0
    if not _is_no_finishing(text):
        epoxy = _matched_keyword(text, EPOXY_KEYWORDS)
        if epoxy:
            finishing_cost = prices.unit_price(PriceItemType.FINISHING, epoxy, DEFAULT_EPOXY_PRICE)
        elif _matched_keyword(text, COATING_KEYWORDS):
            coating_pages = 4 if DOUBLE_SIDED in text else 2
            finishing_cost = coating_pages * prices.unit_price(
                PriceItemType.FINISHING, COATING_ITEM, DEFAULT_COATING_PRICE
            ) * qty_num

    subtotal = cover_cost + inner_cost + additional_cost + binding_cost + finishing_cost
    vat = compute_vat(subtotal)
    return BookCost(
        qty=qty_num,
        cover_page_count=cover_page_count,
        cover_cost=cover_cost,
        inner_page_count=inner_page_count,
        inner_cost=inner_cost,
        additional_cost=additional_cost,
        binding_cost=binding_cost,
        finishing_cost=finishing_cost,
        subtotal=subtotal,
        vat=vat,
        total=subtotal + vat,
    )


# =============================================================================
# JOBS
# =============================================================================

def _load_snapshot(raw: str) -> Optional[Dict[str, Any]]:
    if not raw or not raw.strip():
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Snapshot is not valid JSON; no cost computed")
        return None
    return data if isinstance(data, dict) else None


def compute_job_cost(
    job: Union[JobRecord, Mapping[str, Any]],
    prices: Optional[PriceBook] = None,
) -> Optional[Union[BookCost, SheetCost]]:
    """Cost of a stored job from its snapshot.

    None when the order type is not book/sheet, the snapshot is missing,
    or the snapshot JSON is malformed.
    """
    order_type = str(_get(job, "order_type") or "").strip()

    if order_type == OrderType.SHEET.value:
        type_spec = _load_snapshot(str(_get(job, "type_spec_snapshot") or ""))
        if type_spec is None:
            return None
        return compute_sheet_cost(
            kinds_count=type_spec.get("kinds_count") or "1",
            sheets_per_kind=type_spec.get("sheets_per_kind") or "1",
            finishing=type_spec.get("finishing") or "",
            print_side=str(type_spec.get("print_side") or DOUBLE_SIDED),
            prices=prices,
        )

    if order_type == OrderType.BOOK.value:
        spec = _load_snapshot(str(_get(job, "spec_snapshot") or ""))
        if spec is None:
            return None
        return compute_book_cost(spec, _get(job, "qty"), prices=prices)

    return None


def split_stored_cost(production_cost: Any) -> Optional[Tuple[int, int, int]]:
    """Recover (subtotal, vat, total) from a stored total.

    subtotal = round(total / 1.1), half up; vat is the remainder.
    """
    total = _parse_int(str(production_cost or "").strip())
    if total is None:
        return None
    subtotal = int((Decimal(total) / Decimal("1.1")).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return subtotal, total - subtotal, total
