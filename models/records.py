"""Record types for the print-order spreadsheet tables."""
import json
import logging
from dataclasses import dataclass, field, asdict, fields
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class JobStatus(Enum):
    """Workflow status of a production order."""
    RECEIVED = "접수"
    IN_PROGRESS = "진행"
    DELIVERED = "납품"
    INSPECTED = "검수완료"
    DONE = "완료"


class OrderType(Enum):
    """Kind of production order."""
    BOOK = "book"
    SHEET = "sheet"


class PriceItemType(Enum):
    """Item categories that a vendor can override prices for."""
    PAGE = "page"
    BINDING = "binding"
    FINISHING = "finishing"


@dataclass
class AdditionalInnerPage:
    """Extra inner section of a book (e.g. a colour insert)."""
    type: str = ""
    pages: str = ""
    paper: str = ""
    print: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdditionalInnerPage":
        return cls(
            type=str(data.get("type") or ""),
            pages=str(data.get("pages") or ""),
            paper=str(data.get("paper") or ""),
            print=str(data.get("print") or ""),
        )


def parse_additional_inner_pages(raw: Any) -> List[AdditionalInnerPage]:
    """Decode the serialized list stored in the additional_inner_pages cell.

    Accepts a JSON string or an already-decoded list. Malformed input yields
    an empty list.
    """
    if not raw:
        return []
    items = raw
    if isinstance(raw, str):
        try:
            items = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed additional_inner_pages value")
            return []
    if not isinstance(items, list):
        return []
    result = []
    for item in items:
        if isinstance(item, AdditionalInnerPage):
            result.append(item)
        elif isinstance(item, dict):
            result.append(AdditionalInnerPage.from_dict(item))
    return result


def dump_additional_inner_pages(pages: List[AdditionalInnerPage]) -> str:
    """Serialize extra inner sections for a sheet cell ("" when empty)."""
    if not pages:
        return ""
    return json.dumps([asdict(p) for p in pages], ensure_ascii=False)


@dataclass
class SpecRecord:
    """Media print specification template (one row of the spec sheet)."""
    media_id: str = ""
    media_name: str = ""
    default_vendor: str = ""
    trim_size: str = ""
    cover_type: str = ""
    cover_paper: str = ""
    cover_print: str = ""
    inner_pages: str = ""
    inner_paper: str = ""
    inner_print: str = ""
    binding: str = ""
    finishing: str = ""
    packaging_delivery: str = ""
    file_rule: str = ""
    additional_inner_pages: List[AdditionalInnerPage] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_snapshot(self) -> str:
        """JSON copy stored on a job at creation/edit time."""
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpecRecord":
        """Build from a plain mapping; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known:
                continue
            if key == "additional_inner_pages":
                values[key] = parse_additional_inner_pages(value)
            else:
                values[key] = "" if value is None else str(value)
        return cls(**values)


@dataclass
class JobRecord:
    """A production order (one row of the jobs sheet)."""
    job_id: str = ""
    created_at: str = ""
    requester_name: str = ""
    media_id: str = ""
    media_name: str = ""
    vendor: str = ""
    due_date: str = ""
    qty: str = ""
    file_link: str = ""
    changes_note: str = ""
    status: str = JobStatus.RECEIVED.value
    spec_snapshot: str = ""
    last_updated_at: str = ""
    last_updated_by: str = ""
    order_type: str = ""
    type_spec_snapshot: str = ""
    production_cost: str = ""
    vendor_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def is_sheet_order(self) -> bool:
        return self.order_type == OrderType.SHEET.value


@dataclass
class VendorRecord:
    """A production vendor.

    ``pin`` is stored in plaintext next to its bcrypt hash so administrators
    can read it back. Treat the vendors sheet as sensitive.
    """
    vendor_id: str = ""
    vendor_name: str = ""
    pin: str = ""
    pin_hash_b64: str = ""
    is_active: str = "TRUE"
    created_at: str = ""
    updated_at: str = ""

    @property
    def active(self) -> bool:
        """Blank counts as active."""
        value = (self.is_active or "").strip()
        return value == "" or value.upper() == "TRUE"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class VendorPriceRecord:
    """Per-vendor unit price override."""
    vendor_id: str = ""
    item_type: str = ""
    item_name: str = ""
    unit_price: str = ""
    unit: str = ""
    notes: str = ""

    @property
    def price(self) -> Optional[int]:
        """Unit price as a whole number of won, or None when not numeric."""
        text = (self.unit_price or "").replace(",", "").replace("원", "").strip()
        if not text:
            return None
        try:
            return int(float(text))
        except ValueError:
            return None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
