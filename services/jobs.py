"""Job table access (production orders).

Jobs are appended once and then patched in place; they are never deleted
here. Rows are always located by scanning for job_id, never by a
remembered row number, because vendor deletes and manual edits shift rows.

A just-written row may not be visible to the next read straight away, so
get_by_key retries a bounded number of times before reporting a miss.
"""
import asyncio
import json
import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from core.identifiers import KST_OFFSET, generate_job_id, kst_iso
from core.logging_config import LogContext
from models.records import JobRecord, JobStatus, OrderType, SpecRecord
from schemas.row_codec import (
    decode_row,
    decode_rows,
    find_row,
    job_to_row,
    layout_row,
    patch_row,
    span_for,
)
from schemas.sheet_tables import JOB_CONTENT_FIELDS, JOB_STATUS_FIELDS, JOB_TABLE
from services.pricing import DEFAULT_PRICES, PriceBook, compute_job_cost
from services.retry import RetryPolicy, retry_until_found
from services.sheets import AppendStrategy, SheetsClient, ensure_schema_columns
from services.specs import SpecRepository
from services.vendor_pricing import VendorPricingRepository
from services.vendors import VendorRepository

logger = logging.getLogger(__name__)

SHEET_MEDIA_ID = "sheet"
SHEET_MEDIA_NAME = "낱장 인쇄물"

# Content fields whose change invalidates the cached production_cost
_COST_INPUTS = ("qty", "order_type", "spec_snapshot", "type_spec_snapshot", "vendor_id")

_MONTH_PREFIX = re.compile(r"^\d{4}-\d{2}$")


@dataclass
class JobFilters:
    """In-memory filters applied by JobRepository.list()."""
    month: Optional[str] = None      # "YYYY-MM" of created_at
    status: Optional[str] = None
    vendor: Optional[str] = None     # vendor name or vendor_id
    media_id: Optional[str] = None
    q: Optional[str] = None          # substring of job_id / requester / media name


def _matches_month(created_at: str, month: str) -> bool:
    year, _, mon = month.partition("-")
    raw = (created_at or "").strip()
    prefix = raw[:7]
    if _MONTH_PREFIX.match(prefix):
        return prefix == f"{year}-{mon}"
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return False
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None) + KST_OFFSET
    try:
        return parsed.year == int(year) and parsed.month == int(mon)
    except ValueError:
        return False


def apply_filters(jobs: List[JobRecord], filters: JobFilters) -> List[JobRecord]:
    """Filter, then sort newest first by raw created_at string."""
    result = jobs
    if filters.month:
        result = [j for j in result if _matches_month(j.created_at, filters.month)]
    if filters.status:
        result = [j for j in result if j.status == filters.status]
    if filters.vendor:
        result = [j for j in result if filters.vendor in (j.vendor, j.vendor_id)]
    if filters.media_id:
        result = [j for j in result if j.media_id == filters.media_id]
    if filters.q:
        q = filters.q.casefold()
        result = [
            j for j in result
            if q in j.job_id.casefold()
            or q in j.requester_name.casefold()
            or q in j.media_name.casefold()
        ]
    # Lexicographic: only correct while every row uses the same timestamp format
    return sorted(result, key=lambda j: j.created_at, reverse=True)


class JobRepository:
    """Create, look up, list and patch production orders."""

    def __init__(
        self,
        client: SheetsClient,
        sheet_name: str = JOB_TABLE.name,
        retry_policy: Optional[RetryPolicy] = None,
        pricing: Optional[VendorPricingRepository] = None,
        vendors: Optional[VendorRepository] = None,
        specs: Optional[SpecRepository] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        timestamp: Callable[[], str] = kst_iso,
        id_factory: Callable[[], str] = generate_job_id,
    ):
        self.client = client
        self.sheet_name = sheet_name
        self.retry_policy = retry_policy or RetryPolicy()
        self.pricing = pricing
        self.vendors = vendors
        self.specs = specs
        self._sleep = sleep
        self._timestamp = timestamp
        self._id_factory = id_factory

    async def _fetch_rows(self) -> List[List[str]]:
        return await self.client.fetch_range(self.sheet_name, JOB_TABLE.col_span)

    async def _price_book(self, vendor_id: str) -> PriceBook:
        if not vendor_id or self.pricing is None:
            return DEFAULT_PRICES
        return await self.pricing.price_book(vendor_id)

    async def _production_cost(self, job: JobRecord) -> str:
        cost = compute_job_cost(job, await self._price_book(job.vendor_id))
        return str(cost.total) if cost is not None else ""

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def list(self, filters: Optional[JobFilters] = None) -> List[JobRecord]:
        rows = await self._fetch_rows()
        jobs = [job for _, job in decode_rows(rows, JOB_TABLE)]
        return apply_filters(jobs, filters or JobFilters())

    async def get_by_key(self, job_id: str) -> Optional[JobRecord]:
        """Find a job, retrying while the table is empty or the id is missing."""
        last_row_count = 0

        async def find_once() -> Optional[JobRecord]:
            nonlocal last_row_count
            rows = await self._fetch_rows()
            last_row_count = len(rows)
            if not rows:
                return None
            index = find_row(rows, JOB_TABLE, job_id)
            if index is None:
                return None
            return decode_row(rows[index], rows, JOB_TABLE)

        job = await retry_until_found(find_once, self.retry_policy, sleep=self._sleep)
        if job is None:
            if last_row_count == 0:
                logger.error(f"{self.sheet_name} sheet is empty or doesn't exist")
            else:
                logger.warning(f"Job not found. job_id={job_id} rows={last_row_count}")
        return job

    async def status_counts(self, month: Optional[str] = None) -> Dict[str, int]:
        """Summary counts for the list page."""
        jobs = await self.list(JobFilters(month=month))
        done = (JobStatus.INSPECTED.value, JobStatus.DONE.value)
        return {
            "total": len(jobs),
            "received": sum(1 for j in jobs if j.status == JobStatus.RECEIVED.value),
            "in_progress": sum(1 for j in jobs if j.status == JobStatus.IN_PROGRESS.value),
            "completed": sum(1 for j in jobs if j.status in done),
        }

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create(self, job: JobRecord) -> str:
        """Stamp id/timestamps, price the snapshot, and append. Returns the job_id."""
        now = self._timestamp()
        job = replace(
            job,
            job_id=self._id_factory(),
            created_at=now,
            last_updated_at=now,
            status=job.status or JobStatus.RECEIVED.value,
            order_type=job.order_type or OrderType.BOOK.value,
        )

        if not job.vendor_id and job.vendor and self.vendors is not None:
            vendor = await self.vendors.find_by_name(job.vendor)
            if vendor is not None:
                job = replace(job, vendor_id=vendor.vendor_id)

        job = replace(job, production_cost=await self._production_cost(job))

        with LogContext(table=self.sheet_name, job_id=job.job_id, vendor_id=job.vendor_id):
            rows = await self._fetch_rows()
            rows = await ensure_schema_columns(self.client, self.sheet_name, rows, JOB_TABLE)
            row = layout_row(job_to_row(job), rows, JOB_TABLE)
            try:
                row_number = await self.client.append_row(
                    self.sheet_name, span_for(row), row, strategy=AppendStrategy.NEXT_ROW
                )
            except Exception:
                logger.exception(f"Failed to append job to {self.sheet_name}")
                raise
            logger.info(f"Job created: {job.job_id} (row {row_number}) cost={job.production_cost or '-'}")
        return job.job_id

    async def create_book_order(
        self,
        requester_name: str,
        media_id: str,
        due_date: str,
        qty: Any,
        vendor: str = "",
        file_link: str = "",
        changes_note: str = "",
    ) -> Optional[str]:
        """Create a book order from a stored spec. None if media_id is unknown."""
        if self.specs is None:
            raise RuntimeError("JobRepository needs a SpecRepository for book orders")
        spec = await self.specs.get_by_key(media_id)
        if spec is None:
            return None
        return await self.create(JobRecord(
            requester_name=requester_name.strip(),
            media_id=spec.media_id,
            media_name=spec.media_name,
            vendor=(vendor or "").strip() or spec.default_vendor,
            due_date=due_date,
            qty=str(qty),
            file_link=(file_link or "").strip(),
            changes_note=(changes_note or "").strip(),
            spec_snapshot=spec.to_snapshot(),
            order_type=OrderType.BOOK.value,
        ))

    async def create_sheet_order(
        self,
        requester_name: str,
        due_date: str,
        qty: Any,
        type_spec: Mapping[str, Any],
        media_name: str = "",
        vendor: str = "",
        file_link: str = "",
        changes_note: str = "",
    ) -> str:
        """Create an ad-hoc sheet order from a free-form type spec."""
        return await self.create(JobRecord(
            requester_name=requester_name.strip(),
            media_id=SHEET_MEDIA_ID,
            media_name=(media_name or "").strip() or SHEET_MEDIA_NAME,
            vendor=(vendor or "").strip(),
            due_date=due_date,
            qty=str(qty),
            file_link=(file_link or "").strip(),
            changes_note=(changes_note or "").strip(),
            type_spec_snapshot=json.dumps(dict(type_spec), ensure_ascii=False),
            order_type=OrderType.SHEET.value,
        ))

    async def _patch(self, job_id: str, updates: Dict[str, str]) -> bool:
        rows = await self._fetch_rows()
        index = find_row(rows, JOB_TABLE, job_id)
        if index is None:
            return False

        updates = dict(updates, last_updated_at=self._timestamp())
        rows = await ensure_schema_columns(self.client, self.sheet_name, rows, JOB_TABLE)
        row = patch_row(rows, index, JOB_TABLE, updates)
        with LogContext(table=self.sheet_name, job_id=job_id):
            await self.client.write_row(self.sheet_name, index + 1, span_for(row), row)
            logger.info(f"Job updated (row {index + 1}) fields={sorted(updates)}")
        return True

    async def update_status_fields(
        self,
        job_id: str,
        status: Optional[str] = None,
        last_updated_by: Optional[str] = None,
        production_cost: Optional[str] = None,
    ) -> bool:
        """Patch status / last_updated_by / production_cost; always restamps last_updated_at."""
        values = {
            "status": status,
            "last_updated_by": last_updated_by,
            "production_cost": production_cost,
        }
        updates = {k: str(v) for k, v in values.items() if v is not None and k in JOB_STATUS_FIELDS}
        return await self._patch(job_id, updates)

    async def update_content(self, job_id: str, patch: Mapping[str, Any]) -> bool:
        """Patch editable content fields of an order.

        When a pricing input changes and the patch carries no explicit
        production_cost, the cost is recomputed from the merged record.
        """
        updates = {
            k: v.to_snapshot() if isinstance(v, SpecRecord) else str(v)
            for k, v in patch.items()
            if k in JOB_CONTENT_FIELDS and v is not None
        }

        if "production_cost" not in updates and any(k in updates for k in _COST_INPUTS):
            current = await self.get_by_key(job_id)
            if current is None:
                return False
            merged = replace(current, **{k: v for k, v in updates.items()})
            updates["production_cost"] = await self._production_cost(merged)

        return await self._patch(job_id, updates)
