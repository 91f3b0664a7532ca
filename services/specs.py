"""Spec table access (media print specification templates).

Reads go through a single-slot TTL cache shared by every caller holding
this repository. Every write invalidates it before returning.
"""
import copy
import logging
from typing import Any, List, Mapping, Optional

from models.records import SpecRecord
from schemas.row_codec import (
    decode_row,
    decode_rows,
    find_row,
    layout_row,
    normalize_cell,
    spec_to_row,
    span_for,
)
from schemas.sheet_tables import SPEC_TABLE
from services.cache import TTLCache
from services.sheets import AppendStrategy, SheetsClient, ensure_schema_columns

logger = logging.getLogger(__name__)


class SpecRepository:
    """List, look up, add and partially update specs."""

    def __init__(
        self,
        client: SheetsClient,
        sheet_name: str = SPEC_TABLE.name,
        cache: Optional[TTLCache] = None,
    ):
        self.client = client
        self.sheet_name = sheet_name
        self.cache = cache if cache is not None else TTLCache(ttl_seconds=60.0)

    async def _fetch_rows(self) -> List[List[str]]:
        return await self.client.fetch_range(self.sheet_name, SPEC_TABLE.col_span)

    async def list(self) -> List[SpecRecord]:
        """All specs with a media_id, served from cache while fresh."""
        cached = self.cache.get()
        if cached is not None:
            return copy.deepcopy(cached)

        rows = await self._fetch_rows()
        specs = [spec for _, spec in decode_rows(rows, SPEC_TABLE)]
        self.cache.set(specs)
        return copy.deepcopy(specs)

    async def get_by_key(self, media_id: str) -> Optional[SpecRecord]:
        needle = normalize_cell(media_id)
        for spec in await self.list():
            if normalize_cell(spec.media_id) == needle:
                return spec
        return None

    async def append(self, spec: SpecRecord) -> bool:
        """Add a spec. Returns False if the media_id already exists."""
        if not normalize_cell(spec.media_id):
            raise ValueError("media_id is required")

        rows = await self._fetch_rows()
        if find_row(rows, SPEC_TABLE, spec.media_id) is not None:
            logger.warning(f"Spec {spec.media_id} already exists; not appended")
            return False

        rows = await ensure_schema_columns(self.client, self.sheet_name, rows, SPEC_TABLE)
        row = layout_row(spec_to_row(spec), rows, SPEC_TABLE)
        await self.client.append_row(
            self.sheet_name, span_for(row), row, strategy=AppendStrategy.APPEND
        )
        self.cache.invalidate()
        logger.info(f"Spec created: {spec.media_id}")
        return True

    async def update_partial(self, media_id: str, patch: Mapping[str, Any]) -> bool:
        """Merge ``patch`` onto the live row and write it back.

        Only keys present (and not None) in the patch change. Reads bypass
        the cache so a stale copy is never written back.
        """
        rows = await self._fetch_rows()
        index = find_row(rows, SPEC_TABLE, media_id)
        if index is None:
            return False

        changes = {k: v for k, v in patch.items() if v is not None}
        current = decode_row(rows[index], rows, SPEC_TABLE)
        merged_values = current.to_dict()
        merged_values.update(changes)
        merged = SpecRecord.from_dict(merged_values)

        # The stored JSON cell is written back verbatim unless patched; a
        # decode/encode round trip would drop text it cannot parse.
        keep = () if "additional_inner_pages" in changes else ("additional_inner_pages",)
        rows = await ensure_schema_columns(self.client, self.sheet_name, rows, SPEC_TABLE)
        row = layout_row(
            spec_to_row(merged), rows, SPEC_TABLE, existing=rows[index], keep=keep
        )
        await self.client.write_row(self.sheet_name, index + 1, span_for(row), row)
        self.cache.invalidate()
        logger.info(f"Spec updated: {media_id} (row {index + 1})")
        return True
