"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

# Set environment variables BEFORE any imports that might use them
os.environ["LOG_LEVEL"] = "WARNING"

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from services.sheets import AppendStrategy, split_col_span  # noqa: E402


def _letter_to_index(letters: str) -> int:
    index = 0
    for ch in letters:
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index - 1


def _trim(row: List[str]) -> List[str]:
    row = list(row)
    while row and row[-1] == "":
        row.pop()
    return row


class FakeSheetsClient:
    """In-memory stand-in for SheetsClient.

    Mimics the API's habit of dropping trailing empty cells and trailing
    empty rows from read results.
    """

    def __init__(self, tabs: Optional[Dict[str, List[List[str]]]] = None):
        self.tabs: Dict[str, List[List[str]]] = {
            name: [list(row) for row in rows] for name, rows in (tabs or {}).items()
        }
        self.calls: List[tuple] = []
        self.empty_reads = 0  # next N fetches return nothing (write not yet visible)

    async def fetch_range(self, sheet_name: str, col_span: str) -> List[List[str]]:
        self.calls.append(("fetch", sheet_name, col_span))
        if self.empty_reads > 0:
            self.empty_reads -= 1
            return []
        _, end = split_col_span(col_span)
        width = _letter_to_index(end) + 1
        rows = [_trim(row[:width]) for row in self.tabs.get(sheet_name, [])]
        while rows and not rows[-1]:
            rows.pop()
        return rows

    async def write_row(self, sheet_name: str, row_number: int, col_span: str, row: List[str]) -> None:
        self.calls.append(("write", sheet_name, row_number, col_span, list(row)))
        tab = self.tabs.setdefault(sheet_name, [])
        while len(tab) < row_number:
            tab.append([])
        existing = tab[row_number - 1]
        tab[row_number - 1] = list(row) + existing[len(row):]

    async def append_row(
        self,
        sheet_name: str,
        col_span: str,
        row: List[str],
        strategy: AppendStrategy = AppendStrategy.APPEND,
    ) -> int:
        self.calls.append(("append", sheet_name, col_span, list(row), strategy))
        if strategy == AppendStrategy.NEXT_ROW:
            rows = await self.fetch_range(sheet_name, col_span)
            next_row = len(rows) + 1
            await self.write_row(sheet_name, next_row, col_span, row)
            return next_row
        tab = self.tabs.setdefault(sheet_name, [])
        while tab and not any(tab[-1]):
            tab.pop()
        tab.append(list(row))
        return len(tab)

    async def delete_row(self, sheet_name: str, row_number: int) -> None:
        self.calls.append(("delete", sheet_name, row_number))
        del self.tabs[sheet_name][row_number - 1]

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake_client():
    return FakeSheetsClient()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeper():
    return SleepRecorder()


SPEC_HEADER = [
    "media_id", "media_name", "default_vendor", "trim_size", "cover_type",
    "cover_paper", "cover_print", "inner_pages", "inner_paper", "inner_print",
    "binding", "finishing", "packaging_delivery", "file_rule", "additional_inner_pages",
]

JOB_HEADER = [
    "job_id", "created_at", "requester_name", "media_id", "media_name",
    "vendor", "due_date", "qty", "file_link", "changes_note", "status",
    "spec_snapshot", "last_updated_at", "last_updated_by", "order_type",
    "type_spec_snapshot", "production_cost", "vendor_id",
]

VENDOR_HEADER = [
    "vendor_id", "vendor_name", "pin", "pin_hash_b64", "is_active", "created_at", "updated_at",
]

PRICING_HEADER = ["vendor_id", "item_type", "item_name", "unit_price", "unit", "notes"]
