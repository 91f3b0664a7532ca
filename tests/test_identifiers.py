"""Tests for job ids and KST timestamps."""

import re
from datetime import datetime, timedelta, timezone

from core.identifiers import generate_job_id, kst_iso, kst_now

JOB_ID_PATTERN = re.compile(r"^\d{8}-\d{6}-\d{4}$")


class TestKstTime:
    """Manual +09:00 conversion."""

    def test_aware_utc(self):
        """UTC instants shift by nine hours."""
        now = datetime(2026, 2, 16, 5, 16, 15, 677000, tzinfo=timezone.utc)
        assert kst_iso(now) == "2026-02-16T14:16:15.677+09:00"

    def test_other_zone(self):
        """Aware times in any zone are normalized through UTC."""
        pst = timezone(timedelta(hours=-8))
        now = datetime(2026, 2, 15, 21, 16, 15, tzinfo=pst)
        assert kst_iso(now) == "2026-02-16T14:16:15.000+09:00"

    def test_naive_is_utc(self):
        """Naive datetimes are treated as UTC."""
        assert kst_now(datetime(2026, 12, 31, 20, 0, 0)) == datetime(2027, 1, 1, 5, 0, 0)

    def test_default_format(self):
        """Current time carries the explicit offset."""
        assert re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}\+09:00$", kst_iso())


class TestJobId:
    """Job id generation."""

    def test_format(self):
        """YYYYMMDD-HHMMSS-RRRR from KST time."""
        now = datetime(2026, 2, 16, 5, 16, 15, tzinfo=timezone.utc)
        assert generate_job_id(now, rand=lambda a, b: 42) == "20260216-141615-0042"

    def test_random_suffix_range(self):
        """Suffix is drawn from 0..9999."""
        seen = []

        def rand(low, high):
            seen.append((low, high))
            return 9999

        assert generate_job_id(rand=rand).endswith("-9999")
        assert seen == [(0, 9999)]

    def test_default_shape(self):
        """Generated ids match the documented shape."""
        assert JOB_ID_PATTERN.match(generate_job_id())
