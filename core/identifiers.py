"""Job identifiers and KST timestamps.

All timestamps written to the sheet carry an explicit +09:00 offset. The
offset is applied to UTC by hand so the host timezone never leaks in.
"""
import random
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

KST_OFFSET = timedelta(hours=9)


def kst_now(now: Optional[datetime] = None) -> datetime:
    """Current wall-clock time in KST as a naive datetime.

    ``now`` may be given as an aware datetime (any zone) or a naive UTC one.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)
    return now + KST_OFFSET


def kst_iso(now: Optional[datetime] = None) -> str:
    """ISO-8601 string with millisecond precision, e.g. 2026-02-16T14:16:15.677+09:00."""
    local = kst_now(now)
    return local.strftime("%Y-%m-%dT%H:%M:%S.") + f"{local.microsecond // 1000:03d}+09:00"


def generate_job_id(
    now: Optional[datetime] = None,
    rand: Callable[[int, int], int] = random.randint,
) -> str:
    """Build a job id of the form YYYYMMDD-HHMMSS-RRRR.

    No uniqueness check is made against existing rows.
    """
    local = kst_now(now)
    suffix = rand(0, 9999)
    return f"{local.strftime('%Y%m%d-%H%M%S')}-{suffix:04d}"
