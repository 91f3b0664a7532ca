"""Single-slot read cache with a time-to-live."""
import time
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class TTLCache(Generic[T]):
    """Holds one value and the time it was stored.

    The clock is injectable so tests can move time forward.
    """

    def __init__(self, ttl_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._data: Optional[T] = None
        self._at: float = 0.0

    def get(self) -> Optional[T]:
        """Cached value, or None when empty or expired."""
        if self._data is None:
            return None
        if self._clock() - self._at >= self.ttl_seconds:
            return None
        return self._data

    def set(self, data: T) -> None:
        self._data = data
        self._at = self._clock()

    def invalidate(self) -> None:
        self._data = None
        self._at = 0.0
