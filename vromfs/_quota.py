import threading
from contextlib import contextmanager

from ._exceptions import VRFSCacheLimitError


class CacheQuota:
    """Byte budget shared by every file handle's materialized cache.

    ``max_bytes=None`` disables the limit; usage is still tracked.
    """

    def __init__(self, max_bytes: int | None = None) -> None:
        self._max_bytes: int | None = max_bytes
        self._used: int = 0
        self._lock: threading.Lock = threading.Lock()

    @contextmanager
    def reserve(self, size: int):
        if size <= 0:
            yield
            return
        with self._lock:
            if self._max_bytes is not None:
                available = self._max_bytes - self._used
                if size > available:
                    raise VRFSCacheLimitError(requested=size, available=available)
            self._used += size
        try:
            yield
        except BaseException:
            with self._lock:
                self._used -= size
            raise

    def release(self, size: int) -> None:
        if size <= 0:
            return
        with self._lock:
            self._used = max(0, self._used - size)

    def snapshot(self) -> tuple[int | None, int]:
        """Return (maximum, used) atomically under a single lock."""
        with self._lock:
            return self._max_bytes, self._used

    @property
    def used(self) -> int:
        with self._lock:
            return self._used

    @property
    def maximum(self) -> int | None:
        return self._max_bytes
