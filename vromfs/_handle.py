from __future__ import annotations

import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

from ._exceptions import (
    PatchError,
    VRFSHandleLimitError,
    VRFSIOError,
    VRFSNotFoundError,
)

if TYPE_CHECKING:
    from ._quota import CacheQuota
    from ._registry import PatchHeader
    from ._typing import VRFSStatResult

MAX_HANDLE: int = 2**64 - 1

Materializer = Callable[["PatchHeader"], bytes]


class DirectoryHandle:
    __slots__ = ("attr",)

    def __init__(self, attr: VRFSStatResult) -> None:
        self.attr: VRFSStatResult = attr


class FileHandle:
    """An open virtual ROM and its lazily materialized contents.

    ``_data`` stays ``None`` until the first successful :meth:`load`; it is
    installed whole or not at all, so a failed materialization leaves the
    handle ready for another attempt.
    """

    __slots__ = ("name", "header", "attr", "_data", "_lock", "_closed")

    def __init__(self, name: str, header: PatchHeader, attr: VRFSStatResult) -> None:
        self.name: str = name
        self.header: PatchHeader = header
        self.attr: VRFSStatResult = attr
        self._data: bytes | None = None
        self._lock: threading.Lock = threading.Lock()
        self._closed: bool = False

    @property
    def cached(self) -> bool:
        return self._data is not None

    def load(self, fh: int, materializer: Materializer, quota: CacheQuota) -> bytes:
        with self._lock:
            if self._closed:
                raise VRFSNotFoundError(f"handle {fh}")
            if self._data is None:
                try:
                    data = materializer(self.header)
                except (PatchError, OSError) as exc:
                    raise VRFSIOError(f"Cannot materialize '{self.name}': {exc}") from exc
                with quota.reserve(len(data)):
                    self._data = data
            return self._data

    def discard(self, quota: CacheQuota) -> None:
        # Waits for an in-flight load; the handle can never be repopulated.
        with self._lock:
            self._closed = True
            if self._data is not None:
                quota.release(len(self._data))
                self._data = None


Handle = DirectoryHandle | FileHandle


class HandleTable:
    """Open handles keyed by a monotonically issued identifier.

    The lock covers table access only; nothing slow runs while it is held.
    """

    def __init__(self, first: int = 1, limit: int = MAX_HANDLE) -> None:
        self._lock: threading.Lock = threading.Lock()
        self._handles: dict[int, Handle] = {}
        self._next: int = first
        self._limit: int = limit

    def insert(self, handle: Handle) -> int:
        with self._lock:
            fh = self._next
            if fh > self._limit:
                raise VRFSHandleLimitError(self._limit)
            self._next += 1
            self._handles[fh] = handle
        return fh

    def get(self, fh: int, kind: type | tuple[type, ...]) -> Handle:
        with self._lock:
            handle = self._handles.get(fh)
        if not isinstance(handle, kind):
            raise VRFSNotFoundError(f"handle {fh}")
        return handle

    def pop(self, fh: int, kind: type | tuple[type, ...]) -> Handle:
        with self._lock:
            handle = self._handles.get(fh)
            if not isinstance(handle, kind):
                raise VRFSNotFoundError(f"handle {fh}")
            del self._handles[fh]
        return handle

    def snapshot(self) -> list[Handle]:
        with self._lock:
            return list(self._handles.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)

    def __contains__(self, fh: object) -> bool:
        with self._lock:
            return fh in self._handles
