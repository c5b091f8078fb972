from __future__ import annotations

import logging
import stat
from collections.abc import Mapping
from types import MappingProxyType

from ._attr import ATTR_TTL, file_attr, root_attr
from ._exceptions import VRFSIOError, VRFSNotFoundError
from ._handle import DirectoryHandle, FileHandle, HandleTable, Materializer
from ._path import normalize_path
from ._quota import CacheQuota
from ._registry import PatchHeader, materialize
from ._typing import VRFSDirEntry, VRFSStatResult, VRFSStats

logger = logging.getLogger(__name__)


class RomFileSystem:
    """Read-only flat filesystem of patched ROM images.

    One instance serves one mount session.  The registry is fixed at
    construction; open directories and files live in a :class:`HandleTable`.
    File contents are produced by *materializer* on the first read of each
    handle and kept until that handle is released.
    """

    def __init__(
        self,
        registry: Mapping[str, PatchHeader],
        materializer: Materializer = materialize,
        max_cache_bytes: int | None = None,
    ) -> None:
        if max_cache_bytes is not None and (
            not isinstance(max_cache_bytes, int) or max_cache_bytes <= 0
        ):
            raise ValueError(
                f"Invalid max_cache_bytes value: {max_cache_bytes!r}. "
                "Expected None or a positive integer."
            )
        for name in registry:
            if not name or "/" in name or name in (".", ".."):
                raise ValueError(f"Invalid virtual file name: {name!r}")
        self._registry: Mapping[str, PatchHeader] = MappingProxyType(dict(registry))
        self._materializer: Materializer = materializer
        self._quota = CacheQuota(max_cache_bytes)
        self._handles = HandleTable()

    @property
    def registry(self) -> Mapping[str, PatchHeader]:
        return self._registry

    # -- path helpers --

    def _np(self, path: str) -> str:
        try:
            return normalize_path(path)
        except ValueError:
            raise VRFSNotFoundError(repr(path)) from None

    # -- protocol operations --

    def init(self) -> None:
        logger.info("init: serving %d virtual ROM(s)", len(self._registry))

    def opendir(self, path: str) -> int:
        logger.debug("opendir: %r", path)
        if self._np(path) != "":
            raise VRFSNotFoundError(repr(path))
        return self._handles.insert(DirectoryHandle(root_attr()))

    def readdir(self, fh: int) -> list[VRFSDirEntry]:
        logger.debug("readdir: handle %d", fh)
        self._handles.get(fh, DirectoryHandle)
        entries = [
            VRFSDirEntry(".", stat.S_IFDIR),
            VRFSDirEntry("..", stat.S_IFDIR),
        ]
        entries.extend(VRFSDirEntry(name, stat.S_IFREG) for name in self._registry)
        return entries

    def releasedir(self, fh: int) -> None:
        logger.debug("releasedir: handle %d", fh)
        self._handles.pop(fh, DirectoryHandle)

    def access(self, path: str, mask: int) -> None:
        logger.debug("access: %r mask=%o", path, mask)

    def getattr(self, path: str, fh: int | None = None) -> tuple[VRFSStatResult, float]:
        """Return ``(attributes, ttl)`` for *path*, or for *fh* when given."""
        logger.debug("getattr: %r handle=%s", path, fh)
        if fh is not None:
            handle = self._handles.get(fh, (DirectoryHandle, FileHandle))
            return handle.attr.copy(), ATTR_TTL
        name = self._np(path)
        if name == "":
            return root_attr(), ATTR_TTL
        header = self._registry.get(name)
        if header is None:
            raise VRFSNotFoundError(repr(path))
        return file_attr(header), ATTR_TTL

    def open(self, path: str) -> int:
        logger.debug("open: %r", path)
        name = self._np(path)
        header = self._registry.get(name)
        if header is None:
            raise VRFSNotFoundError(repr(path))
        return self._handles.insert(FileHandle(name, header, file_attr(header)))

    def read(self, fh: int, offset: int, size: int) -> bytes:
        logger.debug("read: handle %d offset=%d size=%d", fh, offset, size)
        if offset < 0 or size < 0:
            raise ValueError(f"Invalid read range: offset={offset}, size={size}")
        handle = self._handles.get(fh, FileHandle)
        try:
            data = handle.load(fh, self._materializer, self._quota)
        except VRFSIOError as exc:
            logger.warning("read: handle %d (%s) failed: %s", fh, handle.name, exc)
            raise
        return data[offset: offset + size]

    def release(self, fh: int) -> None:
        logger.debug("release: handle %d", fh)
        handle = self._handles.pop(fh, FileHandle)
        handle.discard(self._quota)

    # -- introspection --

    def stats(self) -> VRFSStats:
        open_dirs = 0
        open_files = 0
        cached_files = 0
        for handle in self._handles.snapshot():
            if isinstance(handle, DirectoryHandle):
                open_dirs += 1
            elif isinstance(handle, FileHandle):
                open_files += 1
                if handle.cached:
                    cached_files += 1
        limit, used = self._quota.snapshot()
        return VRFSStats(
            rom_count=len(self._registry),
            open_dirs=open_dirs,
            open_files=open_files,
            cached_files=cached_files,
            cached_bytes=used,
            cache_limit_bytes=limit,
        )
