"""fusepy binding for :class:`~vromfs.RomFileSystem`.

Importing this module loads libfuse, so the package only imports it on
demand::

    from vromfs import RomFileSystem, load_registry, mount

    fs = RomFileSystem(load_registry("/srv/patches", ["/srv/roms"]))
    mount(fs, "/mnt/roms")
"""

from __future__ import annotations

import logging
from typing import Any

from fuse import FUSE, Operations

from ._attr import ATTR_TTL
from ._exceptions import VRFSNotSupportedError
from ._fs import RomFileSystem

logger = logging.getLogger(__name__)

SUPPORTED_OPERATIONS = frozenset(
    {
        "init",
        "destroy",
        "opendir",
        "readdir",
        "releasedir",
        "access",
        "getattr",
        "open",
        "read",
        "release",
    }
)


class RomFuseOperations(Operations):
    """Forwards FUSE callbacks to a :class:`RomFileSystem`.

    Every callback outside :data:`SUPPORTED_OPERATIONS` fails with ``ENOSYS``.
    Engine errors are ``OSError`` instances carrying an errno, which fusepy
    returns to the kernel as-is.
    """

    def __init__(self, fs: RomFileSystem) -> None:
        self._fs = fs

    def __call__(self, op: str, *args: Any) -> Any:
        if op not in SUPPORTED_OPERATIONS:
            raise VRFSNotSupportedError(op)
        return getattr(self, op)(*args)

    def init(self, path: str) -> None:
        self._fs.init()

    def destroy(self, path: str) -> None:
        logger.info("destroy: %d handle(s) still open", self._fs.stats()["open_files"])

    def opendir(self, path: str) -> int:
        return self._fs.opendir(path)

    def readdir(self, path: str, fh: int) -> list[tuple[str, dict[str, int], int]]:
        return [(e.name, {"st_mode": e.mode}, 0) for e in self._fs.readdir(fh)]

    def releasedir(self, path: str, fh: int) -> int:
        self._fs.releasedir(fh)
        return 0

    def access(self, path: str, amode: int) -> int:
        self._fs.access(path, amode)
        return 0

    def getattr(self, path: str, fh: int | None = None) -> dict[str, Any]:
        attr, _ttl = self._fs.getattr(path, fh)
        return dict(attr)

    def open(self, path: str, flags: int) -> int:
        return self._fs.open(path)

    def read(self, path: str, size: int, offset: int, fh: int) -> bytes:
        return self._fs.read(fh, offset, size)

    def release(self, path: str, fh: int) -> int:
        self._fs.release(fh)
        return 0


def mount(
    fs: RomFileSystem,
    mountpoint: str,
    foreground: bool = True,
    allow_other: bool = False,
    debug: bool = False,
) -> None:
    """Mount *fs* read-only at *mountpoint*; blocks until unmounted when in the foreground."""
    logger.info("Mounting %d virtual ROM(s) at %s", len(fs.registry), mountpoint)
    FUSE(
        RomFuseOperations(fs),
        mountpoint,
        foreground=foreground,
        nothreads=False,
        ro=True,
        allow_other=allow_other,
        debug=debug,
        fsname="vromfs",
        attr_timeout=ATTR_TTL,
        entry_timeout=ATTR_TTL,
    )
