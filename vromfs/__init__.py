from typing import TYPE_CHECKING

from ._attr import ATTR_TTL
from ._bps import BPSHeader, apply_patch, read_header
from ._exceptions import (
    PatchChecksumError,
    PatchError,
    PatchFormatError,
    VRFSCacheLimitError,
    VRFSHandleLimitError,
    VRFSIOError,
    VRFSNotFoundError,
    VRFSNotSupportedError,
)
from ._fs import RomFileSystem
from ._registry import PatchHeader, load_registry, materialize
from ._typing import VRFSDirEntry, VRFSStatResult, VRFSStats

if TYPE_CHECKING:
    from ._fuse import RomFuseOperations, mount


def __getattr__(name: str):  # type: ignore[no-untyped-def]
    if name in ("RomFuseOperations", "mount"):
        from ._fuse import RomFuseOperations, mount

        globals()["RomFuseOperations"] = RomFuseOperations
        globals()["mount"] = mount
        return globals()[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "ATTR_TTL",
    "BPSHeader",
    "PatchChecksumError",
    "PatchError",
    "PatchFormatError",
    "PatchHeader",
    "RomFileSystem",
    "RomFuseOperations",
    "VRFSCacheLimitError",
    "VRFSDirEntry",
    "VRFSHandleLimitError",
    "VRFSIOError",
    "VRFSNotFoundError",
    "VRFSNotSupportedError",
    "VRFSStatResult",
    "VRFSStats",
    "apply_patch",
    "load_registry",
    "materialize",
    "mount",
    "read_header",
]
__version__ = "0.1.0"
