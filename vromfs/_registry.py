"""Discovery of virtual ROMs and materialization of their bytes.

A registry maps a virtual file name to the :class:`PatchHeader` describing how
to build it.  It is built once by :func:`load_registry` before a mount starts
and is never changed afterwards.
"""

from __future__ import annotations

import logging
import os
import zlib
from collections.abc import Iterable
from typing import NamedTuple

from ._bps import read_header, apply_patch
from ._exceptions import PatchChecksumError, PatchError

logger = logging.getLogger(__name__)

PATCH_SUFFIX = ".bps"
_CRC_CHUNK = 1024 * 1024


class PatchHeader(NamedTuple):
    patch_path: str
    base_path: str
    source_size: int
    target_size: int
    metadata: str
    source_crc32: int
    target_crc32: int
    create_time: float
    modify_time: float
    access_time: float


def _file_crc32(path: str) -> int:
    crc = 0
    with open(path, "rb") as f:
        while chunk := f.read(_CRC_CHUNK):
            crc = zlib.crc32(chunk, crc)
    return crc


def index_roms(rom_dirs: Iterable[str]) -> dict[tuple[int, int], str]:
    """Return ``{(size, crc32): path}`` for every base ROM candidate.

    Only regular files directly inside each directory are considered; patch
    files are skipped.  When two files share size and CRC the first one found
    wins.
    """
    index: dict[tuple[int, int], str] = {}
    for rom_dir in rom_dirs:
        with os.scandir(rom_dir) as it:
            entries = sorted(it, key=lambda e: e.name)
        for entry in entries:
            if not entry.is_file() or entry.name.lower().endswith(PATCH_SUFFIX):
                continue
            try:
                key = (entry.stat().st_size, _file_crc32(entry.path))
            except OSError as exc:
                logger.warning("Skipping unreadable ROM %s: %s", entry.path, exc)
                continue
            index.setdefault(key, entry.path)
    return index


def load_registry(
    patch_dir: str, rom_dirs: Iterable[str] | None = None
) -> dict[str, PatchHeader]:
    """Scan *patch_dir* for BPS patches and pair each one with its base ROM.

    The virtual name of an entry is the patch's stem followed by the base
    ROM's extension, so ``Hack.bps`` applied to ``Game.sfc`` is served as
    ``Hack.sfc``.
    """
    rom_index = index_roms([patch_dir] if rom_dirs is None else rom_dirs)
    registry: dict[str, PatchHeader] = {}
    with os.scandir(patch_dir) as it:
        patches = sorted(
            (e for e in it if e.is_file() and e.name.lower().endswith(PATCH_SUFFIX)),
            key=lambda e: e.name,
        )
    for entry in patches:
        try:
            with open(entry.path, "rb") as f:
                bps = read_header(f.read())
            st = entry.stat()
        except (PatchError, OSError) as exc:
            logger.warning("Skipping patch %s: %s", entry.path, exc)
            continue
        base_path = rom_index.get((bps.source_size, bps.source_crc32))
        if base_path is None:
            logger.warning(
                "Skipping patch %s: no base ROM with size %d and CRC32 %08x",
                entry.path, bps.source_size, bps.source_crc32,
            )
            continue
        stem = entry.name[: -len(PATCH_SUFFIX)]
        name = stem + os.path.splitext(base_path)[1]
        if name in registry:
            logger.warning("Skipping patch %s: duplicate virtual name %r", entry.path, name)
            continue
        registry[name] = PatchHeader(
            patch_path=entry.path,
            base_path=base_path,
            source_size=bps.source_size,
            target_size=bps.target_size,
            metadata=bps.metadata,
            source_crc32=bps.source_crc32,
            target_crc32=bps.target_crc32,
            create_time=getattr(st, "st_birthtime", st.st_ctime),
            modify_time=st.st_mtime,
            access_time=st.st_atime,
        )
    logger.info("Loaded %d virtual ROM(s) from %s", len(registry), patch_dir)
    return registry


def materialize(header: PatchHeader) -> bytes:
    """Build the patched ROM described by *header* from the files on disk."""
    with open(header.base_path, "rb") as f:
        source = f.read()
    with open(header.patch_path, "rb") as f:
        patch = f.read()
    target = apply_patch(source, patch)
    if len(target) != header.target_size:
        raise PatchChecksumError(
            f"Patched size {len(target)} differs from registered size {header.target_size}."
        )
    return target
