"""BPS patch decoding and application.

A BPS patch is laid out as::

    "BPS1" | varint source_size | varint target_size | varint metadata_size
    | metadata | actions ... | u32 source_crc32 | u32 target_crc32 | u32 patch_crc32

All CRC32 values are little-endian; ``patch_crc32`` covers every byte that
precedes it.  Each action starts with a varint whose low two bits select the
command and whose remaining bits hold ``length - 1``.
"""

from __future__ import annotations

import struct
import zlib
from typing import NamedTuple

from ._exceptions import PatchChecksumError, PatchFormatError

MAGIC = b"BPS1"
FOOTER_SIZE = 12
# Sizes are unsigned 64-bit quantities.
SIZE_LIMIT = 1 << 64

SOURCE_READ = 0
TARGET_READ = 1
SOURCE_COPY = 2
TARGET_COPY = 3


class BPSHeader(NamedTuple):
    source_size: int
    target_size: int
    metadata: str
    source_crc32: int
    target_crc32: int
    patch_crc32: int
    actions_offset: int


class _Cursor:
    __slots__ = ("_buf", "pos", "end")

    def __init__(self, buf: memoryview, pos: int, end: int) -> None:
        self._buf = buf
        self.pos = pos
        self.end = end

    def byte(self) -> int:
        if self.pos >= self.end:
            raise PatchFormatError(f"Unexpected end of patch data at offset {self.pos}.")
        value = self._buf[self.pos]
        self.pos += 1
        return value

    def varint(self) -> int:
        value = 0
        shift = 1
        while True:
            b = self.byte()
            value += (b & 0x7F) * shift
            if b & 0x80:
                return value
            shift <<= 7
            value += shift

    def take(self, size: int) -> memoryview:
        if size > self.end - self.pos:
            raise PatchFormatError(
                f"Patch data truncated: need {size} bytes at offset {self.pos}, "
                f"only {self.end - self.pos} left."
            )
        chunk = self._buf[self.pos: self.pos + size]
        self.pos += size
        return chunk


def _signed(value: int) -> int:
    return -(value >> 1) if value & 1 else value >> 1


def read_header(patch: bytes) -> BPSHeader:
    """Decode and validate the header and footer of a BPS patch."""
    if len(patch) < len(MAGIC) + FOOTER_SIZE:
        raise PatchFormatError(f"Patch too short: {len(patch)} bytes.")
    if patch[: len(MAGIC)] != MAGIC:
        raise PatchFormatError(f"Bad patch magic: {bytes(patch[:4])!r}.")
    view = memoryview(patch)
    source_crc32, target_crc32, patch_crc32 = struct.unpack_from(
        "<III", view, len(patch) - FOOTER_SIZE
    )
    actual = zlib.crc32(view[:-4])
    if actual != patch_crc32:
        raise PatchChecksumError(
            f"Patch CRC32 mismatch: expected {patch_crc32:08x}, got {actual:08x}."
        )
    cur = _Cursor(view, len(MAGIC), len(patch) - FOOTER_SIZE)
    source_size = cur.varint()
    target_size = cur.varint()
    metadata_size = cur.varint()
    sizes = (("source", source_size), ("target", target_size), ("metadata", metadata_size))
    for field, value in sizes:
        if value >= SIZE_LIMIT:
            raise PatchFormatError(
                f"Patch {field} size {value} does not fit in 64 bits."
            )
    if metadata_size > cur.end - cur.pos:
        raise PatchFormatError(
            f"Patch metadata truncated: {metadata_size} bytes declared, "
            f"only {cur.end - cur.pos} left."
        )
    metadata = bytes(cur.take(metadata_size)).decode("utf-8", errors="replace")
    return BPSHeader(
        source_size=source_size,
        target_size=target_size,
        metadata=metadata,
        source_crc32=source_crc32,
        target_crc32=target_crc32,
        patch_crc32=patch_crc32,
        actions_offset=cur.pos,
    )


def apply_patch(source: bytes, patch: bytes) -> bytes:
    """Apply a BPS *patch* to *source* and return the verified target bytes."""
    header = read_header(patch)
    if len(source) != header.source_size:
        raise PatchChecksumError(
            f"Source size mismatch: expected {header.source_size}, got {len(source)}."
        )
    actual = zlib.crc32(source)
    if actual != header.source_crc32:
        raise PatchChecksumError(
            f"Source CRC32 mismatch: expected {header.source_crc32:08x}, got {actual:08x}."
        )

    target_size = header.target_size
    try:
        target = bytearray(target_size)
    except (OverflowError, MemoryError) as exc:
        raise PatchFormatError(f"Cannot allocate a target of {target_size} bytes.") from exc
    cur = _Cursor(memoryview(patch), header.actions_offset, len(patch) - FOOTER_SIZE)
    out = 0
    source_rel = 0
    target_rel = 0
    while cur.pos < cur.end:
        word = cur.varint()
        command = word & 3
        length = (word >> 2) + 1
        if out + length > target_size:
            raise PatchFormatError(
                f"Action at output offset {out} writes {length} bytes past "
                f"target size {target_size}."
            )

        if command == SOURCE_READ:
            if out + length > len(source):
                raise PatchFormatError(f"SourceRead past end of source at {out}.")
            target[out: out + length] = source[out: out + length]

        elif command == TARGET_READ:
            target[out: out + length] = cur.take(length)

        elif command == SOURCE_COPY:
            source_rel += _signed(cur.varint())
            if source_rel < 0 or source_rel + length > len(source):
                raise PatchFormatError(f"SourceCopy out of bounds at source offset {source_rel}.")
            target[out: out + length] = source[source_rel: source_rel + length]
            source_rel += length

        else:
            target_rel += _signed(cur.varint())
            if target_rel < 0 or target_rel >= out:
                raise PatchFormatError(f"TargetCopy out of bounds at target offset {target_rel}.")
            # The copy may overlap its own output; repeat the available run.
            dst = out
            remaining = length
            while remaining:
                n = min(remaining, dst - target_rel)
                target[dst: dst + n] = target[target_rel: target_rel + n]
                dst += n
                target_rel += n
                remaining -= n

        out += length

    if out != target_size:
        raise PatchChecksumError(f"Target size mismatch: expected {target_size}, wrote {out}.")
    actual = zlib.crc32(target)
    if actual != header.target_crc32:
        raise PatchChecksumError(
            f"Target CRC32 mismatch: expected {header.target_crc32:08x}, got {actual:08x}."
        )
    return bytes(target)
