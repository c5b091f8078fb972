"""pytest fixture plugin.

Usage::

    # conftest.py
    pytest_plugins = ["vromfs._pytest_plugin"]

This makes the ``romfs_factory`` fixture available::

    def test_something(romfs_factory):
        fs, codec = romfs_factory({"a.rom": b"patched bytes"})
        fh = fs.open("/a.rom")
        assert fs.read(fh, 0, 7) == b"patched"
        assert codec.calls == 1
"""

from __future__ import annotations

import threading
import time
from collections import Counter

import pytest

from ._exceptions import PatchChecksumError
from ._fs import RomFileSystem
from ._registry import PatchHeader


def make_header(
    name: str,
    target_size: int,
    create_time: float = 0.0,
    modify_time: float = 0.0,
    access_time: float = 0.0,
) -> PatchHeader:
    """A header for a ROM that only exists in memory; ``patch_path`` is *name*."""
    return PatchHeader(
        patch_path=name,
        base_path="",
        source_size=0,
        target_size=target_size,
        metadata="",
        source_crc32=0,
        target_crc32=0,
        create_time=create_time,
        modify_time=modify_time,
        access_time=access_time,
    )


class CountingMaterializer:
    """Stub materializer serving fixed contents and counting its calls.

    The first *failures* calls raise :class:`PatchChecksumError`; *delay*
    seconds are slept inside every call to widen race windows.
    """

    def __init__(self, contents: dict[str, bytes], delay: float = 0.0, failures: int = 0) -> None:
        self._contents = contents
        self._delay = delay
        self._failures = failures
        self._lock = threading.Lock()
        self.calls = 0
        self.calls_by_name: Counter[str] = Counter()

    def __call__(self, header: PatchHeader) -> bytes:
        with self._lock:
            self.calls += 1
            self.calls_by_name[header.patch_path] += 1
            fail = self._failures > 0
            if fail:
                self._failures -= 1
        if self._delay:
            time.sleep(self._delay)
        if fail:
            raise PatchChecksumError(f"Injected failure for {header.patch_path}")
        return self._contents[header.patch_path]


@pytest.fixture
def romfs_factory():
    """Build a :class:`RomFileSystem` over in-memory contents.

    Returns a callable ``(contents, delay=0.0, failures=0, **fs_kwargs)``
    giving ``(fs, materializer)``.  A fresh instance per call.
    """

    def factory(
        contents: dict[str, bytes],
        delay: float = 0.0,
        failures: int = 0,
        **fs_kwargs,
    ) -> tuple[RomFileSystem, CountingMaterializer]:
        codec = CountingMaterializer(contents, delay=delay, failures=failures)
        registry = {name: make_header(name, len(data)) for name, data in contents.items()}
        return RomFileSystem(registry, materializer=codec, **fs_kwargs), codec

    return factory
