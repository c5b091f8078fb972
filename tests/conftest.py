import pytest

from vromfs._pytest_plugin import romfs_factory  # noqa: F401

from tests.helpers.roms import A_ROM


@pytest.fixture
def contents() -> dict[str, bytes]:
    return {
        "a.rom": A_ROM,
        "b.sfc": b"\xaa" * 4096,
        "empty.gb": b"",
    }


@pytest.fixture
def romfs(romfs_factory, contents):
    """A RomFileSystem over ``contents`` with a counting stub materializer."""
    fs, _codec = romfs_factory(contents)
    return fs


@pytest.fixture
def romfs_and_codec(romfs_factory, contents):
    return romfs_factory(contents)
