from typing import NamedTuple, TypedDict


class VRFSStatResult(TypedDict):
    st_mode: int
    st_nlink: int
    st_size: int
    st_blocks: int
    st_uid: int
    st_gid: int
    st_atime: float
    st_mtime: float
    st_ctime: float
    st_birthtime: float


class VRFSStats(TypedDict):
    rom_count: int
    open_dirs: int
    open_files: int
    cached_files: int
    cached_bytes: int
    cache_limit_bytes: int | None


class VRFSDirEntry(NamedTuple):
    name: str
    mode: int
