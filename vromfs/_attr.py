import os
import stat

from ._registry import PatchHeader
from ._typing import VRFSStatResult

ATTR_TTL = 1.0
"""Seconds the kernel may cache attributes and directory entries."""

ROOT_MODE = stat.S_IFDIR | 0o555
FILE_MODE = stat.S_IFREG | 0o444
_BLOCK_SIZE = 512


def root_attr() -> VRFSStatResult:
    return VRFSStatResult(
        st_mode=ROOT_MODE,
        st_nlink=2,
        st_size=0,
        st_blocks=0,
        st_uid=os.geteuid(),
        st_gid=os.getegid(),
        st_atime=0.0,
        st_mtime=0.0,
        st_ctime=0.0,
        st_birthtime=0.0,
    )


def file_attr(header: PatchHeader) -> VRFSStatResult:
    # Change time follows the patch's modification time.
    return VRFSStatResult(
        st_mode=FILE_MODE,
        st_nlink=1,
        st_size=header.target_size,
        st_blocks=(header.target_size + _BLOCK_SIZE - 1) // _BLOCK_SIZE,
        st_uid=os.geteuid(),
        st_gid=os.getegid(),
        st_atime=header.access_time,
        st_mtime=header.modify_time,
        st_ctime=header.modify_time,
        st_birthtime=header.create_time,
    )
