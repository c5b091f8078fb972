"""Command line entry point: ``vromfs MOUNTPOINT --patches DIR [--roms DIR ...]``."""

from __future__ import annotations

import argparse
import logging
import os

from ._fs import RomFileSystem
from ._registry import load_registry

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vromfs",
        description="Mount BPS-patched ROMs as read-only files without writing them to disk.",
    )
    parser.add_argument("mountpoint", help="Directory to mount the filesystem on")
    parser.add_argument("--patches", required=True, metavar="DIR",
                        help="Directory containing .bps patches")
    parser.add_argument("--roms", action="append", metavar="DIR",
                        help="Directory with base ROMs (repeatable, default: the patch directory)")
    parser.add_argument("--max-cache-mib", type=int, default=None, metavar="N",
                        help="Upper bound on memory used for patched images")
    parser.add_argument("--background", action="store_true",
                        help="Detach from the terminal after mounting")
    parser.add_argument("--allow-other", action="store_true",
                        help="Let other users access the mount")
    parser.add_argument("--debug", action="store_true",
                        help="Log every filesystem call, including libfuse's own tracing")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Log level (default: INFO)")
    return parser


def build_filesystem(args: argparse.Namespace) -> RomFileSystem:
    registry = load_registry(args.patches, args.roms)
    max_cache = None if args.max_cache_mib is None else args.max_cache_mib * 1024 * 1024
    return RomFileSystem(registry, max_cache_bytes=max_cache)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.max_cache_mib is not None and args.max_cache_mib <= 0:
        parser.error("--max-cache-mib must be a positive integer")

    logging.basicConfig(
        level=logging.DEBUG if args.debug else getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    for directory in [args.patches, *(args.roms or [])]:
        if not os.path.isdir(directory):
            logger.error("Not a directory: %s", directory)
            return 1

    fs = build_filesystem(args)

    from ._fuse import mount

    mount(
        fs,
        args.mountpoint,
        foreground=not args.background,
        allow_other=args.allow_other,
        debug=args.debug,
    )
    return 0

