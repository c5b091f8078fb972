import errno


class VRFSNotFoundError(FileNotFoundError):
    """Raised for an unknown path or handle, or a handle of the wrong kind."""
    def __init__(self, what: str) -> None:
        super().__init__(errno.ENOENT, f"No such file or handle: {what}")


class VRFSNotSupportedError(OSError):
    """Raised for any operation outside the read-only surface."""
    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(errno.ENOSYS, f"Operation not supported: {operation}")


class VRFSIOError(OSError):
    """Raised when a ROM image cannot be materialized. Subclass of OSError."""
    def __init__(self, message: str) -> None:
        super().__init__(errno.EIO, message)


class VRFSCacheLimitError(VRFSIOError):
    """Raised when caching a materialized image would exceed the cache budget."""
    def __init__(self, requested: int, available: int) -> None:
        self.requested = requested
        self.available = available
        super().__init__(
            f"VRFS cache limit exceeded: requested {requested} bytes, "
            f"only {available} bytes available."
        )


class VRFSHandleLimitError(OSError):
    """Raised when the 64-bit handle space has been used up."""
    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(errno.EMFILE, f"VRFS handle limit reached: {limit}")


class PatchError(ValueError):
    """Base class for BPS decoding and application errors."""


class PatchFormatError(PatchError):
    """Raised for a malformed patch container or an out-of-bounds action."""


class PatchChecksumError(PatchError):
    """Raised when a size or CRC32 check fails."""
