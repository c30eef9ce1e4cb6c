"""Exceptions raised while loading and decoding NetHook dumps."""


class NetHookError(Exception):
    """Base class for dump analyzer errors."""


class MalformedFilename(NetHookError):
    """A dump file name has the dump prefix but unparseable type metadata."""


class DirectoryUnreadable(NetHookError):
    """The dump directory itself cannot be listed."""


class TruncatedHeader(NetHookError):
    """The payload ends before the message header does."""


class TruncatedBody(NetHookError):
    """A read would run past the end of the buffer."""

    def __init__(self, offset: int, wanted: int, available: int) -> None:
        self.offset = offset
        self.wanted = wanted
        self.available = available
        super().__init__(
            f"needed {wanted} bytes at offset {offset}, only {available} available"
        )


class MalformedBody(NetHookError):
    """The bytes cannot be a valid encoding at this offset."""

    def __init__(self, offset: int, reason: str) -> None:
        self.offset = offset
        self.reason = reason
        super().__init__(f"{reason} at offset {offset}")


class SchemaError(ValueError):
    """A schema registry document is inconsistent."""
