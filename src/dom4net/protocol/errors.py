"""Exception types raised while reading or writing packets.

Every failure is a :class:`PacketError` tagged with the direction it
happened in and the stage of the frame being processed. The underlying
exception, if any, is kept on ``cause`` and chained through ``__cause__``.

After a :class:`ShortRead`, a :class:`FramingError` or a
:class:`CompressionFailed` the stream position is unknown; callers must
not keep reading or writing frames on it.
"""

from __future__ import annotations

from enum import Enum


class Direction(Enum):
    """Which side of the codec an error came from."""

    READ = "read"
    WRITE = "write"


class PacketError(Exception):
    """Base class for all packet read/write failures.

    Attributes:
        direction: ``Direction.READ`` or ``Direction.WRITE``.
        stage: Human-readable description of the step that failed.
        cause: The wrapped exception, or ``None``.
    """

    def __init__(
        self,
        direction: Direction,
        stage: str,
        cause: BaseException | None = None,
    ) -> None:
        self.direction = direction
        self.stage = stage
        self.cause = cause
        message = f"{direction.value} failed: {stage}"
        if cause is not None:
            message += f" (cause: {cause})"
        super().__init__(message)

    @property
    def root_cause(self) -> BaseException:
        """Innermost exception of the ``__cause__`` chain (self if none)."""
        exc: BaseException = self
        while exc.__cause__ is not None:
            exc = exc.__cause__
        return exc


class FramingError(PacketError):
    """Transport error while moving frame bytes on or off the stream."""


class ShortRead(FramingError):
    """The stream ended before a frame field was complete."""

    def __init__(self, stage: str, expected: int, received: int) -> None:
        self.expected = expected
        self.received = received
        super().__init__(Direction.READ, f"{stage} ({received}/{expected} bytes)")
        self.stage = stage


class PayloadTooLarge(FramingError):
    """A payload length is over the configured or wire limit."""

    def __init__(self, direction: Direction, length: int, limit: int) -> None:
        self.length = length
        self.limit = limit
        super().__init__(direction, f"payload length {length} exceeds limit {limit}")


class CodecError(PacketError):
    """Payload could not be converted to or from its wire encoding."""


class UnsupportedCodec(CodecError):
    """The frame uses a codec this library does not implement."""

    def __init__(self, subtype: int) -> None:
        self.subtype = subtype
        super().__init__(
            Direction.READ, f"codec subtype 0x{subtype:02X} is not supported"
        )


class DecompressionFailed(CodecError):
    """Inflating a compressed payload failed."""

    def __init__(self, stage: str, cause: BaseException | None = None) -> None:
        super().__init__(Direction.READ, stage, cause)


class CompressionFailed(CodecError):
    """Deflating a payload for the wire failed."""

    def __init__(self, stage: str, cause: BaseException | None = None) -> None:
        super().__init__(Direction.WRITE, stage, cause)
