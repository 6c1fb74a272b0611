"""Frame reader and builder for the packet stream.

Frame layout::

    +--------+---------+-------------+------------------+
    |  Type  | Subtype |   Length    |     Payload      |
    | 1 byte | 1 byte  | 4 bytes LE  | ``Length`` bytes |
    +--------+---------+-------------+------------------+

- Type: packet kind. ``0x65`` is the heartbeat; its frame is the type
  byte alone, with no subtype, length or payload.
- Subtype: payload codec (see :mod:`.codec`).
- Length: unsigned 32-bit little-endian size of the payload *as encoded
  on the wire* (compressed size for deflate frames).
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import BinaryIO

from .errors import Direction, FramingError, PayloadTooLarge, ShortRead

HEARTBEAT_KIND = 0x65
LENGTH_FORMAT = "<I"
LENGTH_SIZE = struct.calcsize(LENGTH_FORMAT)
FULL_HEADER_SIZE = 2 + LENGTH_SIZE
MAX_FRAME_LENGTH = 0xFFFFFFFF
DEFAULT_MAX_PAYLOAD = 64 * 1024 * 1024  # 64 MiB
READ_CHUNK_SIZE = 64 * 1024

STAGE_TYPE = "header type"
STAGE_SUBTYPE = "header subtype"
STAGE_LENGTH = "header length"
STAGE_PAYLOAD = "payload data"


@dataclass
class RawFrame:
    """A frame as read off the wire, payload still in its wire encoding."""

    kind: int
    subtype: int | None = None
    data: bytes | None = None

    @property
    def is_heartbeat(self) -> bool:
        return self.kind == HEARTBEAT_KIND

    def __repr__(self) -> str:
        if self.subtype is None:
            return f"RawFrame(kind=0x{self.kind:02X})"
        return (
            f"RawFrame(kind=0x{self.kind:02X}, subtype=0x{self.subtype:02X}, "
            f"length={len(self.data or b'')})"
        )


def read_exact(stream: BinaryIO, size: int, stage: str) -> bytes:
    """Read exactly ``size`` bytes from ``stream``.

    Reads are issued in chunks of at most ``READ_CHUNK_SIZE`` so that a
    bogus length field cannot force a large allocation up front.

    Raises:
        ShortRead: If the stream reaches EOF first.
        FramingError: If the underlying read raises ``OSError``.
    """
    buf = bytearray()
    while len(buf) < size:
        try:
            chunk = stream.read(min(size - len(buf), READ_CHUNK_SIZE))
        except OSError as e:
            raise FramingError(Direction.READ, stage, e) from e
        if not chunk:
            raise ShortRead(stage, expected=size, received=len(buf))
        buf += chunk
    return bytes(buf)


def read_frame(stream: BinaryIO, max_payload: int = DEFAULT_MAX_PAYLOAD) -> RawFrame:
    """Read one frame from ``stream``.

    A heartbeat consumes exactly one byte. Any other frame consumes the
    full header and the declared number of payload bytes; a frame is never
    returned with a partial payload.

    Args:
        stream: Readable binary stream (file, ``BytesIO``, ``socket.makefile``).
        max_payload: Largest declared length accepted before reading the payload.

    Raises:
        ShortRead: If the stream ends mid-frame; the stage names the field.
        PayloadTooLarge: If the declared length is over ``max_payload``.
        FramingError: On transport errors.
    """
    kind = read_exact(stream, 1, STAGE_TYPE)[0]
    if kind == HEARTBEAT_KIND:
        return RawFrame(kind=kind)

    subtype = read_exact(stream, 1, STAGE_SUBTYPE)[0]
    (length,) = struct.unpack(LENGTH_FORMAT, read_exact(stream, LENGTH_SIZE, STAGE_LENGTH))
    if length > max_payload:
        raise PayloadTooLarge(Direction.READ, length, max_payload)

    data = read_exact(stream, length, STAGE_PAYLOAD)
    return RawFrame(kind=kind, subtype=subtype, data=data)


def build_frame(kind: int, subtype: int | None = None, data: bytes = b"") -> bytes:
    """Serialize a frame.

    Args:
        kind: Packet type byte.
        subtype: Codec subtype byte; ignored for heartbeats.
        data: Payload already in its wire encoding; must be empty for heartbeats.

    Returns:
        The frame bytes ready to write to the stream.
    """
    if kind == HEARTBEAT_KIND:
        if data:
            raise ValueError("Heartbeat frames cannot carry payload data")
        return bytes([kind])
    if subtype is None:
        raise ValueError(f"Frame kind 0x{kind:02X} requires a codec subtype")
    if len(data) > MAX_FRAME_LENGTH:
        raise PayloadTooLarge(Direction.WRITE, len(data), MAX_FRAME_LENGTH)
    return bytes([kind, subtype]) + struct.pack(LENGTH_FORMAT, len(data)) + data


def write_all(stream: BinaryIO, data: bytes, stage: str = "frame data") -> None:
    """Write all of ``data`` to ``stream``, looping on short writes.

    Raises:
        FramingError: If the write raises ``OSError`` or makes no progress.
    """
    view = memoryview(data)
    while view:
        try:
            written = stream.write(view)
        except OSError as e:
            raise FramingError(Direction.WRITE, stage, e) from e
        # Non-blocking raw streams return None when nothing was written.
        if written is None or written <= 0:
            raise FramingError(Direction.WRITE, f"{stage} (stream accepted no bytes)")
        view = view[written:]
