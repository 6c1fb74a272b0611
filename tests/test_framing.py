"""Tests for frame reading and building."""

import io

import pytest

from dom4net.protocol.errors import Direction, FramingError, PayloadTooLarge, ShortRead
from dom4net.protocol.framing import (
    HEARTBEAT_KIND,
    RawFrame,
    build_frame,
    read_exact,
    read_frame,
    write_all,
)


class _FailingStream:
    """Stream whose reads and writes raise OSError."""

    def read(self, size):
        raise TimeoutError("timed out")

    def write(self, data):
        raise BrokenPipeError("closed")


class _TrickleStream:
    """Stream that returns at most two bytes per read, like a socket."""

    def __init__(self, data: bytes):
        self._buf = io.BytesIO(data)

    def read(self, size):
        return self._buf.read(min(size, 2))


class _WouldBlockWriter(io.RawIOBase):
    """Non-blocking raw stream that cannot accept bytes on the first write."""

    def __init__(self):
        self.data = bytearray()
        self._blocked = True

    def writable(self):
        return True

    def write(self, data):
        if self._blocked:
            self._blocked = False
            return None
        self.data += data
        return len(data)


class _ShortWriter:
    """Stream that accepts at most three bytes per write."""

    def __init__(self):
        self.data = bytearray()

    def write(self, data):
        chunk = bytes(data[:3])
        self.data += chunk
        return len(chunk)


def test_heartbeat_frame_is_one_byte():
    """A heartbeat frame is the type byte and nothing else."""
    assert build_frame(HEARTBEAT_KIND) == b"\x65"


def test_build_frame_layout():
    """Type, subtype, little-endian length, then data."""
    frame = build_frame(0x66, 0x48, b"\x01\x02\x03")
    assert frame[0] == 0x66
    assert frame[1] == 0x48
    assert frame[2:6] == b"\x03\x00\x00\x00"
    assert frame[6:] == b"\x01\x02\x03"


def test_build_heartbeat_frame_rejects_data():
    """Heartbeat frames cannot carry payload bytes."""
    with pytest.raises(ValueError):
        build_frame(HEARTBEAT_KIND, 0x48, b"x")


def test_build_frame_requires_subtype():
    """Data frames without a subtype are rejected."""
    with pytest.raises(ValueError):
        build_frame(0x66)


def test_read_heartbeat_consumes_one_byte():
    """Reading a heartbeat leaves the rest of the stream alone."""
    stream = io.BytesIO(b"\x65\x66\x48")
    frame = read_frame(stream)
    assert frame.is_heartbeat
    assert frame.subtype is None
    assert frame.data is None
    assert stream.tell() == 1


def test_read_frame_roundtrip():
    """A built frame reads back into the same fields."""
    stream = io.BytesIO(build_frame(0x67, 0x4A, b"payload"))
    frame = read_frame(stream)
    assert frame.kind == 0x67
    assert frame.subtype == 0x4A
    assert frame.data == b"payload"


def test_read_frame_zero_length():
    """A zero-length frame has an empty payload."""
    frame = read_frame(io.BytesIO(b"\x66\x48\x00\x00\x00\x00"))
    assert frame.data == b""


def test_read_frame_large_length_field():
    """Length is read as unsigned 32-bit little-endian."""
    data = bytes(range(256)) * 2
    header = b"\x66\x48" + len(data).to_bytes(4, "little")
    frame = read_frame(io.BytesIO(header + data))
    assert frame.data == data


@pytest.mark.parametrize(
    "data, stage",
    [
        (b"", "header type"),
        (b"\x66", "header subtype"),
        (b"\x66\x48\x05\x00", "header length"),
        (b"\x66\x48\x05\x00\x00\x00abc", "payload data"),
    ],
)
def test_short_read_stages(data, stage):
    """Each truncated field raises ShortRead naming that field."""
    with pytest.raises(ShortRead) as exc_info:
        read_frame(io.BytesIO(data))
    assert exc_info.value.stage == stage
    assert exc_info.value.direction is Direction.READ


def test_short_payload_reports_counts():
    """ShortRead records how many payload bytes were missing."""
    with pytest.raises(ShortRead) as exc_info:
        read_frame(io.BytesIO(b"\x66\x48\x0a\x00\x00\x00abcd"))
    assert exc_info.value.expected == 10
    assert exc_info.value.received == 4


def test_declared_length_over_limit():
    """Oversized length fields fail before the payload is read."""
    stream = io.BytesIO(b"\x66\x48\x00\x00\x00\x01")
    with pytest.raises(PayloadTooLarge) as exc_info:
        read_frame(stream, max_payload=1024)
    assert exc_info.value.length == 0x01000000
    assert stream.tell() == 6


def test_read_exact_handles_partial_reads():
    """Partial reads are accumulated until the requested size."""
    stream = _TrickleStream(build_frame(0x66, 0x48, b"0123456789"))
    frame = read_frame(stream)
    assert frame.data == b"0123456789"


def test_read_transport_error_is_wrapped():
    """OSError from the stream becomes a FramingError with the cause kept."""
    with pytest.raises(FramingError) as exc_info:
        read_exact(_FailingStream(), 1, "header type")
    err = exc_info.value
    assert err.direction is Direction.READ
    assert isinstance(err.cause, TimeoutError)
    assert isinstance(err.__cause__, TimeoutError)


def test_write_all_handles_short_writes():
    """Short writes are retried until all bytes are written."""
    writer = _ShortWriter()
    write_all(writer, b"abcdefghij")
    assert bytes(writer.data) == b"abcdefghij"


def test_write_all_would_block_is_an_error():
    """A raw write returning None wrote nothing and must not pass silently."""
    writer = _WouldBlockWriter()
    with pytest.raises(FramingError) as exc_info:
        write_all(writer, b"fH\x03\x00\x00\x00abc")
    assert exc_info.value.direction is Direction.WRITE
    assert "accepted no bytes" in str(exc_info.value)
    assert bytes(writer.data) == b""


def test_write_transport_error_is_wrapped():
    """OSError on write becomes a FramingError in the write direction."""
    with pytest.raises(FramingError) as exc_info:
        write_all(_FailingStream(), b"\x65")
    assert exc_info.value.direction is Direction.WRITE
    assert isinstance(exc_info.value.root_cause, BrokenPipeError)


def test_raw_frame_repr():
    """RawFrame repr shows hex kind and subtype."""
    assert "0x65" in repr(RawFrame(kind=0x65))
    r = repr(RawFrame(kind=0x66, subtype=0x4A, data=b"xy"))
    assert "0x4A" in r
    assert "length=2" in r
