"""Payload codecs selected by the frame subtype byte.

Only two codecs are writable: raw and raw DEFLATE (no zlib header or
checksum). The legacy ``0x49`` codec appears in the protocol but is not
implemented; decoding it always raises :class:`UnsupportedCodec`.
"""

from __future__ import annotations

import logging
import zlib
from dataclasses import dataclass
from enum import IntEnum

from .errors import CompressionFailed, DecompressionFailed, UnsupportedCodec
from .framing import DEFAULT_MAX_PAYLOAD

logger = logging.getLogger(__name__)

COMPRESSION_THRESHOLD = 12  # payloads shorter than this are sent raw
COMPRESSION_LEVEL = 1
DEFLATE_WBITS = -15
INFLATE_CHUNK = 64 * 1024


class Subtype(IntEnum):
    """Known codec subtypes."""

    RAW = 0x48
    LEGACY = 0x49
    DEFLATE = 0x4A


@dataclass(frozen=True)
class UnknownSubtype:
    """A subtype byte with no known codec."""

    value: int

    def __repr__(self) -> str:
        return f"UnknownSubtype(0x{self.value:02X})"


def classify_subtype(value: int) -> Subtype | UnknownSubtype:
    """Map a subtype byte to a :class:`Subtype` or :class:`UnknownSubtype`."""
    if not 0 <= value <= 0xFF:
        raise ValueError(f"Subtype must be 0-255, got {value}")
    try:
        return Subtype(value)
    except ValueError:
        return UnknownSubtype(value)


def describe_subtype(value: int) -> str:
    """Short human-readable codec name for a subtype byte."""
    codec = classify_subtype(value)
    if codec is Subtype.RAW:
        return "raw"
    if codec is Subtype.LEGACY:
        return "legacy (unsupported)"
    if codec is Subtype.DEFLATE:
        return "deflate"
    return f"unknown (0x{codec.value:02X})"


def _inflate(raw: bytes, max_size: int) -> bytes:
    """Inflate a raw DEFLATE stream into a growable buffer."""
    inflater = zlib.decompressobj(DEFLATE_WBITS)
    out = bytearray()
    pending = raw
    try:
        while True:
            limit = min(INFLATE_CHUNK, max_size - len(out) + 1)
            chunk = inflater.decompress(pending, limit)
            out += chunk
            if len(out) > max_size:
                raise DecompressionFailed(
                    f"decompressed size exceeds limit of {max_size} bytes"
                )
            pending = inflater.unconsumed_tail
            if inflater.eof or (not pending and len(chunk) < limit):
                break
        out += inflater.flush()
    except zlib.error as e:
        raise DecompressionFailed("corrupt deflate data", e) from e

    if len(out) > max_size:
        raise DecompressionFailed(f"decompressed size exceeds limit of {max_size} bytes")
    if not inflater.eof:
        raise DecompressionFailed("truncated deflate data")
    return bytes(out)


def decode_payload(
    subtype: int,
    raw: bytes,
    declared_length: int | None = None,
    max_size: int = DEFAULT_MAX_PAYLOAD,
) -> bytes:
    """Convert a payload from its wire encoding to plain bytes.

    Args:
        subtype: Subtype byte from the frame header.
        raw: Payload bytes as read from the wire.
        declared_length: Length field from the header, for diagnostics only.
        max_size: Upper bound on the decompressed size.

    Returns:
        The decoded payload. Unknown subtypes decode to ``b""``.

    Raises:
        UnsupportedCodec: For the legacy subtype, whatever the content.
        DecompressionFailed: If inflating fails or exceeds ``max_size``.
    """
    codec = classify_subtype(subtype)
    if codec is Subtype.RAW:
        return raw
    if codec is Subtype.LEGACY:
        raise UnsupportedCodec(subtype)
    if codec is Subtype.DEFLATE:
        data = _inflate(raw, max_size)
        logger.debug(
            "Inflated %d wire bytes (declared %s) to %d bytes",
            len(raw), declared_length, len(data),
        )
        return data

    # Unknown codecs decode to an empty payload rather than an error.
    logger.warning(
        "Unknown codec subtype 0x%02X; dropping %d payload bytes",
        codec.value, len(raw),
    )
    return b""


def encode_payload(
    payload: bytes, level: int = COMPRESSION_LEVEL
) -> tuple[Subtype, bytes]:
    """Choose a codec for ``payload`` and encode it for the wire.

    Payloads under ``COMPRESSION_THRESHOLD`` bytes are sent raw, larger
    ones are deflated at ``level``.

    Returns:
        ``(subtype, encoded_bytes)``; the subtype is never ``LEGACY``.

    Raises:
        CompressionFailed: If the compressor cannot be created or fails.
    """
    if len(payload) < COMPRESSION_THRESHOLD:
        return Subtype.RAW, bytes(payload)

    try:
        deflater = zlib.compressobj(level, zlib.DEFLATED, DEFLATE_WBITS)
    except (ValueError, zlib.error) as e:
        raise CompressionFailed("failed to create deflate compressor", e) from e
    try:
        encoded = deflater.compress(payload) + deflater.flush()
    except (zlib.error, MemoryError) as e:
        raise CompressionFailed("failed to deflate payload", e) from e
    return Subtype.DEFLATE, encoded
