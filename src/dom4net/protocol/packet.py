"""Packet model and the public decode/encode entry points."""

from __future__ import annotations

import io
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, BinaryIO

from .codec import decode_payload, describe_subtype, encode_payload
from .errors import ShortRead
from .framing import (
    DEFAULT_MAX_PAYLOAD,
    HEARTBEAT_KIND,
    STAGE_TYPE,
    build_frame,
    read_frame,
    write_all,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Packet:
    """A decoded protocol packet.

    ``payload`` always holds the decompressed bytes. ``codec_subtype``
    records how the packet arrived on the wire; :func:`encode` ignores it
    and picks a codec from the payload size.
    """

    kind: int
    payload: bytes = b""
    codec_subtype: int | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.kind <= 0xFF:
            raise ValueError(f"Packet kind must be 0-255, got {self.kind}")
        if self.kind == HEARTBEAT_KIND:
            if self.payload:
                raise ValueError("Heartbeat packets cannot carry a payload")
            object.__setattr__(self, "codec_subtype", None)
        object.__setattr__(self, "payload", bytes(self.payload))

    @classmethod
    def heartbeat(cls) -> Packet:
        return cls(kind=HEARTBEAT_KIND)

    @property
    def is_heartbeat(self) -> bool:
        return self.kind == HEARTBEAT_KIND

    @property
    def payload_kind(self) -> int | None:
        """First payload byte, which names the payload type. Not interpreted here."""
        return self.payload[0] if self.payload else None

    @property
    def direction(self) -> str | None:
        """Conventional direction: odd kinds go to the server, even ones to the client."""
        if self.is_heartbeat:
            return None
        return "client->server" if self.kind % 2 else "server->client"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "kind": self.kind,
            "heartbeat": self.is_heartbeat,
        }
        if not self.is_heartbeat:
            result["direction"] = self.direction
            result["payload_kind"] = self.payload_kind
            result["payload_length"] = len(self.payload)
            result["payload_hex"] = self.payload.hex(" ")
            if self.codec_subtype is not None:
                result["codec_subtype"] = self.codec_subtype
                result["codec"] = describe_subtype(self.codec_subtype)
        return result

    def __repr__(self) -> str:
        if self.is_heartbeat:
            return "Packet(kind=0x65, heartbeat)"
        subtype = (
            f"0x{self.codec_subtype:02X}" if self.codec_subtype is not None else "None"
        )
        return (
            f"Packet(kind=0x{self.kind:02X}, codec_subtype={subtype}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def decode(stream: BinaryIO, max_payload: int = DEFAULT_MAX_PAYLOAD) -> Packet:
    """Read and decode one packet from ``stream``.

    Args:
        stream: Readable binary stream positioned at a frame boundary.
        max_payload: Limit applied to both the wire length and the
            decompressed payload size.

    Raises:
        PacketError: Any framing or codec failure. After a ``FramingError``
            the stream is no longer aligned to a frame boundary.
    """
    frame = read_frame(stream, max_payload=max_payload)
    if frame.is_heartbeat:
        logger.debug("Decoded heartbeat")
        return Packet.heartbeat()

    payload = decode_payload(
        frame.subtype, frame.data, declared_length=len(frame.data), max_size=max_payload
    )
    logger.debug(
        "Decoded packet kind=0x%02X subtype=0x%02X wire=%d payload=%d",
        frame.kind, frame.subtype, len(frame.data), len(payload),
    )
    return Packet(kind=frame.kind, payload=payload, codec_subtype=frame.subtype)


def encode_bytes(packet: Packet) -> bytes:
    """Serialize ``packet`` to frame bytes without writing them anywhere."""
    if packet.is_heartbeat:
        return build_frame(HEARTBEAT_KIND)
    subtype, encoded = encode_payload(packet.payload)
    logger.debug(
        "Encoded packet kind=0x%02X subtype=0x%02X payload=%d wire=%d",
        packet.kind, subtype, len(packet.payload), len(encoded),
    )
    return build_frame(packet.kind, subtype, encoded)


def encode(packet: Packet, stream: BinaryIO) -> None:
    """Encode ``packet`` and write it to ``stream``.

    The whole frame is built before anything is written, so a compression
    failure leaves the stream untouched. Write failures are not retried.

    Raises:
        CompressionFailed: If the payload cannot be deflated.
        FramingError: If the stream rejects the write.
    """
    write_all(stream, encode_bytes(packet))


def decode_bytes(
    data: bytes, max_payload: int = DEFAULT_MAX_PAYLOAD
) -> tuple[Packet, int]:
    """Decode the first packet in ``data``.

    Returns:
        The packet and the number of bytes it occupied.
    """
    stream = io.BytesIO(data)
    packet = decode(stream, max_payload=max_payload)
    return packet, stream.tell()


def iter_packets(
    stream: BinaryIO, max_payload: int = DEFAULT_MAX_PAYLOAD
) -> Iterator[Packet]:
    """Yield packets from ``stream`` until it ends cleanly at a frame boundary.

    EOF in the middle of a frame, and every other error, is raised.
    """
    while True:
        try:
            packet = decode(stream, max_payload=max_payload)
        except ShortRead as e:
            if e.stage == STAGE_TYPE and e.received == 0:
                return
            raise
        yield packet
