"""Recorded packet captures.

A capture file is the raw byte stream of one direction of a connection:
frames written back to back with no extra header or padding.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from ..protocol.codec import describe_subtype
from ..protocol.errors import PacketError
from ..protocol.framing import DEFAULT_MAX_PAYLOAD
from ..protocol.packet import Packet, encode, iter_packets

logger = logging.getLogger(__name__)


@dataclass
class CaptureEntry:
    """One packet and where it sat in the capture."""

    index: int
    offset: int
    size: int
    packet: Packet

    def to_dict(self) -> dict[str, Any]:
        result = self.packet.to_dict()
        result.update(index=self.index, offset=self.offset, size=self.size)
        return result


@dataclass
class Capture:
    """Packets read from a capture file.

    ``error`` is set when reading stopped on a malformed frame; entries
    before ``error_offset`` are still valid.
    """

    path: Path
    entries: list[CaptureEntry] = field(default_factory=list)
    error: str | None = None
    error_offset: int | None = None

    @property
    def packets(self) -> list[Packet]:
        return [entry.packet for entry in self.entries]

    def to_dict(self, limit: int | None = None) -> dict[str, Any]:
        kinds = Counter(f"0x{e.packet.kind:02X}" for e in self.entries)
        codecs = Counter(
            describe_subtype(e.packet.codec_subtype)
            for e in self.entries
            if e.packet.codec_subtype is not None
        )
        shown = self.entries if limit is None else self.entries[:limit]
        return {
            "path": str(self.path),
            "packet_count": len(self.entries),
            "heartbeats": sum(1 for e in self.entries if e.packet.is_heartbeat),
            "kinds": dict(kinds),
            "codecs": dict(codecs),
            "error": self.error,
            "error_offset": self.error_offset,
            "packets": [e.to_dict() for e in shown],
        }


def load_capture(
    path: str | Path,
    max_packets: int | None = None,
    max_payload: int = DEFAULT_MAX_PAYLOAD,
) -> Capture:
    """Read packets from a capture file.

    Reading stops at EOF, after ``max_packets`` packets, or at the first
    frame that fails to decode. The failure is recorded on the returned
    capture rather than raised.

    Args:
        path: Capture file path.
        max_packets: Optional cap on the number of packets read.
        max_payload: Per-packet payload size limit.

    Returns:
        The parsed Capture.
    """
    path = Path(path)
    capture = Capture(path=path)

    with path.open("rb") as f:
        offset = 0
        packets = iter_packets(f, max_payload=max_payload)
        while max_packets is None or len(capture.entries) < max_packets:
            try:
                packet = next(packets)
            except StopIteration:
                break
            except PacketError as e:
                capture.error = f"{type(e).__name__}: {e}"
                capture.error_offset = offset
                logger.warning("Capture %s unreadable at offset %d: %s", path, offset, e)
                break
            end = f.tell()
            capture.entries.append(
                CaptureEntry(
                    index=len(capture.entries),
                    offset=offset,
                    size=end - offset,
                    packet=packet,
                )
            )
            offset = end

    return capture


def export_capture(packets: Iterable[Packet], path: str | Path) -> Path:
    """Write packets back to back into a capture file.

    Returns:
        The path written to.
    """
    path = Path(path)
    with path.open("wb") as f:
        for packet in packets:
            encode(packet, f)
    return path
