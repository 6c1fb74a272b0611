"""MCP server entry point for Dominions 4 packet analysis.

Exposes tools, resources, and prompts via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .models.capture import load_capture
from .protocol.codec import COMPRESSION_THRESHOLD, Subtype
from .protocol.errors import PacketError
from .protocol.framing import FULL_HEADER_SIZE, HEARTBEAT_KIND
from .protocol.packet import Packet, decode_bytes, encode_bytes

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "dom4net",
    instructions="MCP server for decoding and encoding Dominions 4 network packets",
)


def _error(e: Exception) -> dict[str, Any]:
    result: dict[str, Any] = {"error": str(e), "error_type": type(e).__name__}
    if isinstance(e, PacketError):
        result["stage"] = e.stage
        result["direction"] = e.direction.value
    return result


def _parse_hex(data: str) -> bytes:
    return bytes.fromhex(data.replace(" ", "").replace(":", ""))


# ─── PACKET TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def decode_packet(hex_data: str) -> dict[str, Any]:
    """Decode the first packet in a hex-encoded byte string.

    Args:
        hex_data: Frame bytes as hex, spaces and colons allowed
                  (e.g. "66 48 01 00 00 00 07").
    """
    try:
        data = _parse_hex(hex_data)
    except ValueError as e:
        return _error(e)

    try:
        packet, consumed = decode_bytes(data)
    except PacketError as e:
        return _error(e)

    result = packet.to_dict()
    result["consumed"] = consumed
    result["trailing"] = len(data) - consumed
    return result


@mcp.tool()
def encode_packet(kind: int, payload_hex: str = "") -> dict[str, Any]:
    """Encode a packet and return its wire bytes.

    The codec is chosen from the payload size: under 12 bytes the payload
    is sent raw, otherwise it is deflated.

    Args:
        kind: Packet type byte (0-255). 0x65 (101) is the heartbeat.
        payload_hex: Decompressed payload as hex.
    """
    try:
        packet = Packet(kind=kind, payload=_parse_hex(payload_hex))
        frame = encode_bytes(packet)
    except (ValueError, PacketError) as e:
        return _error(e)

    result: dict[str, Any] = {
        "kind": kind,
        "frame_hex": frame.hex(" "),
        "frame_length": len(frame),
    }
    if not packet.is_heartbeat:
        result["codec_subtype"] = frame[1]
        result["encoded_length"] = len(frame) - FULL_HEADER_SIZE
    return result


@mcp.tool()
def inspect_capture(path: str, limit: int = 50) -> dict[str, Any]:
    """Read a capture file of back-to-back frames and summarize it.

    Args:
        path: Path to the capture file.
        limit: Maximum number of packets listed in the result (default 50).
    """
    try:
        capture = load_capture(path)
    except OSError as e:
        return _error(e)
    logger.info("Loaded %d packets from %s", len(capture.entries), path)
    return capture.to_dict(limit=max(limit, 0))


# ─── MCP RESOURCES ────────────────────────────────────────────────────

@mcp.resource("dom4://protocol/codecs")
def resource_codecs() -> str:
    """Codec subtypes and whether they can be read and written."""
    return json.dumps({
        "heartbeat_kind": HEARTBEAT_KIND,
        "compression_threshold": COMPRESSION_THRESHOLD,
        "codecs": [
            {"subtype": Subtype.RAW.value, "name": "raw", "decode": True, "encode": True},
            {"subtype": Subtype.LEGACY.value, "name": "legacy", "decode": False, "encode": False},
            {"subtype": Subtype.DEFLATE.value, "name": "deflate", "decode": True, "encode": True},
        ],
    })


# ─── MCP PROMPTS ─────────────────────────────────────────────────────

@mcp.prompt()
def analyze_capture(path: str) -> str:
    """Guide the AI through analyzing a recorded packet capture.

    Args:
        path: Capture file to analyze.
    """
    return f"""Load the capture at {path} using the inspect_capture tool.
Summarize the traffic:
- Which packet kinds appear and how often
- How many heartbeats there are
- Which codecs were used, and whether any legacy (0x49) frames appear
- The first payload byte of each data packet (its payload type)

If the capture reports an error, note the offset: frames after it cannot be trusted.
Use decode_packet on individual frames for closer inspection."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
