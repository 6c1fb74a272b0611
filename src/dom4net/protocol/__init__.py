"""Protocol layer: frame reading, payload codecs, and packet encode/decode."""

from .codec import Subtype, UnknownSubtype, classify_subtype, decode_payload, encode_payload
from .errors import (
    CodecError,
    CompressionFailed,
    DecompressionFailed,
    Direction,
    FramingError,
    PacketError,
    PayloadTooLarge,
    ShortRead,
    UnsupportedCodec,
)
from .framing import HEARTBEAT_KIND, RawFrame, build_frame, read_frame
from .packet import Packet, decode, decode_bytes, encode, encode_bytes, iter_packets
