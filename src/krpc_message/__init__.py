"""
KRPC Message Codec

Encoding and decoding of the BitTorrent DHT (BEP 5) query, response and
error messages on top of bencode.

The module provides:
- Typed messages (`Ping`, `FindNode`, `GetPeers`, `AnnouncePeer`, `Response`, `Error`)
- The generic `Message` envelope
- Compact node and peer address formats
- Typed decode errors carrying the path of the offending field

References:
    - https://www.bittorrent.org/beps/bep_0005.html
"""

from .codec import decode_envelope, decode_message, encode_envelope, encode_message
from .compact import (
    CompactAddress,
    Node,
    Port,
    decode_address_list,
    decode_node_list,
    encode_address_list,
    encode_node_list,
)
from .config import CodecConfig
from .messages import (
    AnnouncePeer,
    Error,
    ErrorPayload,
    FindNode,
    GetPeers,
    KRPCMessage,
    Message,
    MessageClass,
    Ping,
    QueryArgs,
    QueryKind,
    Response,
    ResponseValues,
    TransactionId,
    from_envelope,
)
from .types import (
    Hash,
    KRPCDecodeError,
    KRPCError,
    MalformedError,
    MessageEncodingError,
    MissingFieldError,
)

__all__ = [
    # Config
    "CodecConfig",
    # Primitives
    "Hash",
    "Port",
    "TransactionId",
    "CompactAddress",
    "Node",
    "encode_node_list",
    "decode_node_list",
    "encode_address_list",
    "decode_address_list",
    # Messages
    "MessageClass",
    "QueryKind",
    "QueryArgs",
    "ResponseValues",
    "ErrorPayload",
    "Message",
    "Ping",
    "FindNode",
    "GetPeers",
    "AnnouncePeer",
    "Response",
    "Error",
    "KRPCMessage",
    "from_envelope",
    # Codec
    "encode_message",
    "decode_message",
    "encode_envelope",
    "decode_envelope",
    # Exceptions
    "KRPCError",
    "KRPCDecodeError",
    "MissingFieldError",
    "MalformedError",
    "MessageEncodingError",
]
