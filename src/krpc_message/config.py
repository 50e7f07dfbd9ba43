"""
KRPC Codec Configuration

Wire constants for the BitTorrent DHT message format and the runtime
limits applied when decoding untrusted input.

References:
    - https://www.bittorrent.org/beps/bep_0005.html
"""

from typing import Final

from krpc_message.types import StrictBaseModel
from krpc_message.types.bencode import DEFAULT_MAX_DEPTH

HASH_LENGTH: Final = 20
"""Node ids and info hashes are 160-bit values."""

COMPACT_ADDRESS_LENGTH: Final = 6
"""IPv4 address (4 bytes) followed by a big-endian port (2 bytes)."""

COMPACT_NODE_LENGTH: Final = HASH_LENGTH + COMPACT_ADDRESS_LENGTH
"""Node id followed by its compact address."""

TRANSACTION_ID_LENGTH: Final = 2
"""Transaction ids travel as exactly two raw bytes."""

MAX_NESTING_DEPTH: Final = DEFAULT_MAX_DEPTH
"""Deepest list/dictionary nesting accepted from a peer. Valid messages need 3."""


class CodecConfig(StrictBaseModel):
    """Runtime limits for decoding KRPC messages."""

    max_nesting_depth: int = MAX_NESTING_DEPTH
    """Maximum nesting of bencode lists and dictionaries in an incoming message."""


DEFAULT_CONFIG: Final = CodecConfig()
"""Configuration used when callers do not supply one."""
