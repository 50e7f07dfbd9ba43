"""Reusable type definitions for the KRPC codec."""

from .base import StrictBaseModel
from .bencode import BencodeDecodingError, BencodeItem, decode_bencode, encode_bencode
from .byte_arrays import BaseBytes, Hash
from .exceptions import (
    KRPCDecodeError,
    KRPCError,
    MalformedError,
    MessageEncodingError,
    MissingFieldError,
)
from .uint import Uint16

__all__ = [
    # Core types
    "BaseBytes",
    "Hash",
    "Uint16",
    "StrictBaseModel",
    # Bencode
    "BencodeItem",
    "BencodeDecodingError",
    "decode_bencode",
    "encode_bencode",
    # Exceptions
    "KRPCError",
    "KRPCDecodeError",
    "MalformedError",
    "MissingFieldError",
    "MessageEncodingError",
]
