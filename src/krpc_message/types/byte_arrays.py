"""
Fixed-length byte strings.

KRPC identifies both DHT nodes and torrents by 160-bit values carried as raw
20-byte strings. `Hash` models them as a `bytes` subclass whose length is
checked on construction, so a value that exists is always well-formed.
"""

from __future__ import annotations

from typing import Any, ClassVar, Iterable

from pydantic.annotated_handlers import GetCoreSchemaHandler
from pydantic_core import core_schema
from typing_extensions import Self

from .exceptions import MalformedError


def _as_bytes(value: Any) -> bytes:
    """
    Turn `value` into raw bytes.

    Accepts bytes-like objects, iterables of ints in 0..255, and hex strings
    with or without a `0x` prefix.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return bytes.fromhex(value.removeprefix("0x"))
        except ValueError as e:
            raise ValueError(
                f"str input must be hex-encoded (pass raw bytes as bytes), got {value!r}"
            ) from e
    if isinstance(value, Iterable):
        return bytes(value)
    raise TypeError(f"cannot convert {type(value).__name__} to bytes")


class BaseBytes(bytes):
    """
    Immutable byte string of exactly `LENGTH` bytes.

    Construction from application code raises `ValueError` on a length
    mismatch. Parsing peer input goes through `decode_bytes`, which raises
    the codec's `MalformedError` instead.
    """

    LENGTH: ClassVar[int]
    """Required length in bytes. Set by subclasses."""

    def __new__(cls, value: Any) -> Self:
        raw = _as_bytes(value)
        if len(raw) != cls.LENGTH:
            raise ValueError(f"{cls.__name__} expects exactly {cls.LENGTH} bytes, got {len(raw)}")
        return super().__new__(cls, raw)

    @classmethod
    def zero(cls) -> Self:
        return cls(bytes(cls.LENGTH))

    @classmethod
    def decode_bytes(cls, data: bytes) -> Self:
        """
        Wrap a value read from the wire.

        Raises:
            MalformedError: If `data` is not exactly `LENGTH` bytes.
        """
        if len(data) != cls.LENGTH:
            raise MalformedError(f"expected {cls.LENGTH} bytes, got {len(data)}")
        return cls(data)

    def encode_bytes(self) -> bytes:
        """Return the wire form as plain `bytes`."""
        return bytes(self)

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        # Length is checked by the bytes schema; the result is wrapped in `cls`.
        # Dumps render the value as hex.
        return core_schema.no_info_after_validator_function(
            cls,
            core_schema.bytes_schema(min_length=cls.LENGTH, max_length=cls.LENGTH),
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda value: bytes(value).hex()
            ),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({bytes(self).hex()})"


class Hash(BaseBytes):
    """
    A 20-byte identifier.

    Used both as a DHT node id and as a torrent info hash.
    """

    LENGTH = 20
