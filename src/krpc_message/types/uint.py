"""
Fixed-width unsigned integers.

KRPC uses 16-bit values in two places: peer ports and transaction ids. On the
wire both are two big-endian bytes (ports inside compact addresses, transaction
ids as the raw `t` string), while in Python they behave as plain `int` values.
"""

from __future__ import annotations

from typing import Any, ClassVar, Literal, SupportsIndex

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema
from typing_extensions import Self


class BaseUint(int):
    """An `int` restricted to the range of an unsigned `BITS`-wide integer."""

    BITS: ClassVar[int]
    """Width in bits. Set by subclasses."""

    def __new__(cls, value: int) -> Self:
        """
        Range-check `value` and wrap it.

        Raises:
            TypeError: If `value` is not an integer, or is a bool.
            OverflowError: If `value` does not fit in `BITS` unsigned bits.
        """
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"{cls.__name__} expects an int, got {type(value).__name__}")
        if value < 0 or value > cls.max_value():
            raise OverflowError(f"{cls.__name__} value {value} not in 0..{cls.max_value()}")
        return super().__new__(cls, value)

    @classmethod
    def max_value(cls) -> int:
        return (1 << cls.BITS) - 1

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        # Range is checked by the int schema, wrapping happens afterwards.
        return core_schema.no_info_after_validator_function(
            cls,
            core_schema.int_schema(strict=True, ge=0, le=cls.max_value()),
            serialization=core_schema.plain_serializer_function_ser_schema(int),
        )

    @classmethod
    def wire_length(cls) -> int:
        """Number of bytes in the wire form."""
        return cls.BITS // 8

    def to_bytes(
        self,
        length: SupportsIndex | None = None,
        byteorder: Literal["little", "big"] = "big",
        *,
        signed: bool = False,
    ) -> bytes:
        """Pack as `wire_length()` big-endian bytes unless told otherwise."""
        size = self.wire_length() if length is None else length
        return int(self).to_bytes(size, byteorder, signed=signed)

    @classmethod
    def from_wire(cls, data: bytes) -> Self:
        """
        Unpack exactly `wire_length()` big-endian bytes.

        Raises:
            ValueError: If `data` has any other length.
        """
        if len(data) != cls.wire_length():
            raise ValueError(
                f"{cls.__name__} expects exactly {cls.wire_length()} bytes, got {len(data)}"
            )
        return cls(int.from_bytes(data, "big"))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self)})"

    def __str__(self) -> str:
        return str(int(self))


class Uint16(BaseUint):
    """Ports and transaction ids."""

    BITS = 16
