"""
Bencode Encoding
================

Bencode is the serialization format used by BitTorrent for torrent files,
tracker responses and DHT (KRPC) messages.

Encoding Rules
--------------

Bencode encodes four types of items:

+------------+----------------------+------------------------------+
| Item       | Encoding             | Example                      |
+============+======================+==============================+
| Integer    | ``i<decimal>e``      | ``42`` -> ``i42e``           |
+------------+----------------------+------------------------------+
| Byte string| ``<length>:<bytes>`` | ``b"spam"`` -> ``4:spam``    |
+------------+----------------------+------------------------------+
| List       | ``l<items>e``        | ``[1, b"a"]`` -> ``li1e1:ae``|
+------------+----------------------+------------------------------+
| Dictionary | ``d<key><value>...e``| ``{b"a": 1}`` -> ``d1:ai1ee``|
+------------+----------------------+------------------------------+

Dictionary keys are byte strings and are emitted in sorted raw-byte order.
Integers and string lengths have a single canonical decimal form: no leading
zeros and no negative zero.

References:
----------
- https://www.bittorrent.org/beps/bep_0003.html#bencoding
"""

from __future__ import annotations

from typing import TypeAlias

BencodeItem: TypeAlias = int | bytes | list["BencodeItem"] | dict[bytes, "BencodeItem"]
"""
Bencode-encodable item.

One of:
- int (a signed integer)
- bytes (a byte string)
- list of bencode items (recursive)
- dict mapping byte-string keys to bencode items (recursive)
"""


INTEGER_START = ord("i")
"""Marker opening an integer."""

LIST_START = ord("l")
"""Marker opening a list."""

DICT_START = ord("d")
"""Marker opening a dictionary."""

END = ord("e")
"""Terminator shared by integers, lists and dictionaries."""

LENGTH_SEPARATOR = ord(":")
"""Separator between a byte string's length and its payload."""

DEFAULT_MAX_DEPTH = 32
"""Default bound on list/dictionary nesting accepted by the decoder."""

_DIGITS = frozenset(b"0123456789")


def encode_bencode(item: BencodeItem) -> bytes:
    """
    Encode an item using bencode.

    Args:
        item: Integer, bytes, or nested list/dict of such items.

    Returns:
        Bencoded bytes.

    Raises:
        TypeError: If item (or a nested item or key) has an unsupported type.
    """
    out = bytearray()
    _encode_into(item, out)
    return bytes(out)


def _encode_into(item: BencodeItem, out: bytearray) -> None:
    """Append the encoding of `item` to `out`."""
    # bool is an int subclass but has no bencode representation.
    if isinstance(item, bool):
        raise TypeError("Cannot bencode type: bool")
    if isinstance(item, int):
        out += b"i%de" % item
        return
    if isinstance(item, (bytes, bytearray)):
        out += b"%d:" % len(item)
        out += item
        return
    if isinstance(item, list):
        out.append(LIST_START)
        for element in item:
            _encode_into(element, out)
        out.append(END)
        return
    if isinstance(item, dict):
        for key in item:
            if not isinstance(key, bytes):
                raise TypeError(f"Bencode dictionary keys must be bytes, got {type(key).__name__}")
        out.append(DICT_START)
        for key in sorted(item):
            _encode_into(key, out)
            _encode_into(item[key], out)
        out.append(END)
        return
    raise TypeError(f"Cannot bencode type: {type(item).__name__}")


class BencodeDecodingError(Exception):
    """Error during bencode decoding."""


def decode_bencode(data: bytes, max_depth: int = DEFAULT_MAX_DEPTH) -> BencodeItem:
    """
    Decode bencoded bytes.

    The whole input must be exactly one item.

    Args:
        data: Bencoded bytes.
        max_depth: Maximum nesting of lists and dictionaries.

    Returns:
        Decoded item (int, bytes, or nested list/dict).

    Raises:
        BencodeDecodingError: If data is malformed, non-canonical or nested too deeply.
    """
    if len(data) == 0:
        raise BencodeDecodingError("Empty bencode data")

    item, consumed = _decode_item(bytes(data), 0, max_depth)

    if consumed != len(data):
        raise BencodeDecodingError(f"Trailing data: decoded {consumed} of {len(data)} bytes")

    return item


def _decode_item(data: bytes, offset: int, depth: int) -> tuple[BencodeItem, int]:
    """
    Decode a single item starting at offset.

    Returns (decoded_item, offset_after_item).
    """
    if offset >= len(data):
        raise BencodeDecodingError("Unexpected end of data")

    marker = data[offset]

    if marker == INTEGER_START:
        return _decode_integer(data, offset + 1)

    if marker in _DIGITS:
        return _decode_bytes(data, offset)

    if marker == LIST_START or marker == DICT_START:
        if depth <= 0:
            raise BencodeDecodingError("Maximum nesting depth exceeded")
        if marker == LIST_START:
            return _decode_list(data, offset + 1, depth - 1)
        return _decode_dict(data, offset + 1, depth - 1)

    raise BencodeDecodingError(f"Invalid marker {marker:#04x} at offset {offset}")


def _decode_integer(data: bytes, start: int) -> tuple[int, int]:
    """Decode the body of `i<decimal>e` starting after the `i` marker."""
    end = data.find(END, start)
    if end == -1:
        raise BencodeDecodingError("Unterminated integer")

    digits = data[start:end]
    negative = digits.startswith(b"-")
    magnitude = digits[1:] if negative else digits

    if not magnitude or any(c not in _DIGITS for c in magnitude):
        raise BencodeDecodingError(f"Invalid integer {digits!r}")

    # Validate: single canonical form.
    if magnitude[0] == ord("0") and (len(magnitude) > 1 or negative):
        raise BencodeDecodingError(f"Non-canonical integer {digits!r}")

    return _to_int(digits), end + 1


def _decode_bytes(data: bytes, start: int) -> tuple[bytes, int]:
    """Decode `<length>:<bytes>` starting at the first length digit."""
    colon = data.find(LENGTH_SEPARATOR, start)
    if colon == -1:
        raise BencodeDecodingError("Unterminated byte string length")

    digits = data[start:colon]
    if any(c not in _DIGITS for c in digits):
        raise BencodeDecodingError(f"Invalid byte string length {digits!r}")

    # Validate: no leading zeros in length encoding.
    if len(digits) > 1 and digits[0] == ord("0"):
        raise BencodeDecodingError("Non-canonical: leading zeros in byte string length")

    length = _to_int(digits)
    payload_start = colon + 1
    payload_end = payload_start + length
    _check_bounds(data, payload_end)
    return data[payload_start:payload_end], payload_end


def _decode_list(data: bytes, start: int, depth: int) -> tuple[list[BencodeItem], int]:
    """Decode list items until the terminator."""
    items: list[BencodeItem] = []
    offset = start

    while True:
        if offset >= len(data):
            raise BencodeDecodingError("Unterminated list")
        if data[offset] == END:
            return items, offset + 1
        item, offset = _decode_item(data, offset, depth)
        items.append(item)


def _decode_dict(data: bytes, start: int, depth: int) -> tuple[dict[bytes, BencodeItem], int]:
    """
    Decode dictionary pairs until the terminator.

    Keys must be byte strings and must not repeat. Key order is not enforced,
    so peers that emit unsorted dictionaries are still understood.
    """
    result: dict[bytes, BencodeItem] = {}
    offset = start

    while True:
        if offset >= len(data):
            raise BencodeDecodingError("Unterminated dictionary")
        if data[offset] == END:
            return result, offset + 1
        if data[offset] not in _DIGITS:
            raise BencodeDecodingError(f"Dictionary key at offset {offset} is not a byte string")
        key, offset = _decode_bytes(data, offset)
        if key in result:
            raise BencodeDecodingError(f"Duplicate dictionary key {key!r}")
        value, offset = _decode_item(data, offset, depth)
        result[key] = value


def _to_int(digits: bytes) -> int:
    """Convert validated decimal digits, rejecting values too long to convert."""
    try:
        return int(digits)
    except ValueError as e:
        raise BencodeDecodingError(f"Integer too long: {len(digits)} digits") from e


def _check_bounds(data: bytes, end: int) -> None:
    """Verify end offset is within data bounds."""
    if end > len(data):
        raise BencodeDecodingError(f"Data too short: need {end}, have {len(data)}")
