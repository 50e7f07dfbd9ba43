"""
Compact Peer and Node Formats

Fixed-width binary packings used inside KRPC payloads.

Layouts::

    compact address = ip (4 bytes) || port (2 bytes, big-endian)          6 bytes
    compact node    = node id (20 bytes) || compact address (6 bytes)     26 bytes

A `nodes` value is the plain concatenation of compact nodes, so its length
must be a multiple of 26. A `values` value is a bencode list in which every
element is one 6-byte compact address.

Only IPv4 is supported.

References:
    - https://www.bittorrent.org/beps/bep_0005.html#contact-encoding
"""

from __future__ import annotations

from ipaddress import IPv4Address
from typing import Iterable

from typing_extensions import Self

from krpc_message.config import COMPACT_ADDRESS_LENGTH, COMPACT_NODE_LENGTH, HASH_LENGTH
from krpc_message.types import BencodeItem, Hash, KRPCDecodeError, MalformedError, StrictBaseModel
from krpc_message.types.uint import Uint16

Port = Uint16
"""UDP/TCP port number (0-65535)."""

SocketAddress = tuple[str, int]
"""Native IPv4 socket address, as used by the `socket` and `asyncio` modules."""


class CompactAddress(StrictBaseModel):
    """
    An IPv4 socket address in its 6-byte compact form.

    Converts to and from the native `(host, port)` tuple.
    """

    ip: IPv4Address
    """IPv4 address. Packed as 4 octets in network order."""

    port: Port
    """Port number. Packed as 2 bytes, big-endian."""

    @classmethod
    def from_socket_address(cls, address: SocketAddress) -> Self:
        """Build from a `(host, port)` tuple."""
        host, port = address
        return cls(ip=IPv4Address(host), port=Port(port))

    @classmethod
    def parse(cls, text: str) -> Self:
        """
        Build from an `"a.b.c.d:port"` string.

        Raises:
            ValueError: If the host or port is invalid.
        """
        host, sep, port = text.rpartition(":")
        if not sep:
            raise ValueError(f"Missing port in address {text!r}")
        try:
            port_number = Port(int(port))
        except OverflowError as e:
            raise ValueError(str(e)) from e
        return cls(ip=IPv4Address(host), port=port_number)

    def to_socket_address(self) -> SocketAddress:
        """Return the native `(host, port)` tuple."""
        return str(self.ip), int(self.port)

    def encode_bytes(self) -> bytes:
        """Return the 6-byte compact form."""
        return self.ip.packed + self.port.to_bytes()

    @classmethod
    def decode_bytes(cls, data: bytes) -> Self:
        """
        Parse the 6-byte compact form.

        Raises:
            MalformedError: If `data` is not exactly 6 bytes.
        """
        if len(data) != COMPACT_ADDRESS_LENGTH:
            raise MalformedError(
                f"compact address must be {COMPACT_ADDRESS_LENGTH} bytes, got {len(data)}"
            )
        return cls(ip=IPv4Address(data[:4]), port=Port.from_wire(data[4:]))

    def __str__(self) -> str:
        return f"{self.ip}:{self.port}"


class Node(StrictBaseModel):
    """A DHT node: its id and where to reach it."""

    id: Hash
    """The node's 160-bit identifier."""

    address: CompactAddress
    """The node's UDP endpoint."""

    def encode_bytes(self) -> bytes:
        """Return the 26-byte compact form (id first, address second)."""
        return self.id.encode_bytes() + self.address.encode_bytes()

    @classmethod
    def decode_bytes(cls, data: bytes) -> Self:
        """
        Parse the 26-byte compact form.

        Raises:
            MalformedError: If `data` is not exactly 26 bytes.
        """
        if len(data) != COMPACT_NODE_LENGTH:
            raise MalformedError(
                f"compact node must be {COMPACT_NODE_LENGTH} bytes, got {len(data)}"
            )
        return cls(
            id=Hash.decode_bytes(data[:HASH_LENGTH]),
            address=CompactAddress.decode_bytes(data[HASH_LENGTH:]),
        )


def encode_node_list(nodes: Iterable[Node]) -> bytes:
    """Concatenate compact nodes, preserving order."""
    return b"".join(node.encode_bytes() for node in nodes)


def decode_node_list(data: bytes) -> tuple[Node, ...]:
    """
    Split concatenated compact nodes.

    Raises:
        MalformedError: If the length is not a multiple of 26.
    """
    if len(data) % COMPACT_NODE_LENGTH != 0:
        raise MalformedError(
            f"node list length {len(data)} is not a multiple of {COMPACT_NODE_LENGTH}"
        )
    nodes = []
    for index, start in enumerate(range(0, len(data), COMPACT_NODE_LENGTH)):
        try:
            nodes.append(Node.decode_bytes(data[start : start + COMPACT_NODE_LENGTH]))
        except KRPCDecodeError as e:
            e.add_context(str(index))
            raise
    return tuple(nodes)


def encode_address_list(addresses: Iterable[CompactAddress]) -> list[BencodeItem]:
    """Return the bencode list of 6-byte strings, preserving order."""
    return [address.encode_bytes() for address in addresses]


def decode_address_list(items: BencodeItem) -> tuple[CompactAddress, ...]:
    """
    Parse a bencode list of 6-byte compact addresses.

    Raises:
        MalformedError: If `items` is not a list, or an element is not a 6-byte string.
    """
    if not isinstance(items, list):
        raise MalformedError(f"expected list, got {type(items).__name__}")
    addresses = []
    for index, item in enumerate(items):
        try:
            if not isinstance(item, bytes):
                raise MalformedError(f"expected byte string, got {type(item).__name__}")
            addresses.append(CompactAddress.decode_bytes(item))
        except KRPCDecodeError as e:
            e.add_context(str(index))
            raise
    return tuple(addresses)
