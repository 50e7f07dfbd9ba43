"""
Shared pytest fixtures for KRPC codec tests.

The constants reproduce the example exchanges of BEP 5.
"""

from __future__ import annotations

import pytest

from krpc_message import CompactAddress, Hash, Node

SENDER_ID = Hash(b"abcdefghij0123456789")
"""Querying/responding node id used by BEP 5 examples."""

TARGET_ID = Hash(b"mnopqrstuvwxyz123456")
"""Target node id / info hash used by BEP 5 examples."""

OTHER_ID = Hash(b"11111111111111111111")
"""A second node id for node lists."""

TRANSACTION_ID = 24929
"""The transaction id b"aa" read as a big-endian integer."""

PEER_A = CompactAddress.parse("65.66.67.68:24929")
"""Packs to b"ABCDaa"."""

PEER_B = CompactAddress.parse("69.70.71.72:24929")
"""Packs to b"EFGHaa"."""


@pytest.fixture
def sender_id() -> Hash:
    """The BEP 5 example sender id."""
    return SENDER_ID


@pytest.fixture
def two_nodes() -> tuple[Node, Node]:
    """Two nodes whose compact encoding is printable ASCII."""
    return (
        Node(id=TARGET_ID, address=PEER_A),
        Node(id=OTHER_ID, address=PEER_B),
    )
