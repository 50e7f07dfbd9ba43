"""
KRPC Protocol Messages

Every KRPC message is a bencoded dictionary::

    t = transaction id (2 raw bytes, echoed by the responder)
    y = message class  ("q" query, "r" response, "e" error)
    q = query name     (queries only)
    a = query arguments    (y == "q")
    r = response values    (y == "r")
    e = [code, message]    (y == "e")

Two views of a message are defined here:

- `Message`: the envelope. A direct projection of the wire dictionary, with
  the payload slots that the message class does not use left empty.
- The typed variants (`Ping`, `FindNode`, `GetPeers`, `AnnouncePeer`,
  `Response`, `Error`): one class per case, each holding only the fields its
  case requires. Required-field checks happen when converting an envelope
  into a variant.

References:
    - https://www.bittorrent.org/beps/bep_0005.html#krpc-protocol
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar, TypeVar

from pydantic import Field, model_validator
from typing_extensions import Self

from krpc_message.compact import CompactAddress, Node, Port
from krpc_message.types import Hash, MissingFieldError, StrictBaseModel
from krpc_message.types.uint import Uint16

TransactionId = Uint16
"""Transaction id. Carried on the wire as 2 big-endian bytes."""

T = TypeVar("T")


class MessageClass(Enum):
    """Value of the `y` key."""

    QUERY = b"q"
    RESPONSE = b"r"
    ERROR = b"e"


class QueryKind(Enum):
    """Value of the `q` key."""

    PING = b"ping"
    """Liveness check. a = {id}."""

    FIND_NODE = b"find_node"
    """Ask for the nodes closest to a target. a = {id, target}."""

    GET_PEERS = b"get_peers"
    """Ask for peers of a torrent. a = {id, info_hash}."""

    ANNOUNCE_PEER = b"announce_peer"
    """Announce a peer for a torrent. a = {id, info_hash, port, token, [implied_port]}."""


# =============================================================================
# Payloads
# =============================================================================


class QueryArgs(StrictBaseModel):
    """
    Query arguments (`a`).

    Only `id` is required at this level. Which of the optional fields must be
    present depends on the query kind and is checked by the typed variants.
    """

    sender_id: Hash
    """`id`: the querying node's id."""

    target: Hash | None = None
    """`target`: node id searched for by find_node."""

    info_hash: Hash | None = None
    """`info_hash`: torrent searched for by get_peers or announced by announce_peer."""

    implied_port: bool | None = None
    """`implied_port`: use the UDP source port instead of `port` (announce_peer)."""

    port: Port | None = None
    """`port`: the announced peer port (announce_peer)."""

    token: bytes | None = None
    """`token`: opaque value previously received in a get_peers response."""


class ResponseValues(StrictBaseModel):
    """
    Response values (`r`).

    By convention a get_peers response carries either `nodes` or `values`,
    never both. That is the caller's policy and is not enforced here.
    """

    sender_id: Hash
    """`id`: the responding node's id."""

    nodes: tuple[Node, ...] | None = Field(default=None, strict=False)
    """`nodes`: closest known nodes, compact-packed."""

    values: tuple[CompactAddress, ...] | None = Field(default=None, strict=False)
    """`values`: peers for the requested torrent."""

    token: bytes | None = None
    """`token`: write token for a later announce_peer."""


class ErrorPayload(StrictBaseModel):
    """Error payload (`e`): `[code, message]`."""

    code: int
    """Error code, e.g. 201 generic, 202 server, 203 protocol, 204 method unknown."""

    message: str
    """Human-readable description."""


# =============================================================================
# Envelope
# =============================================================================


class Message(StrictBaseModel):
    """
    The KRPC envelope.

    `message_class` decides which payload slot is filled:

    - QUERY: `query_kind` and `query_args`
    - RESPONSE: `response`
    - ERROR: `error`

    Every other slot must be empty.
    """

    transaction_id: TransactionId
    """`t`: correlation id chosen by the querying node."""

    message_class: MessageClass
    """`y`: query, response or error."""

    query_kind: QueryKind | None = None
    """`q`: the query name."""

    query_args: QueryArgs | None = None
    """`a`: the query arguments."""

    response: ResponseValues | None = None
    """`r`: the response values."""

    error: ErrorPayload | None = None
    """`e`: the error payload."""

    @model_validator(mode="after")
    def _check_payload_matches_class(self) -> Self:
        """Ensure exactly the payload slots of `message_class` are populated."""
        populated = {
            "query_kind": self.query_kind is not None,
            "query_args": self.query_args is not None,
            "response": self.response is not None,
            "error": self.error is not None,
        }
        expected = _PAYLOAD_SLOTS[self.message_class]
        for slot, present in populated.items():
            if present and slot not in expected:
                raise ValueError(f"{self.message_class.name} message must not carry {slot}")
            if not present and slot in expected:
                raise ValueError(f"{self.message_class.name} message requires {slot}")
        return self


_PAYLOAD_SLOTS: dict[MessageClass, frozenset[str]] = {
    MessageClass.QUERY: frozenset({"query_kind", "query_args"}),
    MessageClass.RESPONSE: frozenset({"response"}),
    MessageClass.ERROR: frozenset({"error"}),
}


# =============================================================================
# Typed Messages
# =============================================================================


class _Query(StrictBaseModel):
    """Common shape of the four query variants."""

    QUERY_KIND: ClassVar[QueryKind]

    transaction_id: TransactionId
    """`t`: correlation id echoed by the responder."""

    sender_id: Hash
    """`a.id`: the querying node's id."""

    def to_query_args(self) -> QueryArgs:
        """Project this query onto the generic `a` dictionary."""
        return QueryArgs(sender_id=self.sender_id)

    @classmethod
    def from_query_args(cls, transaction_id: TransactionId, args: QueryArgs) -> Self:
        """
        Build the variant from a decoded `a` dictionary.

        Raises:
            MissingFieldError: If an argument required by this query kind is absent.
        """
        return cls(transaction_id=transaction_id, sender_id=args.sender_id)

    def to_envelope(self) -> Message:
        return Message(
            transaction_id=self.transaction_id,
            message_class=MessageClass.QUERY,
            query_kind=self.QUERY_KIND,
            query_args=self.to_query_args(),
        )


def _require(value: T | None, field: str) -> T:
    """Return `value`, or raise the missing-field error for `a.<field>`."""
    if value is None:
        raise MissingFieldError(field, context=("a",))
    return value


class Ping(_Query):
    """
    ping query.

    Wire format:
        a = {id}
    """

    QUERY_KIND: ClassVar[QueryKind] = QueryKind.PING


class FindNode(_Query):
    """
    find_node query.

    Wire format:
        a = {id, target}
    """

    QUERY_KIND: ClassVar[QueryKind] = QueryKind.FIND_NODE

    target: Hash
    """Node id whose closest known nodes are requested."""

    def to_query_args(self) -> QueryArgs:
        return QueryArgs(sender_id=self.sender_id, target=self.target)

    @classmethod
    def from_query_args(cls, transaction_id: TransactionId, args: QueryArgs) -> Self:
        return cls(
            transaction_id=transaction_id,
            sender_id=args.sender_id,
            target=_require(args.target, "target"),
        )


class GetPeers(_Query):
    """
    get_peers query.

    Wire format:
        a = {id, info_hash}
    """

    QUERY_KIND: ClassVar[QueryKind] = QueryKind.GET_PEERS

    info_hash: Hash
    """Torrent whose peers are requested."""

    def to_query_args(self) -> QueryArgs:
        return QueryArgs(sender_id=self.sender_id, info_hash=self.info_hash)

    @classmethod
    def from_query_args(cls, transaction_id: TransactionId, args: QueryArgs) -> Self:
        return cls(
            transaction_id=transaction_id,
            sender_id=args.sender_id,
            info_hash=_require(args.info_hash, "info_hash"),
        )


class AnnouncePeer(_Query):
    """
    announce_peer query.

    Wire format:
        a = {id, info_hash, port, token, [implied_port]}

    When `implied_port` is true the receiver should ignore `port` and use
    the UDP source port of the query instead.
    """

    QUERY_KIND: ClassVar[QueryKind] = QueryKind.ANNOUNCE_PEER

    info_hash: Hash
    """Torrent the sender is announcing itself for."""

    port: Port
    """Port the sender accepts peer connections on."""

    token: bytes
    """Token from an earlier get_peers response of the receiver."""

    implied_port: bool | None = None
    """Optional flag; omitted from the wire when None."""

    def to_query_args(self) -> QueryArgs:
        return QueryArgs(
            sender_id=self.sender_id,
            info_hash=self.info_hash,
            implied_port=self.implied_port,
            port=self.port,
            token=self.token,
        )

    @classmethod
    def from_query_args(cls, transaction_id: TransactionId, args: QueryArgs) -> Self:
        return cls(
            transaction_id=transaction_id,
            sender_id=args.sender_id,
            info_hash=_require(args.info_hash, "info_hash"),
            port=_require(args.port, "port"),
            token=_require(args.token, "token"),
            implied_port=args.implied_port,
        )


class Response(StrictBaseModel):
    """
    Response to any query.

    Wire format:
        r = {id, [nodes], [values], [token]}
    """

    transaction_id: TransactionId
    """`t`: echoed from the query."""

    sender_id: Hash
    """`r.id`: the responding node's id."""

    nodes: tuple[Node, ...] | None = Field(default=None, strict=False)
    """Closest known nodes (find_node, get_peers)."""

    values: tuple[CompactAddress, ...] | None = Field(default=None, strict=False)
    """Peers for the torrent (get_peers)."""

    token: bytes | None = None
    """Write token (get_peers)."""

    def to_envelope(self) -> Message:
        return Message(
            transaction_id=self.transaction_id,
            message_class=MessageClass.RESPONSE,
            response=ResponseValues(
                sender_id=self.sender_id,
                nodes=self.nodes,
                values=self.values,
                token=self.token,
            ),
        )


class Error(StrictBaseModel):
    """
    Error reply.

    Wire format:
        e = [code, message]
    """

    transaction_id: TransactionId
    """`t`: echoed from the query."""

    code: int
    """Error code."""

    message: str
    """Human-readable description."""

    def to_envelope(self) -> Message:
        return Message(
            transaction_id=self.transaction_id,
            message_class=MessageClass.ERROR,
            error=ErrorPayload(code=self.code, message=self.message),
        )


KRPCMessage = Ping | FindNode | GetPeers | AnnouncePeer | Response | Error
"""Union of all typed KRPC messages."""

QUERY_TYPES: dict[QueryKind, type[_Query]] = {
    QueryKind.PING: Ping,
    QueryKind.FIND_NODE: FindNode,
    QueryKind.GET_PEERS: GetPeers,
    QueryKind.ANNOUNCE_PEER: AnnouncePeer,
}
"""Typed variant for each query name."""


def from_envelope(envelope: Message) -> KRPCMessage:
    """
    Convert an envelope into its typed variant.

    Raises:
        MissingFieldError: If a field required by the query kind is absent.
        ValueError: If the envelope's payload does not match its message class.
            Only possible for envelopes built without validation.
    """
    if envelope.message_class is MessageClass.QUERY:
        if envelope.query_kind is None or envelope.query_args is None:
            raise ValueError("QUERY envelope without query_kind and query_args")
        query_type = QUERY_TYPES[envelope.query_kind]
        return query_type.from_query_args(envelope.transaction_id, envelope.query_args)

    if envelope.message_class is MessageClass.RESPONSE:
        if envelope.response is None:
            raise ValueError("RESPONSE envelope without response")
        r = envelope.response
        return Response(
            transaction_id=envelope.transaction_id,
            sender_id=r.sender_id,
            nodes=r.nodes,
            values=r.values,
            token=r.token,
        )

    if envelope.error is None:
        raise ValueError("ERROR envelope without error")
    return Error(
        transaction_id=envelope.transaction_id,
        code=envelope.error.code,
        message=envelope.error.message,
    )
