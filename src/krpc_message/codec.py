"""
Message codec for KRPC.

Messages are bencoded dictionaries::

    query    = {t, y="q", q, a={id, ...}}
    response = {t, y="r", r={id, [nodes], [values], [token]}}
    error    = {t, y="e", e=[code, message]}

Decoding walks each dictionary once, decoding the keys it recognises and
skipping the rest, then checks that the required keys were seen. Any failure
is raised as a `KRPCDecodeError` whose context names the keys leading to the
offending value.

Encoding omits absent optional fields. Dictionary keys are emitted in sorted
order, so the output is a pure function of the message value.

References:
- https://www.bittorrent.org/beps/bep_0005.html#krpc-protocol
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from pydantic import ValidationError

from krpc_message.compact import (
    Node,
    Port,
    decode_address_list,
    decode_node_list,
    encode_address_list,
    encode_node_list,
)
from krpc_message.config import DEFAULT_CONFIG, TRANSACTION_ID_LENGTH, CodecConfig
from krpc_message.types import (
    BencodeDecodingError,
    BencodeItem,
    Hash,
    KRPCDecodeError,
    MalformedError,
    MessageEncodingError,
    MissingFieldError,
    decode_bencode,
    encode_bencode,
)

from .messages import (
    ErrorPayload,
    KRPCMessage,
    Message,
    MessageClass,
    QueryArgs,
    QueryKind,
    ResponseValues,
    TransactionId,
    from_envelope,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def encode_message(message: KRPCMessage | Message) -> bytes:
    """
    Encode a typed message or an envelope to bytes.

    Args:
        message: Message to encode.

    Returns:
        Bencoded message bytes.

    Raises:
        MessageEncodingError: If `message` is not a KRPC message, or its error
            text cannot be written as UTF-8.
    """
    if isinstance(message, Message):
        return encode_envelope(message)
    if isinstance(message, KRPCMessage):
        return encode_envelope(message.to_envelope())
    raise MessageEncodingError(f"Unknown message type: {type(message).__name__}")


def decode_message(data: bytes, config: CodecConfig = DEFAULT_CONFIG) -> KRPCMessage:
    """
    Decode bytes received from a peer into a typed message.

    Args:
        data: Bencoded message bytes.
        config: Decoding limits.

    Returns:
        The typed message.

    Raises:
        MissingFieldError: If a required key is absent.
        MalformedError: If a value has the wrong shape or range.
    """
    try:
        return from_envelope(decode_envelope(data, config))
    except KRPCDecodeError as e:
        logger.debug("Rejected KRPC message (%d bytes): %s", len(data), e)
        raise


# =============================================================================
# Envelope
# =============================================================================


def encode_envelope(message: Message) -> bytes:
    """Encode an envelope to bytes."""
    fields: dict[bytes, BencodeItem] = {
        b"t": message.transaction_id.to_bytes(),
        b"y": message.message_class.value,
    }
    if message.query_kind is not None:
        fields[b"q"] = message.query_kind.value
    if message.query_args is not None:
        fields[b"a"] = _encode_query_args(message.query_args)
    if message.response is not None:
        fields[b"r"] = _encode_response_values(message.response)
    if message.error is not None:
        fields[b"e"] = _encode_error_payload(message.error)
    return encode_bencode(fields)


def decode_envelope(data: bytes, config: CodecConfig = DEFAULT_CONFIG) -> Message:
    """
    Decode bytes into an envelope without applying per-query-kind rules.

    Raises:
        MissingFieldError: If `t`, `y`, or the payload required by `y` is absent.
        MalformedError: If the input is not a bencoded dictionary or a value is invalid.
    """
    try:
        item = decode_bencode(data, config.max_nesting_depth)
    except BencodeDecodingError as e:
        raise MalformedError(f"invalid bencode: {e}") from e

    seen = _walk_dict(_expect_dict(item), _ENVELOPE_DECODERS)

    if "t" not in seen:
        raise MissingFieldError("t")
    if "y" not in seen:
        raise MissingFieldError("y")

    message_class: MessageClass = seen["y"]
    payload: dict[str, Any] = {}

    if message_class is MessageClass.QUERY:
        if "q" not in seen:
            raise MissingFieldError("q")
        if "a" not in seen:
            raise MissingFieldError("a")
        payload = {"query_kind": seen["q"], "query_args": seen["a"]}
    elif message_class is MessageClass.RESPONSE:
        if "r" not in seen:
            raise MissingFieldError("r")
        payload = {"response": seen["r"]}
    else:
        if "e" not in seen:
            raise MissingFieldError("e")
        payload = {"error": seen["e"]}

    try:
        return Message(transaction_id=seen["t"], message_class=message_class, **payload)
    except ValidationError as e:
        raise MalformedError(f"invalid message: {e}") from e


def _decode_transaction_id(value: BencodeItem) -> TransactionId:
    data = _expect_bytes(value)
    if len(data) != TRANSACTION_ID_LENGTH:
        raise MalformedError(
            f"transaction id must be {TRANSACTION_ID_LENGTH} bytes, got {len(data)}"
        )
    return TransactionId.from_wire(data)


def _decode_message_class(value: BencodeItem) -> MessageClass:
    try:
        return MessageClass(_expect_bytes(value))
    except ValueError as e:
        raise MalformedError("'y' must be one of q/r/e") from e


def _decode_query_kind(value: BencodeItem) -> QueryKind:
    try:
        return QueryKind(_expect_bytes(value))
    except ValueError as e:
        raise MalformedError("'q' must be one of ping/find_node/get_peers/announce_peer") from e


# =============================================================================
# Query arguments
# =============================================================================


def _encode_query_args(args: QueryArgs) -> dict[bytes, BencodeItem]:
    fields: dict[bytes, BencodeItem] = {b"id": bytes(args.sender_id)}
    if args.implied_port is not None:
        fields[b"implied_port"] = int(args.implied_port)
    if args.info_hash is not None:
        fields[b"info_hash"] = bytes(args.info_hash)
    if args.port is not None:
        fields[b"port"] = int(args.port)
    if args.target is not None:
        fields[b"target"] = bytes(args.target)
    if args.token is not None:
        fields[b"token"] = args.token
    return fields


def _decode_query_args(value: BencodeItem) -> QueryArgs:
    seen = _walk_dict(_expect_dict(value), _QUERY_ARG_DECODERS)
    if "id" not in seen:
        raise MissingFieldError("id")
    return QueryArgs(
        sender_id=seen["id"],
        target=seen.get("target"),
        info_hash=seen.get("info_hash"),
        implied_port=seen.get("implied_port"),
        port=seen.get("port"),
        token=seen.get("token"),
    )


def _decode_implied_port(value: BencodeItem) -> bool:
    flag = _expect_int(value)
    if flag not in (0, 1):
        raise MalformedError(f"implied_port must be 0 or 1, got {flag}")
    return flag == 1


def _decode_port(value: BencodeItem) -> Port:
    number = _expect_int(value)
    if not 0 <= number <= Port.max_value():
        raise MalformedError(f"port {number} out of range 0..{Port.max_value()}")
    return Port(number)


# =============================================================================
# Response values
# =============================================================================


def _encode_response_values(values: ResponseValues) -> dict[bytes, BencodeItem]:
    fields: dict[bytes, BencodeItem] = {b"id": bytes(values.sender_id)}
    if values.nodes is not None:
        fields[b"nodes"] = encode_node_list(values.nodes)
    if values.token is not None:
        fields[b"token"] = values.token
    if values.values is not None:
        fields[b"values"] = encode_address_list(values.values)
    return fields


def _decode_response_values(value: BencodeItem) -> ResponseValues:
    seen = _walk_dict(_expect_dict(value), _RESPONSE_DECODERS)
    if "id" not in seen:
        raise MissingFieldError("id")
    return ResponseValues(
        sender_id=seen["id"],
        nodes=seen.get("nodes"),
        values=seen.get("values"),
        token=seen.get("token"),
    )


# =============================================================================
# Error payload
# =============================================================================


def _encode_error_payload(error: ErrorPayload) -> list[BencodeItem]:
    try:
        message = error.message.encode("utf-8")
    except UnicodeEncodeError as e:
        raise MessageEncodingError(f"error message is not encodable as UTF-8: {e}") from e
    return [error.code, message]


def _decode_error_payload(value: BencodeItem) -> ErrorPayload:
    items = _expect_list(value)
    if len(items) < 1:
        raise MissingFieldError("code")
    code = _decode_field("code", _expect_int, items[0])
    if len(items) < 2:
        raise MissingFieldError("message")
    message = _decode_field("message", _decode_text, items[1])
    return ErrorPayload(code=code, message=message)


def _decode_text(value: BencodeItem) -> str:
    try:
        return _expect_bytes(value).decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedError("expected UTF-8 text") from e


# =============================================================================
# Generic helpers
# =============================================================================


def _decode_hash(value: BencodeItem) -> Hash:
    return Hash.decode_bytes(_expect_bytes(value))


def _decode_nodes(value: BencodeItem) -> tuple[Node, ...]:
    return decode_node_list(_expect_bytes(value))


def _walk_dict(
    fields: dict[bytes, BencodeItem],
    decoders: dict[bytes, Callable[[BencodeItem], Any]],
) -> dict[str, Any]:
    """
    Decode every recognised key of `fields` in a single pass.

    Unknown keys are skipped. Returns the decoded values keyed by field name.
    """
    seen: dict[str, Any] = {}
    for key, value in fields.items():
        decoder = decoders.get(key)
        if decoder is None:
            continue
        name = key.decode("ascii")
        seen[name] = _decode_field(name, decoder, value)
    return seen


def _decode_field(name: str, decoder: Callable[[BencodeItem], T], value: BencodeItem) -> T:
    """Run `decoder` on `value`, tagging any decode error with `name`."""
    try:
        return decoder(value)
    except KRPCDecodeError as e:
        e.add_context(name)
        raise


_KIND_NAMES = {int: "integer", bytes: "byte string", list: "list", dict: "dictionary"}


def _kind(value: BencodeItem) -> str:
    return _KIND_NAMES.get(type(value), type(value).__name__)


def _expect_bytes(value: BencodeItem) -> bytes:
    if not isinstance(value, bytes):
        raise MalformedError(f"expected byte string, got {_kind(value)}")
    return value


def _expect_int(value: BencodeItem) -> int:
    if not isinstance(value, int):
        raise MalformedError(f"expected integer, got {_kind(value)}")
    return value


def _expect_list(value: BencodeItem) -> list[BencodeItem]:
    if not isinstance(value, list):
        raise MalformedError(f"expected list, got {_kind(value)}")
    return value


def _expect_dict(value: BencodeItem) -> dict[bytes, BencodeItem]:
    if not isinstance(value, dict):
        raise MalformedError(f"expected dictionary, got {_kind(value)}")
    return value


# =============================================================================
# Decoder tables
# =============================================================================

_ENVELOPE_DECODERS: dict[bytes, Callable[[BencodeItem], Any]] = {
    b"t": _decode_transaction_id,
    b"y": _decode_message_class,
    b"q": _decode_query_kind,
    b"a": _decode_query_args,
    b"r": _decode_response_values,
    b"e": _decode_error_payload,
}

_QUERY_ARG_DECODERS: dict[bytes, Callable[[BencodeItem], Any]] = {
    b"id": _decode_hash,
    b"implied_port": _decode_implied_port,
    b"info_hash": _decode_hash,
    b"port": _decode_port,
    b"target": _decode_hash,
    b"token": _expect_bytes,
}

_RESPONSE_DECODERS: dict[bytes, Callable[[BencodeItem], Any]] = {
    b"id": _decode_hash,
    b"nodes": _decode_nodes,
    b"token": _expect_bytes,
    b"values": decode_address_list,
}
