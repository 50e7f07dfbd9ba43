"""Unsigned Integer Type Tests."""

from typing import Any

import pytest
from pydantic import ValidationError, create_model

from krpc_message.types import Uint16


@pytest.mark.parametrize("value", [0, 1, 6881, 65535])
def test_accepts_in_range(value: int) -> None:
    assert Uint16(value) == value


@pytest.mark.parametrize("value", [-1, 65536, 2**32])
def test_rejects_out_of_range(value: int) -> None:
    with pytest.raises(OverflowError):
        Uint16(value)


@pytest.mark.parametrize("value", [1.0, "1", True, None])
def test_rejects_non_integers(value: Any) -> None:
    with pytest.raises(TypeError):
        Uint16(value)


def test_max_value() -> None:
    assert Uint16.max_value() == 65535


def test_to_bytes_is_big_endian_by_default() -> None:
    assert Uint16(24929).to_bytes() == b"aa"
    assert Uint16(1).to_bytes() == b"\x00\x01"
    assert Uint16(1).to_bytes(byteorder="little") == b"\x01\x00"


def test_from_wire() -> None:
    assert Uint16.from_wire(b"aa") == 24929
    assert isinstance(Uint16.from_wire(b"\xff\xff"), Uint16)


@pytest.mark.parametrize("data", [b"", b"a", b"aaa"])
def test_from_wire_rejects_wrong_length(data: bytes) -> None:
    with pytest.raises(ValueError, match="expects exactly 2 bytes"):
        Uint16.from_wire(data)


def test_str_and_repr() -> None:
    assert str(Uint16(6881)) == "6881"
    assert f"{Uint16(6881)}" == "6881"
    assert repr(Uint16(6881)) == "Uint16(6881)"


def test_pydantic_validation() -> None:
    model = create_model("Model", value=(Uint16, ...))
    instance: Any = model(value=10)
    assert isinstance(instance.value, Uint16)
    with pytest.raises(ValidationError):
        model(value=70000)
    with pytest.raises(ValidationError):
        model(value=True)
