"""Tests for the public package surface."""

import importlib

import pytest

import krpc_message


@pytest.mark.parametrize("name", krpc_message.__all__)
def test_exported_name_resolves(name: str) -> None:
    assert getattr(krpc_message, name) is not None


@pytest.mark.parametrize(
    "module",
    [
        "krpc_message.codec",
        "krpc_message.compact",
        "krpc_message.config",
        "krpc_message.messages",
        "krpc_message.types",
    ],
)
def test_module_imports(module: str) -> None:
    assert importlib.import_module(module) is not None
