"""Tests for caller locality checks."""

from __future__ import annotations

import pytest

from skillnet.core.access import AccessControl, is_loopback_address


@pytest.fixture
def access() -> AccessControl:
    return AccessControl(node_identity="node-self")


@pytest.mark.parametrize("caller", [None, "", "node-self", "local", "localhost"])
def test_local_callers(access, caller):
    assert access.is_local(caller) is True


@pytest.mark.parametrize("caller", ["peer-b", "LOCAL", "node-self-2"])
def test_remote_callers(access, caller):
    assert access.is_local(caller) is False


def test_http_transport_uses_peer_address(access):
    assert access.is_local("10.0.0.5", {"transport": "http", "peer": "127.0.0.1"}) is True
    assert access.is_local("local", {"transport": "http", "peer": "10.0.0.5"}) is False
    assert access.is_local("", {"transport": "http", "peer": ""}) is False


def test_loopback_addresses():
    assert is_loopback_address("127.0.0.1")
    assert is_loopback_address("::1")
    assert is_loopback_address("::ffff:127.0.0.1")
    assert not is_loopback_address("testclient")
    assert not is_loopback_address(None)
