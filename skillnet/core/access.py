"""Caller locality checks for internal-tier skills.

Locality is a string comparison on the caller identity, not authentication.
Replacing it with a signed identity or a transport trust boundary is an open
gap; nothing here verifies who a caller really is.
"""

from __future__ import annotations

LOCAL_SENTINELS = frozenset({"local", "localhost"})
LOOPBACK_ADDRESSES = frozenset({"127.0.0.1", "::1", "::ffff:127.0.0.1"})


class AccessControl:
    def __init__(self, node_identity: str = "") -> None:
        self.node_identity = str(node_identity or "")

    def is_local(self, caller_id: str | None, transport_context: dict | None = None) -> bool:
        # HTTP callers are judged by the socket peer, not by a claimed identity
        if transport_context and transport_context.get("transport") == "http":
            return is_loopback_address(transport_context.get("peer"))

        caller = str(caller_id or "")
        if not caller:
            return True
        if self.node_identity and caller == self.node_identity:
            return True
        if caller in LOCAL_SENTINELS:
            return True
        return False


def is_loopback_address(host: str | None) -> bool:
    return str(host or "").strip() in LOOPBACK_ADDRESSES
