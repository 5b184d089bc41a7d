"""Peers and the local peer id."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import IntEnum

from torrentwire.netutil import IPAddress, parse_addr

__all__ = ["PeerSource", "Peer", "new_peer_id", "addr_to_peer", "CLIENT_ID", "VERSION"]

CLIENT_ID = "CH"
VERSION = "0001"


class PeerSource(IntEnum):
    """Where we learnt about a peer."""

    USER = 0
    INCOMING = 1
    DHT = 2
    TRACKER = 3


@dataclass(frozen=True)
class Peer:
    """Basic information about a peer."""

    ip: IPAddress
    port: int
    peer_id: bytes | None = None
    source: PeerSource = PeerSource.USER

    def __str__(self) -> str:
        if self.ip.version == 6:
            return f"[{self.ip}]:{self.port}"
        return f"{self.ip}:{self.port}"


def new_peer_id() -> bytes:
    """A 20-byte peer id: client prefix followed by 12 random bytes."""
    prefix = f"-{CLIENT_ID}{VERSION}-".encode("ascii")
    return prefix + os.urandom(12)


def addr_to_peer(address: str, source: PeerSource) -> Peer:
    """A peer from a "host:port" address."""
    ap = parse_addr(address)
    return Peer(ip=ap.ip, port=ap.port, source=PeerSource(source))