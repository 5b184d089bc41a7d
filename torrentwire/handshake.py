"""The BitTorrent handshake."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, BinaryIO

from torrentwire.reserved import Reserved

__all__ = ["HandshakeError", "HandShake", "read_handshake", "PROTOCOL"]

PROTOCOL = b"BitTorrent protocol"
_PREFIX = bytes([len(PROTOCOL)]) + PROTOCOL
_ZERO_HASH = bytes(20)


class HandshakeError(ValueError):
    """Raised when a handshake is malformed or does not match."""


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining:
        chunk = stream.read(remaining)
        if not chunk:
            raise EOFError("unexpected end of stream")
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def _check_id(value: bytes, what: str) -> bytes:
    value = bytes(value)
    if len(value) != 20:
        raise ValueError(f"{what} must be 20 bytes long")
    return value


@dataclass
class HandShake:
    """A handshake: reserved bytes, info hash and peer id."""

    reserved: Reserved = field(default_factory=Reserved)
    info_hash: bytes = _ZERO_HASH
    peer_id: bytes = _ZERO_HASH

    def __post_init__(self) -> None:
        if not isinstance(self.reserved, Reserved):
            self.reserved = Reserved(bytes(self.reserved))
        self.info_hash = _check_id(self.info_hash, "info hash")
        self.peer_id = _check_id(self.peer_id, "peer id")

    def do(self, stream: Any) -> HandShake:
        """Perform the handshake over a readable and writable binary stream.

        With an info hash set this side initiates; with a zero info hash it
        answers and takes the info hash from the remote side. Returns the
        remote handshake.
        """
        if self.info_hash != _ZERO_HASH:
            return self._initiate(stream)
        return self._receive(stream)

    def _initiate(self, stream: Any) -> HandShake:
        self.write(stream)
        theirs = read_handshake(stream)
        if theirs.info_hash != self.info_hash:
            raise HandshakeError(
                "hs initiate: info_hash response of peer doesn't match the client's"
            )
        return theirs

    def _receive(self, stream: Any) -> HandShake:
        theirs = _read_without_peer_id(stream)
        self.info_hash = theirs.info_hash
        self.write(stream)
        theirs.peer_id = _read_exact(stream, 20)
        return theirs

    def to_bytes(self) -> bytes:
        return _PREFIX + bytes(self.reserved) + self.info_hash + self.peer_id

    def write(self, stream: Any) -> None:
        """Send the handshake to stream."""
        stream.write(self.to_bytes())
        flush = getattr(stream, "flush", None)
        if flush is not None:
            flush()


def _read_without_peer_id(stream: BinaryIO) -> HandShake:
    prefix = _read_exact(stream, len(_PREFIX))
    if prefix != _PREFIX:
        raise HandshakeError("proto or protoLen are not the right one(s)")
    rest = _read_exact(stream, 28)
    return HandShake(reserved=Reserved(rest[:8]), info_hash=rest[8:])


def read_handshake(stream: BinaryIO) -> HandShake:
    """Read a complete handshake from stream."""
    hs = _read_without_peer_id(stream)
    hs.peer_id = _read_exact(stream, 20)
    return hs