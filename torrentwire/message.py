"""BitTorrent peer wire messages and extension protocol payloads."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, BinaryIO

from torrentwire.bitfield import BitField
from torrentwire.decoder import BencodeError, decode, decode_prefix
from torrentwire.encoder import encode

__all__ = [
    "MessageError",
    "MessageKind",
    "ExtensionID",
    "MetadataMsgType",
    "ExtHandshakeDict",
    "MetadataExtMsg",
    "Message",
    "decode_message",
    "EXT_METADATA_NAME",
    "MAX_MESSAGE_LENGTH",
]

MAX_MESSAGE_LENGTH = 256 * 1024
EXT_METADATA_NAME = "ut_metadata"


class MessageError(ValueError):
    """Raised when a peer wire message is malformed."""


class MessageKind(IntEnum):
    CHOKE = 0
    UNCHOKE = 1
    INTERESTED = 2
    NOT_INTERESTED = 3
    HAVE = 4
    BITFIELD = 5
    REQUEST = 6
    PIECE = 7
    CANCEL = 8
    PORT = 9
    # Keep-alive has no id in the protocol; this one is local only.
    KEEP_ALIVE = 10
    EXTENDED = 20

    def __str__(self) -> str:
        return _KIND_NAMES[self]


_KIND_NAMES = {
    MessageKind.CHOKE: "Choke",
    MessageKind.UNCHOKE: "Unchoke",
    MessageKind.INTERESTED: "Interested",
    MessageKind.NOT_INTERESTED: "NotInterested",
    MessageKind.HAVE: "Have",
    MessageKind.BITFIELD: "Bitfield",
    MessageKind.REQUEST: "Request",
    MessageKind.PIECE: "Piece",
    MessageKind.CANCEL: "Cancel",
    MessageKind.PORT: "Port",
    MessageKind.KEEP_ALIVE: "Keepalive",
    MessageKind.EXTENDED: "Extended",
}

_STATE_KINDS = (
    MessageKind.CHOKE,
    MessageKind.UNCHOKE,
    MessageKind.INTERESTED,
    MessageKind.NOT_INTERESTED,
)


class ExtensionID(IntEnum):
    HANDSHAKE = 0
    METADATA = 1


class MetadataMsgType(IntEnum):
    REQUEST = 0
    DATA = 1
    REJECT = 2


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ExtHandshakeDict(dict):
    """The dictionary of an extension protocol handshake."""

    def extensions(self) -> dict[str, int]:
        """The contents of the 'm' dictionary: extension name to message id."""
        if "m" not in self:
            raise MessageError("ext handshake doesn't contain 'm' dict")
        mapping = self["m"]
        if not isinstance(mapping, dict):
            raise MessageError("ext handshake's 'm' isn't dict")
        result: dict[str, int] = {}
        for name, ext_id in mapping.items():
            if not _is_int(ext_id):
                raise MessageError("value of 'm' dict isn't an integer")
            result[name] = ext_id
        return result

    def metadata_size(self) -> int | None:
        """The advertised metadata size, or None if absent or not an integer."""
        value = self.get("metadata_size")
        return value if _is_int(value) else None


@dataclass
class MetadataExtMsg:
    """A message of the metadata exchange extension."""

    kind: int
    piece: int
    total_size: int = 0
    data: bytes = b""

    def __post_init__(self) -> None:
        try:
            self.kind = MetadataMsgType(self.kind)
        except ValueError:
            pass


def _metadata_dict(msg: MetadataExtMsg) -> dict[str, int]:
    result = {"msg_type": int(msg.kind), "piece": msg.piece}
    if msg.total_size:
        result["total_size"] = msg.total_size
    return result


def _int_field(data: dict, key: str) -> int:
    value = data.get(key)
    if not _is_int(value):
        raise MessageError(f"metadata ext: missing or invalid {key!r}")
    return value


@dataclass
class Message:
    """A peer wire message."""

    kind: MessageKind
    index: int = 0
    begin: int = 0
    length: int = 0
    bitfield: BitField = field(default_factory=BitField)
    block: bytes = b""
    port: int = 0
    extended_id: int = 0
    extended_msg: Any = None

    def encode(self) -> bytes:
        """The message as sent on the wire, length prefix included."""
        try:
            kind = MessageKind(self.kind)
        except ValueError:
            raise MessageError(f"unknown kind of msg to send: {self.kind}") from None
        try:
            if kind is MessageKind.KEEP_ALIVE:
                payload = b""
            elif kind in _STATE_KINDS:
                payload = struct.pack(">B", kind)
            elif kind is MessageKind.HAVE:
                payload = struct.pack(">BI", kind, self.index)
            elif kind is MessageKind.BITFIELD:
                payload = struct.pack(">B", kind) + bytes(self.bitfield)
            elif kind in (MessageKind.REQUEST, MessageKind.CANCEL):
                payload = struct.pack(">BIII", kind, self.index, self.begin, self.length)
            elif kind is MessageKind.PIECE:
                payload = struct.pack(">BII", kind, self.index, self.begin) + bytes(self.block)
            elif kind is MessageKind.EXTENDED:
                payload = struct.pack(">BB", kind, self.extended_id) + self._extension_payload()
            else:
                payload = struct.pack(">BH", kind, self.port)
        except struct.error as exc:
            raise MessageError(f"write binary: {exc}") from exc
        return struct.pack(">I", len(payload)) + payload

    def _extension_payload(self) -> bytes:
        ext = self.extended_msg
        if isinstance(ext, MetadataExtMsg):
            return encode(_metadata_dict(ext)) + bytes(ext.data)
        return encode(ext)

    def request(self) -> Message:
        """The request message that this piece message answers."""
        if self.kind != MessageKind.PIECE:
            raise ValueError(f"expected a piece message, got {self.kind}")
        return Message(
            MessageKind.REQUEST,
            index=self.index,
            begin=self.begin,
            length=len(self.block),
        )


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


def _unpack(fmt: str, body: bytes) -> tuple[int, ...]:
    if len(body) < struct.calcsize(fmt):
        raise MessageError("read binary: message payload too short")
    return struct.unpack_from(fmt, body)


def _read_extension(ext_id: int, payload: bytes) -> Any:
    if ext_id == ExtensionID.HANDSHAKE:
        try:
            value = decode(payload)
        except BencodeError as exc:
            raise MessageError(f"ext handshake: {exc}") from exc
        if not isinstance(value, dict):
            raise MessageError("ext handshake is not a dictionary")
        return ExtHandshakeDict(value)
    if ext_id == ExtensionID.METADATA:
        try:
            value, end = decode_prefix(payload)
        except BencodeError as exc:
            raise MessageError(f"metadata ext: {exc}") from exc
        if not isinstance(value, dict):
            raise MessageError("metadata ext: payload is not a dictionary")
        total = value.get("total_size", 0)
        if not _is_int(total):
            raise MessageError("metadata ext: invalid 'total_size'")
        msg = MetadataExtMsg(
            kind=_int_field(value, "msg_type"),
            piece=_int_field(value, "piece"),
            total_size=total,
        )
        if end < len(payload):
            if msg.kind != MetadataMsgType.DATA:
                raise MessageError(f"Remaining length: {len(payload) - end}")
            msg.data = payload[end:]
        elif msg.kind == MetadataMsgType.DATA:
            raise MessageError("metadata ext: expected binary data")
        return msg
    raise MessageError("unknown extension id")


def decode_message(stream: BinaryIO) -> Message:
    """Read one message from a binary stream.

    Raises EOFError when the stream ends early and MessageError when the
    message is malformed.
    """
    (length,) = struct.unpack(">I", _read_exact(stream, 4))
    if length > MAX_MESSAGE_LENGTH:
        raise MessageError("peer wire: too long msg")
    if length == 0:
        return Message(MessageKind.KEEP_ALIVE)
    payload = _read_exact(stream, length)
    try:
        kind = MessageKind(payload[0])
    except ValueError:
        raise MessageError("unknown kind of msg") from None
    body = payload[1:]
    if kind in _STATE_KINDS:
        return Message(kind)
    if kind is MessageKind.HAVE:
        (index,) = _unpack(">I", body)
        return Message(kind, index=index)
    if kind is MessageKind.BITFIELD:
        return Message(kind, bitfield=BitField(body))
    if kind in (MessageKind.REQUEST, MessageKind.CANCEL):
        index, begin, size = _unpack(">III", body)
        return Message(kind, index=index, begin=begin, length=size)
    if kind is MessageKind.PIECE:
        index, begin = _unpack(">II", body)
        return Message(kind, index=index, begin=begin, block=bytes(body[8:]))
    if kind is MessageKind.PORT:
        (port,) = _unpack(">H", body)
        return Message(kind, port=port)
    if kind is MessageKind.EXTENDED:
        (ext_id,) = _unpack(">B", body)
        return Message(
            kind,
            extended_id=ext_id,
            extended_msg=_read_extension(ext_id, bytes(body[1:])),
        )
    raise MessageError("unknown kind of msg")