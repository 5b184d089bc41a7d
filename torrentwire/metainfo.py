"""Torrent metainfo files, info dictionaries and the parsers that produce them."""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO
from urllib.parse import parse_qs, urlsplit

from torrentwire.decoder import BencodeError, decode, get_value
from torrentwire.encoder import encode

__all__ = [
    "MetainfoError",
    "File",
    "InfoDict",
    "MetaInfo",
    "FileParser",
    "MagnetParser",
    "ReaderParser",
    "InfoHashParser",
    "load_metainfo_bytes",
    "load_metainfo_file",
    "parse_magnet",
]

PIECE_HASH_SIZE = 20
_XT_PREFIX = "urn:btih:"

_KIND_NAMES = {int: "integer", bytes: "string", list: "list", dict: "dictionary"}


class MetainfoError(ValueError):
    """Raised when metainfo is malformed or cannot be parsed."""


def _take(data: dict, key: str, kind: type, required: bool) -> Any:
    if key not in data:
        if required:
            raise MetainfoError(f"missing mandatory key {key!r}")
        return None
    value = data[key]
    if not isinstance(value, kind) or isinstance(value, bool):
        raise MetainfoError(f"key {key!r}: expected {_KIND_NAMES[kind]}")
    return value


def _text(raw: bytes) -> str:
    return raw.decode("utf-8", "surrogateescape")


def _text_list(items: list, key: str) -> list[str]:
    if not all(isinstance(item, bytes) for item in items):
        raise MetainfoError(f"key {key!r}: expected a list of strings")
    return [_text(item) for item in items]


def _require_dict(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise MetainfoError(f"{what} is not a dictionary")
    return value


@dataclass
class File:
    """One file of a multi-file torrent."""

    length: int
    path: list[str] = field(default_factory=list)
    md5sum: bytes = b""


def _file_from_dict(data: Any) -> File:
    data = _require_dict(data, "file entry")
    md5sum = _take(data, "md5sum", bytes, False)
    return File(
        length=_take(data, "length", int, True),
        path=_text_list(_take(data, "path", list, True), "path"),
        md5sum=md5sum if md5sum is not None else b"",
    )


def _file_to_dict(f: File) -> dict:
    result: dict[str, Any] = {"length": f.length, "path": list(f.path)}
    if f.md5sum:
        result["md5sum"] = f.md5sum
    return result


@dataclass
class InfoDict:
    """The info dictionary of a torrent."""

    files: list[File] | None = None
    length: int = 0
    md5sum: bytes = b""
    name: str = ""
    piece_len: int = 0
    pieces: bytes = b""
    private: int = 0
    info_hash: bytes = bytes(20)

    @classmethod
    def from_dict(cls, data: Any) -> InfoDict:
        """Build an InfoDict from a decoded bencode dictionary."""
        data = _require_dict(data, "info")
        files = _take(data, "files", list, False)
        md5sum = _take(data, "md5sum", bytes, False)
        name = _take(data, "name", bytes, False)
        return cls(
            files=[_file_from_dict(f) for f in files] if files is not None else None,
            length=_take(data, "length", int, False) or 0,
            md5sum=md5sum if md5sum is not None else b"",
            name=_text(name) if name is not None else "",
            piece_len=_take(data, "piece length", int, True),
            pieces=_take(data, "pieces", bytes, True),
            private=_take(data, "private", int, False) or 0,
        )

    def to_dict(self) -> dict:
        """Return the dictionary that this info dict bencodes to."""
        result: dict[str, Any] = {"piece length": self.piece_len, "pieces": self.pieces}
        if self.files:
            result["files"] = [_file_to_dict(f) for f in self.files]
        if self.length:
            result["length"] = self.length
        if self.md5sum:
            result["md5sum"] = self.md5sum
        if self.name:
            result["name"] = self.name
        if self.private:
            result["private"] = self.private
        return result

    def validate(self) -> None:
        """Raise MetainfoError if the piece hashes have the wrong length."""
        if len(self.pieces) % PIECE_HASH_SIZE:
            raise MetainfoError("info parse: SHA-1 hash of pieces has not the right length")

    def total_length(self) -> int:
        """Total size in bytes of all files."""
        if self.files is None:
            return self.length
        return sum(f.length for f in self.files)

    def num_pieces(self) -> int:
        return len(self.pieces) // PIECE_HASH_SIZE

    def piece_hashes(self) -> list[bytes]:
        """The SHA-1 hash of every piece, in order."""
        self.validate()
        return [
            self.pieces[start:start + PIECE_HASH_SIZE]
            for start in range(0, len(self.pieces), PIECE_HASH_SIZE)
        ]

    def piece_hash(self, i: int) -> bytes:
        if not 0 <= i < self.num_pieces():
            raise IndexError(f"piece index {i} out of range")
        return self.pieces[i * PIECE_HASH_SIZE:(i + 1) * PIECE_HASH_SIZE]

    def files_info(self) -> list[File]:
        """The files of the torrent; a single-file torrent yields one entry."""
        if not self.files:
            return [File(length=self.length)]
        return self.files

    def piece_length(self, i: int) -> int:
        if i == self.num_pieces() - 1:
            return self.total_length() % self.piece_len
        return self.piece_len

    def piece_offset(self, i: int) -> int:
        return self.piece_len * i


@dataclass
class MetaInfo:
    """The contents of a .torrent file."""

    announce: str = ""
    announce_list: list[list[str]] = field(default_factory=list)
    comment: str = ""
    created_by: str = ""
    creation_date: int = 0
    encoding: str = ""
    info: InfoDict | None = None
    info_bytes: bytes | None = None

    @classmethod
    def from_dict(cls, data: Any) -> MetaInfo:
        """Build a MetaInfo from a decoded bencode dictionary."""
        data = _require_dict(data, "metainfo")
        announce_list = _take(data, "announce-list", list, False) or []
        tiers = []
        for tier in announce_list:
            if not isinstance(tier, list):
                raise MetainfoError("key 'announce-list': expected a list of lists")
            tiers.append(_text_list(tier, "announce-list"))
        comment = _take(data, "comment", bytes, False)
        created_by = _take(data, "created by", bytes, False)
        encoding = _take(data, "encoding", bytes, False)
        return cls(
            announce=_text(_take(data, "announce", bytes, True)),
            announce_list=tiers,
            comment=_text(comment) if comment is not None else "",
            created_by=_text(created_by) if created_by is not None else "",
            creation_date=_take(data, "creation date", int, False) or 0,
            encoding=_text(encoding) if encoding is not None else "",
            info=InfoDict.from_dict(_take(data, "info", dict, True)),
        )

    def to_dict(self) -> dict:
        """Return the dictionary that this metainfo bencodes to."""
        result: dict[str, Any] = {
            "announce": self.announce,
            "info": self.info.to_dict() if self.info is not None else {},
        }
        if self.announce_list:
            result["announce-list"] = [list(tier) for tier in self.announce_list]
        if self.comment:
            result["comment"] = self.comment
        if self.created_by:
            result["created by"] = self.created_by
        if self.creation_date:
            result["creation date"] = self.creation_date
        if self.encoding:
            result["encoding"] = self.encoding
        return result

    def validate(self) -> None:
        if self.info is None:
            raise MetainfoError("metainfo parse: missing info dictionary")
        try:
            self.info.validate()
        except MetainfoError as exc:
            raise MetainfoError(f"metainfo parse: {exc}") from exc

    def create_torrent_file(self, filename: str | Path) -> None:
        """Write this metainfo, bencoded, to filename."""
        Path(filename).write_bytes(encode(self.to_dict()))


def load_metainfo_bytes(data: bytes) -> MetaInfo:
    """Parse the bytes of a .torrent file and compute its info hash."""
    raw = bytes(data)
    try:
        decoded = decode(raw)
        meta = MetaInfo.from_dict(decoded)
        meta.validate()
        info_bytes = get_value(raw, "info")
    except BencodeError as exc:
        raise MetainfoError(f"load metainfo: {exc}") from exc
    if info_bytes is None:
        raise MetainfoError("set info hash: key info doesn't exist in dict")
    meta.info_bytes = info_bytes
    meta.info.info_hash = hashlib.sha1(info_bytes).digest()
    return meta


def load_metainfo_file(filename: str | Path) -> MetaInfo:
    """Read and parse a .torrent file."""
    return load_metainfo_bytes(Path(filename).read_bytes())


def parse_magnet(uri: str) -> MetaInfo:
    """Return a MetaInfo holding only the info hash of a magnet link."""
    try:
        parts = urlsplit(uri)
    except ValueError as exc:
        raise MetainfoError(f"error parsing uri: {exc}") from exc
    if parts.scheme != "magnet":
        raise MetainfoError(f"unexpected scheme: {parts.scheme!r}")
    xt = parse_qs(parts.query, keep_blank_values=True).get("xt", [""])[0]
    if not xt.startswith(_XT_PREFIX):
        raise MetainfoError("bad xt parameter")
    encoded = xt[len(_XT_PREFIX):]
    try:
        if len(encoded) == 40:
            info_hash = bytes.fromhex(encoded)
        elif len(encoded) == 32:
            info_hash = base64.b32decode(encoded)
        else:
            raise MetainfoError(
                f"unhandled xt parameter encoding: encoded length {len(encoded)}"
            )
    except ValueError as exc:
        if isinstance(exc, MetainfoError):
            raise
        raise MetainfoError(f"error decoding xt: {exc}") from exc
    return MetaInfo(info=InfoDict(info_hash=info_hash))


@dataclass(frozen=True)
class FileParser:
    """Parses a .torrent file."""

    filename: str | Path

    def parse(self) -> MetaInfo:
        return load_metainfo_file(self.filename)


@dataclass(frozen=True)
class MagnetParser:
    """Parses a magnet URI."""

    uri: str

    def parse(self) -> MetaInfo:
        return parse_magnet(self.uri)


@dataclass(frozen=True)
class ReaderParser:
    """Parses the bytes read from a binary stream until its end."""

    reader: BinaryIO

    def parse(self) -> MetaInfo:
        return load_metainfo_bytes(self.reader.read())


@dataclass(frozen=True)
class InfoHashParser:
    """Builds a MetaInfo from a bare info hash."""

    info_hash: bytes

    def __post_init__(self) -> None:
        if len(self.info_hash) != 20:
            raise ValueError("info hash must be 20 bytes long")

    def parse(self) -> MetaInfo:
        return MetaInfo(info=InfoDict(info_hash=bytes(self.info_hash)))