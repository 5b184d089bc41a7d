"""Decoding of bencoded data and raw lookup of dictionary values."""

from __future__ import annotations

import re
from typing import Any, Union

__all__ = [
    "BencodeError",
    "IncompatibleTypesError",
    "LargeBufferError",
    "UnknownValueError",
    "NotADictError",
    "decode",
    "decode_prefix",
    "get_value",
]

BencodeValue = Union[int, bytes, list, dict]

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_INT_RE = re.compile(rb"[+-]?[0-9]+\Z")
_LEN_RE = re.compile(rb"[0-9]+\Z")

_I, _L, _D, _E, _COLON = b"i"[0], b"l"[0], b"d"[0], b"e"[0], b":"[0]
_ZERO, _NINE = b"0"[0], b"9"[0]

_ELEMENT_NAMES = {_I: "integer", _L: "list", _D: "dictionary"}


class BencodeError(ValueError):
    """Raised when data is not valid bencode."""


class IncompatibleTypesError(BencodeError):
    """A bencoded element has a different type than the one expected."""

    def __init__(self, benc_type: str, data_type: str) -> None:
        self.benc_type = benc_type
        self.data_type = data_type
        super().__init__(
            f"bencType has {benc_type} type while dataType is {data_type}"
        )


class LargeBufferError(BencodeError):
    """Bytes remain after a complete bencoded value."""

    def __init__(self, remaining_len: int) -> None:
        self.remaining_len = remaining_len
        super().__init__(f"Remaining length: {remaining_len}")


class UnknownValueError(BencodeError):
    """A bencoded element starts with a byte that no element starts with."""

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(f"unknown bencoded element starting with {symbol}")


class NotADictError(BencodeError):
    """The data is not a bencoded dictionary."""

    def __init__(self) -> None:
        super().__init__("data is not a bencoded dictionary")


def _is_digit(byte: int) -> bool:
    return _ZERO <= byte <= _NINE


def _element_name(byte: int) -> str:
    if byte in _ELEMENT_NAMES:
        return _ELEMENT_NAMES[byte]
    if _is_digit(byte):
        return "string"
    raise UnknownValueError(chr(byte))


def _as_bytes(data: Any) -> bytes:
    if isinstance(data, str):
        raise TypeError("bencoded data must be bytes-like, not str")
    return bytes(data)


def _eof() -> BencodeError:
    return BencodeError("unexpected end of data")


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def _peek(self) -> int:
        if self.pos >= len(self.data):
            raise _eof()
        return self.data[self.pos]

    def value(self) -> BencodeValue:
        byte = self._peek()
        if byte == _I:
            return self._integer()
        if _is_digit(byte):
            return self._string()
        if byte == _L:
            return self._list()
        if byte == _D:
            return self._dict()
        raise UnknownValueError(chr(byte))

    def _integer(self) -> int:
        self.pos += 1
        end = self.data.find(b"e", self.pos)
        if end < 0:
            raise _eof()
        text = self.data[self.pos:end]
        if not _INT_RE.match(text):
            raise BencodeError(f"invalid integer {text!r}")
        number = int(text)
        if not _INT64_MIN <= number <= _INT64_MAX:
            raise BencodeError(f"integer {text!r} out of range")
        self.pos = end + 1
        return number

    def _string(self) -> bytes:
        colon = self.data.find(b":", self.pos)
        if colon < 0:
            raise _eof()
        text = self.data[self.pos:colon]
        if not _LEN_RE.match(text):
            raise BencodeError(f"invalid string length {text!r}")
        length = int(text)
        start = colon + 1
        end = start + length
        if end > len(self.data):
            raise BencodeError(
                "length of bencoded string does not correspond to his actual length"
            )
        self.pos = end
        return self.data[start:end]

    def _at_end(self) -> bool:
        if self._peek() == _E:
            self.pos += 1
            return True
        return False

    def _list(self) -> list:
        self.pos += 1
        items = []
        while not self._at_end():
            items.append(self.value())
        return items

    def _dict(self) -> dict:
        self.pos += 1
        result: dict = {}
        while not self._at_end():
            byte = self._peek()
            if not _is_digit(byte):
                raise IncompatibleTypesError(_element_name(byte), "string")
            key = self._string().decode("utf-8", "surrogateescape")
            result[key] = self.value()
        return result


def decode_prefix(data: bytes) -> tuple[BencodeValue, int]:
    """Decode the first bencoded value in data.

    Returns the value and the offset just past it; trailing bytes are allowed.
    """
    reader = _Reader(_as_bytes(data))
    value = reader.value()
    return value, reader.pos


def decode(data: bytes) -> BencodeValue:
    """Decode a single bencoded value that fills all of data.

    Integers become int, strings bytes, lists list and dictionaries dict
    with str keys (UTF-8, undecodable bytes kept as surrogates).
    """
    raw = _as_bytes(data)
    value, end = decode_prefix(raw)
    if end < len(raw):
        raise LargeBufferError(len(raw) - end)
    return value


def _skip(data: bytes, pos: int) -> int:
    """Return the offset just past the element starting at pos."""
    if pos >= len(data):
        raise _eof()
    byte = data[pos]
    if byte in (_L, _D):
        pos += 1
        while True:
            if pos >= len(data):
                raise _eof()
            if data[pos] == _E:
                return pos + 1
            pos = _skip(data, pos)
    if byte == _I:
        end = data.find(b"e", pos + 1)
        if end < 0:
            raise _eof()
        return end + 1
    if _is_digit(byte):
        colon = data.find(b":", pos)
        if colon < 0:
            raise _eof()
        text = data[pos:colon]
        if not _LEN_RE.match(text):
            raise BencodeError(f"invalid string length {text!r}")
        end = colon + 1 + int(text)
        if end > len(data):
            raise _eof()
        return end
    if byte == _E:
        raise BencodeError("unexpected end marker")
    raise UnknownValueError(chr(byte))


def get_value(data: bytes, target_key: Union[str, bytes]) -> bytes | None:
    """Return the raw bencoded value of target_key in a bencoded dictionary.

    Returns None when the key is absent.
    """
    raw = _as_bytes(data)
    if len(raw) < 2 or raw[0] != _D or raw[-1] != _E:
        raise NotADictError()
    if isinstance(target_key, str):
        target = target_key.encode("utf-8", "surrogateescape")
    else:
        target = bytes(target_key)
    body = raw[1:-1]
    pos = 0
    while pos < len(body):
        key_end = _skip(body, pos)
        key_raw = body[pos:key_end]
        value_end = _skip(body, key_end)
        if _is_digit(key_raw[0]):
            key = key_raw[key_raw.index(b":") + 1:]
            if key == target:
                return body[key_end:value_end]
        pos = value_end
    return None