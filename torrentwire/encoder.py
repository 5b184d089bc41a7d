"""Encoding of Python values as bencode."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

__all__ = ["encode"]

# Dataclass field metadata understood by the encoder:
#   "bencode": the dictionary key to use, or "-" to leave the field out
#   "omit_empty": True to leave the field out when its value is empty
_NAME_KEY = "bencode"
_OMIT_KEY = "omit_empty"
_SKIP = "-"


def encode(value: Any) -> bytes:
    """Return the bencoded form of value.

    Integers and booleans become integers, str (as UTF-8) and bytes-like
    objects become strings, lists and tuples become lists, and mappings and
    dataclass instances become dictionaries with sorted keys. Entries whose
    value is None are left out of dictionaries; None alone encodes to b"".
    """
    if value is None:
        return b""
    return b"".join(_chunks(value))


def _chunks(value: Any) -> Iterator[bytes]:
    if isinstance(value, bool):
        yield b"i1e" if value else b"i0e"
    elif isinstance(value, int):
        yield b"i%de" % value
    elif isinstance(value, str):
        yield from _string(value.encode("utf-8", "surrogateescape"))
    elif isinstance(value, (bytes, bytearray, memoryview)):
        yield from _string(bytes(value))
    elif isinstance(value, Mapping):
        yield from _dictionary(value.items())
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        yield from _dictionary(_dataclass_items(value))
    elif isinstance(value, (list, tuple)):
        yield b"l"
        for item in value:
            if item is None:
                raise TypeError("cannot bencode None inside a list")
            yield from _chunks(item)
        yield b"e"
    else:
        raise TypeError(f"unsupported type for bencode: {type(value).__name__}")


def _string(raw: bytes) -> Iterator[bytes]:
    yield b"%d:" % len(raw)
    yield raw


def _key_bytes(key: Any) -> bytes:
    if isinstance(key, str):
        return key.encode("utf-8", "surrogateescape")
    if isinstance(key, (bytes, bytearray, memoryview)):
        return bytes(key)
    raise TypeError("dictionary keys must be str or bytes")


def _dictionary(items: Iterable[tuple[Any, Any]]) -> Iterator[bytes]:
    entries: dict[bytes, Any] = {}
    for key, value in items:
        if value is None:
            continue
        raw = _key_bytes(key)
        if raw in entries:
            raise ValueError(f"duplicate dictionary key {raw!r}")
        entries[raw] = value
    yield b"d"
    for raw in sorted(entries):
        yield from _string(raw)
        yield from _chunks(entries[raw])
    yield b"e"


def _dataclass_items(obj: Any) -> Iterator[tuple[str, Any]]:
    for f in dataclasses.fields(obj):
        name = f.metadata.get(_NAME_KEY) or f.name
        if name == _SKIP:
            continue
        value = getattr(obj, f.name)
        if f.metadata.get(_OMIT_KEY) and _is_empty(value):
            continue
        yield name, value


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return all(_is_empty(getattr(value, f.name)) for f in dataclasses.fields(value))
    if isinstance(value, (int, str, bytes, bytearray, memoryview, list, tuple, Mapping)):
        return not value
    return False