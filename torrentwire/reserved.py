"""The reserved bytes of a BitTorrent handshake."""

from __future__ import annotations

__all__ = ["Reserved"]

_DHT_BYTE, _DHT_MASK = 7, 0x01
_EXTENDED_BYTE, _EXTENDED_MASK = 5, 0x10


class Reserved:
    """Eight reserved handshake bytes announcing protocol extensions."""

    __slots__ = ("_raw",)
    __hash__ = None  # type: ignore[assignment]

    def __init__(self, raw: bytes = bytes(8)) -> None:
        if len(raw) != 8:
            raise ValueError("reserved bytes must be 8 bytes long")
        self._raw = bytearray(raw)

    def __bytes__(self) -> bytes:
        return bytes(self._raw)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Reserved):
            return self._raw == other._raw
        return NotImplemented

    def __repr__(self) -> str:
        return f"Reserved({bytes(self._raw)!r})"

    def supports_dht(self) -> bool:
        return bool(self._raw[_DHT_BYTE] & _DHT_MASK)

    def set_dht(self) -> None:
        self._raw[_DHT_BYTE] |= _DHT_MASK

    def supports_extended(self) -> bool:
        return bool(self._raw[_EXTENDED_BYTE] & _EXTENDED_MASK)

    def set_extended(self) -> None:
        self._raw[_EXTENDED_BYTE] |= _EXTENDED_MASK