"""Piece bitfields as sent in the peer wire protocol."""

from __future__ import annotations

__all__ = ["BitField", "bitfield_length"]


def bitfield_length(num_pieces: int) -> int:
    """Number of bytes a bitfield for num_pieces pieces occupies."""
    return -(-num_pieces // 8)


class BitField(bytearray):
    """A zero-based bitfield; bit 7 of byte 0 is piece 0."""

    @classmethod
    def new(cls, num_pieces: int) -> BitField:
        """An empty bitfield large enough for num_pieces pieces."""
        return cls(bitfield_length(num_pieces))

    def valid(self, expected_len: int) -> bool:
        """Whether the bitfield has the size expected for expected_len pieces."""
        return len(self) == bitfield_length(expected_len)

    def _locate(self, i: int) -> tuple[int, int]:
        if i < 0 or i >= len(self) * 8:
            raise IndexError(f"piece index {i} out of range")
        return i // 8, 1 << (7 - i % 8)

    def has_piece(self, i: int) -> bool:
        index, mask = self._locate(i)
        return bool(self[index] & mask)

    def set_piece(self, i: int) -> None:
        index, mask = self._locate(i)
        self[index] |= mask

    def pieces_set(self) -> list[int]:
        """Indices of all pieces whose bit is set, in ascending order."""
        return [i for i in range(len(self) * 8) if self.has_piece(i)]

    def bits_set(self) -> int:
        """Number of bits that are set."""
        return sum(bin(byte).count("1") for byte in self)