"""Download and upload state of the info dictionary (metadata extension)."""

from __future__ import annotations

import random
import threading
from typing import Any, Iterable

__all__ = [
    "MetadataError",
    "UtMetadata",
    "UtMetadatas",
    "METADATA_PIECE_SIZE",
    "MAX_METADATA_SIZE",
]

METADATA_PIECE_SIZE = 16 * 1024
MAX_METADATA_SIZE = 10_000_000


class MetadataError(ValueError):
    """Raised when a metadata piece is out of range or has a wrong length."""


class UtMetadata:
    """The info dictionary being assembled from, or served in, 16 KiB pieces."""

    def __init__(self, info_size: int) -> None:
        self.info_bytes = bytearray(info_size)
        self.contributors: list[Any] = []
        self.num_pieces, last = divmod(info_size, METADATA_PIECE_SIZE)
        if last:
            self.last_piece_len = last
            self.num_pieces += 1
        else:
            self.last_piece_len = METADATA_PIECE_SIZE
        self.owned = [False] * self.num_pieces

    def size(self) -> int:
        return len(self.info_bytes)

    def reset(self) -> None:
        """Forget which pieces were received and who sent them."""
        self.contributors = []
        self.owned = [False] * self.num_pieces

    def fill_request(self, n: int, exclude: Iterable[int]) -> list[int]:
        """Up to n missing piece indices, not in exclude, in random order."""
        excluded = set(exclude)
        missing = [
            i for i, have in enumerate(self.owned) if not have and i not in excluded
        ]
        random.shuffle(missing)
        return missing[:n]

    def complete(self) -> bool:
        return all(self.owned)

    def piece_length(self, i: int) -> int:
        if i == self.num_pieces - 1:
            return self.last_piece_len
        return METADATA_PIECE_SIZE

    def _check_index(self, i: int, action: str) -> None:
        if not 0 <= i < self.num_pieces:
            raise MetadataError(f"{action} metadata piece: out of range")

    def write_block(self, data: bytes, i: int, total_size: int, peer_ip: Any) -> bool:
        """Store piece i; returns whether the metadata is now complete.

        A piece already held is ignored and yields False.
        """
        self._check_index(i, "write")
        if self.owned[i]:
            return False
        if total_size != len(self.info_bytes):
            raise ValueError("total size does not match the metadata size")
        if len(data) != self.piece_length(i):
            raise MetadataError("metadata: wrong piece length")
        start = i * METADATA_PIECE_SIZE
        self.info_bytes[start:start + len(data)] = data
        self.owned[i] = True
        self.contributors.append(peer_ip)
        return self.complete()

    def read_block(self, i: int) -> bytes:
        """The bytes of piece i."""
        self._check_index(i, "read")
        start = i * METADATA_PIECE_SIZE
        return bytes(self.info_bytes[start:start + self.piece_length(i)])


class UtMetadatas:
    """All metadata candidates, one per metadata size that peers announced."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.m: dict[int, UtMetadata] = {}
        self.correct_size = 0

    def _get(self, info_size: int) -> UtMetadata:
        try:
            return self.m[info_size]
        except KeyError:
            raise KeyError(f"no metadata of size {info_size}") from None

    def reset(self, info_size: int) -> None:
        with self._lock:
            self._get(info_size).reset()

    def metadata(self, info_size: int) -> UtMetadata:
        with self._lock:
            return self._get(info_size)

    def correct(self) -> UtMetadata | None:
        """The verified metadata, or None if none has been verified."""
        with self._lock:
            if self.correct_size == 0:
                return None
            return self.m.get(self.correct_size)

    def set_correct(self, info_size: int) -> None:
        with self._lock:
            self.correct_size = info_size

    def add(self, msize: int) -> bool:
        """Track a metadata size; returns False if the size is unacceptable."""
        with self._lock:
            if msize < 0 or msize > MAX_METADATA_SIZE:
                return False
            if msize not in self.m:
                self.m[msize] = UtMetadata(msize)
            return True

    def write_block(self, data: bytes, i: int, info_size: int, peer_ip: Any) -> bool:
        with self._lock:
            return self._get(info_size).write_block(data, i, info_size, peer_ip)

    def read_block(self, i: int) -> bytes:
        """Piece i of the single tracked metadata."""
        with self._lock:
            if len(self.m) != 1:
                raise ValueError("reading requires exactly one metadata")
            (ut,) = self.m.values()
            return ut.read_block(i)

    def fill_request(self, info_size: int, n: int, exclude: Iterable[int]) -> list[int]:
        with self._lock:
            return self._get(info_size).fill_request(n, exclude)