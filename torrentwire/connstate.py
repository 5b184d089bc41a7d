"""Choke and interest state of a peer connection, and its statistics."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

import humanize

__all__ = ["ConnState", "ConnStats", "SNUB_INTERVAL", "UPLOAD_SURPLUS_LIMIT"]

SNUB_INTERVAL = 60.0
UPLOAD_SURPLUS_LIMIT = 200 * 1024


@dataclass
class ConnState:
    """Who is choking and who is interested on a connection."""

    am_interested: bool = False
    am_choking: bool = True
    is_interested: bool = False
    is_choking: bool = True

    def can_upload(self) -> bool:
        """We unchoke the peer and the peer is interested."""
        return not self.am_choking and self.is_interested

    def can_download(self) -> bool:
        """The peer unchokes us and we are interested."""
        return not self.is_choking and self.am_interested

    def __str__(self) -> str:
        return "\n".join(
            [
                f"peer interested: {str(self.is_interested).lower()}",
                f"client interested: {str(self.am_interested).lower()}",
                f"peer choking: {str(self.is_choking).lower()}",
                f"client choking: {str(self.am_choking).lower()}",
            ]
        )


@dataclass
class ConnStats:
    """Transfer statistics of a connection.

    Times are seconds as returned by clock; durations are seconds.
    """

    upload_useful_bytes: int = 0
    download_useful_bytes: int = 0
    blocks_downloaded: int = 0
    blocks_uploaded: int = 0
    verifications: int = 0
    last_received_piece_msg: float | None = None
    last_started_downloading: float | None = None
    last_started_uploading: float | None = None
    sum_downloading: float = 0.0
    sum_uploading: float = 0.0
    snubbed: bool = False
    bad_pieces_contributions: int = 0
    good_pieces_contributions: int = 0
    clock: Callable[[], float] = field(
        default=time.monotonic, repr=False, compare=False
    )

    def _since(self, moment: float | None) -> float:
        if moment is None:
            return 0.0
        return self.clock() - moment

    def stop_downloading(self) -> None:
        self.sum_downloading += self._since(self.last_started_downloading)

    def stop_uploading(self) -> None:
        self.sum_uploading += self._since(self.last_started_uploading)

    def on_block_download(self, length: int) -> None:
        self.download_useful_bytes += length
        self.blocks_downloaded += 1
        self.last_received_piece_msg = self.clock()

    def on_block_upload(self, length: int) -> None:
        self.blocks_uploaded += 1
        self.upload_useful_bytes += length

    def on_piece_hashed(self) -> None:
        self.verifications += 1

    def upload_limits_reached(self) -> bool:
        """Whether we uploaded more than 200 KiB beyond what we downloaded."""
        return self.upload_useful_bytes - self.download_useful_bytes > UPLOAD_SURPLUS_LIMIT

    def is_snubbed(self) -> bool:
        """No piece for a minute since the last one; once snubbed, always snubbed."""
        if self.snubbed:
            return True
        self.snubbed = (
            self.last_received_piece_msg is not None
            and self._since(self.last_received_piece_msg) >= SNUB_INTERVAL
        )
        return self.snubbed

    def maliciousness(self) -> int:
        return self.bad_pieces_contributions - self.good_pieces_contributions

    def __str__(self) -> str:
        return "\n".join(
            [
                f"bytes downloaded: {humanize.naturalsize(self.download_useful_bytes)}",
                f"bytes uploaded: {humanize.naturalsize(self.upload_useful_bytes)}",
                f"blocks downloaded: {self.blocks_downloaded}",
                f"blocks uploaded: {self.blocks_uploaded}",
                f"#verifications: {self.verifications}",
            ]
        )