"""The torrent-side view of a peer connection: state, statistics and commands."""

from __future__ import annotations

import queue
import threading
from collections import Counter
from collections.abc import Collection
from dataclasses import dataclass, field
from typing import Any, Protocol

from torrentwire.connstate import ConnState, ConnStats
from torrentwire.message import Message, MessageKind
from torrentwire.peer import Peer
from torrentwire.reserved import Reserved

__all__ = ["ConnInfo"]


class _Reviewer(Protocol):
    def review_unchoked_peers(self) -> None: ...


class _Torrent(Protocol):
    """What a ConnInfo needs from the torrent it belongs to."""

    upload_enabled: bool
    download_enabled: bool
    owned_pieces: Collection[int]
    choker: _Reviewer

    def have_info(self) -> bool: ...

    def have_all(self) -> bool: ...

    def num_pieces(self) -> int: ...

    def dropped_conn(self, conn: ConnInfo) -> None: ...


@dataclass(eq=False)
class ConnInfo:
    """Sends commands to a connection and mirrors its choke/interest state.

    Messages for the connection are put on send_queue; once dropped is set,
    the torrent is told through dropped_conn instead.
    """

    torrent: Any = None
    peer: Peer | None = None
    reserved: Reserved = field(default_factory=Reserved)
    send_queue: queue.Queue = field(default_factory=queue.Queue)
    dropped: threading.Event = field(default_factory=threading.Event)
    peer_bf: set[int] = field(default_factory=set)
    num_want: int = 0
    state: ConnState = field(default_factory=ConnState)
    stats: ConnStats = field(default_factory=ConnStats)
    counters: Counter = field(default_factory=Counter)
    messages_sent: int = 0

    def send_msg_to_conn(self, msg: Any) -> None:
        """Queue msg for the connection, or report the connection as dropped."""
        if self.dropped.is_set():
            self.torrent.dropped_conn(self)
            return
        self.send_queue.put(msg)
        self.messages_sent += 1

    def choke(self) -> None:
        if self.state.am_choking:
            return
        self.send_msg_to_conn(Message(MessageKind.CHOKE))
        self.state.am_choking = True
        if self.state.is_interested:
            self.stopped_uploading()

    def unchoke(self) -> None:
        if not (self.state.am_choking and self.torrent.upload_enabled):
            return
        self.send_msg_to_conn(Message(MessageKind.UNCHOKE))
        self.state.am_choking = False
        self.started_uploading()

    def interested(self) -> None:
        if self.num_want <= 0:
            return
        if not self.state.am_interested and self.torrent.download_enabled:
            self.send_msg_to_conn(Message(MessageKind.INTERESTED))
            self.state.am_interested = True
            self.started_downloading()

    def not_interested(self) -> None:
        if not self.state.am_interested:
            return
        self.send_msg_to_conn(Message(MessageKind.NOT_INTERESTED))
        self.state.am_interested = False
        if not self.state.is_choking:
            self.stopped_downloading()

    def have(self, i: int) -> None:
        self.send_msg_to_conn(Message(MessageKind.HAVE, index=i))

    def send_bitfield(self) -> None:
        """Send a snapshot of the pieces the torrent owns."""
        self.send_msg_to_conn(frozenset(self.torrent.owned_pieces))

    def peer_interest_changed(self) -> None:
        self.state.is_interested = not self.state.is_interested
        if self.state.is_interested:
            if not self.state.am_choking:
                self.torrent.choker.review_unchoked_peers()
            self.started_uploading()
        elif not self.state.am_choking:
            self.torrent.choker.review_unchoked_peers()
            self.stopped_uploading()

    def peer_choke_changed(self) -> None:
        self.state.is_choking = not self.state.is_choking
        if self.state.is_choking:
            if self.state.am_interested:
                self.stopped_downloading()
        else:
            self.started_downloading()

    def review_interests_on_bitfield(self) -> None:
        """Count the pieces the peer offers that we lack; get interested if any."""
        if not self.torrent.have_info() or self.torrent.have_all():
            return
        owned = self.torrent.owned_pieces
        self.num_want += sum(
            1
            for i in range(self.torrent.num_pieces())
            if i not in owned and i in self.peer_bf
        )
        if self.num_want > 0:
            self.interested()

    def review_interests_on_have(self, i: int) -> None:
        """Account for a piece the peer announced; get interested if we lack it."""
        if not self.torrent.have_info() or self.torrent.have_all():
            return
        if i in self.torrent.owned_pieces:
            return
        wanted_before = self.num_want
        self.num_want += 1
        if wanted_before <= 0:
            self.interested()

    def _since(self, moment: float | None) -> float:
        if moment is None:
            return 0.0
        return self.stats.clock() - moment

    def duration_downloading(self) -> float:
        """Seconds spent in the downloading state, the current stretch included."""
        if self.state.can_download():
            return self.stats.sum_downloading + self._since(
                self.stats.last_started_downloading
            )
        return self.stats.sum_downloading

    def duration_uploading(self) -> float:
        """Seconds spent in the uploading state, the current stretch included."""
        if self.state.can_upload():
            return self.stats.sum_uploading + self._since(
                self.stats.last_started_uploading
            )
        return self.stats.sum_uploading

    def started_downloading(self) -> None:
        if not self.state.can_download():
            return
        now = self.stats.clock()
        self.stats.last_started_downloading = now
        # Gives the snubbing check a starting point before any piece arrives.
        if self.stats.last_received_piece_msg is None:
            self.stats.last_received_piece_msg = now

    def started_uploading(self) -> None:
        if self.state.can_upload():
            self.stats.last_started_uploading = self.stats.clock()

    def stopped_downloading(self) -> None:
        self.stats.stop_downloading()

    def stopped_uploading(self) -> None:
        self.stats.stop_uploading()

    def is_snubbed(self) -> bool:
        if self.torrent.have_all():
            return False
        previous = self.stats.snubbed
        current = self.stats.is_snubbed()
        if current != previous:
            self.counters["snubbed"] += 1
        return current

    def peer_seeding(self) -> bool:
        """Whether the peer has every piece; False while the info is unknown."""
        if not self.torrent.have_info():
            return False
        return len(self.peer_bf) == self.torrent.num_pieces()

    def rate(self) -> float:
        """Useful bytes per second: upload rate when seeding, download otherwise."""
        if self.torrent.have_all():
            amount, duration = self.stats.upload_useful_bytes, self.duration_uploading()
        else:
            amount, duration = self.stats.download_useful_bytes, self.duration_downloading()
        if duration == 0:
            return 0.0
        return amount / duration

    def __str__(self) -> str:
        seeding = "true" if self.peer_seeding() else "false"
        return "\n".join(
            [
                f"peer seeding: {seeding}",
                f"client interested in {self.num_want} pieces which peer offers",
                f"downloading for {self.duration_downloading():.3f}s",
                f"uploading for {self.duration_uploading():.3f}s",
                str(self.state),
                str(self.stats),
            ]
        )