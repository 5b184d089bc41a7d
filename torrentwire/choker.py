"""Deciding which peers to unchoke."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any

from torrentwire.conninfo import ConnInfo

__all__ = [
    "Choker",
    "OPTIMISTIC_SLOTS",
    "DEFAULT_MAX_UPLOAD_SLOTS",
    "CHOKER_INTERVAL",
]

OPTIMISTIC_SLOTS = 1
DEFAULT_MAX_UPLOAD_SLOTS = 4
CHOKER_INTERVAL = 10.0
_OPTIMISTIC_ROUNDS = 5
_NEWCOMERS = 3


@dataclass
class Choker:
    """Unchokes the best peers plus one optimistic unchoke.

    torrent is any object whose conns attribute lists its ConnInfo objects,
    oldest first.
    """

    torrent: Any
    current_round: int = 0
    optimistic: ConnInfo | None = None
    enable_optimistic: bool = True
    # The optimistic unchoke is not counted in these slots.
    max_upload_slots: int = DEFAULT_MAX_UPLOAD_SLOTS
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def pick_optimistic_unchoke(self) -> None:
        """Choose a choked, interested peer at random; newcomers count thrice."""
        conns = self.torrent.conns
        newcomers_from = len(conns) - _NEWCOMERS
        candidates: list[ConnInfo] = []
        for i, conn in enumerate(conns):
            if conn.state.am_choking and conn.state.is_interested:
                weight = 3 if i >= newcomers_from else 1
                candidates.extend([conn] * weight)
        self.optimistic = self.rng.choice(candidates) if candidates else None

    def review_unchoked_peers(self) -> None:
        """Unchoke the fastest interested peers, then fill free slots at random."""
        try:
            self._review()
        finally:
            self.current_round += 1

    def _review(self) -> None:
        conns = self.torrent.conns
        if not conns:
            return
        if self.enable_optimistic and self.current_round % _OPTIMISTIC_ROUNDS == 0:
            self.pick_optimistic_unchoke()
        if self.optimistic is not None:
            self.optimistic.unchoke()

        best: list[ConnInfo] = []
        others: list[ConnInfo] = []
        for conn in conns:
            if conn.peer_seeding():
                conn.choke()
            elif conn.is_snubbed() or not conn.state.is_interested:
                others.append(conn)
            else:
                best.append(conn)
        best.sort(key=lambda c: c.rate(), reverse=True)

        to_unchoke = self.max_upload_slots
        top = best[: self.max_upload_slots]
        for conn in top:
            if conn is self.optimistic:
                continue
            conn.unchoke()
            to_unchoke -= 1
        others.extend(best[len(top):])

        for conn in self.rng.sample(others, len(others)):
            if conn is self.optimistic:
                continue
            if to_unchoke <= 0:
                conn.choke()
            else:
                conn.unchoke()
                if conn.state.is_interested:
                    to_unchoke -= 1