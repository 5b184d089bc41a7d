"""A map from keys to occurrence counts."""

from __future__ import annotations

import random

__all__ = ["FreqMap"]


class FreqMap(dict):
    """Counts how often each integer key occurs."""

    def add(self, n: int) -> None:
        self[n] = self.get(n, 0) + 1

    def remove(self, n: int) -> None:
        """Decrease the count of n, dropping it at zero; absent keys are ignored."""
        if n not in self:
            return
        self[n] -= 1
        if self[n] == 0:
            del self[n]

    def init_key(self, n: int) -> None:
        """Add n with a count of zero unless it is already present."""
        self.setdefault(n, 0)

    def max(self) -> int:
        """A key with the highest positive count, or 0 if there is none."""
        best, best_count = 0, 0
        for key, count in self.items():
            if count > best_count:
                best, best_count = key, count
        return best

    def min(self) -> int:
        """A key with the lowest count, or 0 if the map is empty."""
        if not self:
            return 0
        return min(self.items(), key=lambda item: item[1])[0]

    def pick_random(self, val: int) -> int:
        """A random key among those whose count equals val."""
        candidates = [key for key, count in self.items() if count == val]
        if not candidates:
            raise ValueError(f"no key has count {val}")
        return random.choice(candidates)