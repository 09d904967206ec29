"""
chad/state/rate_limit.py

Per-user admission control with a fixed number of reusable slots.

Each user owns exactly `max_requests` slots. A slot holds the time at which it
becomes free again; admitting a message claims a free slot for `window`
seconds. This is not an exact sliding log: a slot's window is renewed when it
is reused, so bursts straddling a window boundary are only approximated.

Not thread-safe on its own; the Coordinator serialises access.
"""

from __future__ import annotations


class RateLimiter:
    def __init__(self, max_requests: int, window: float):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.max_requests = max_requests
        self.window = window
        self._slots: dict[str, list[float]] = {}

    def admit(self, user_id: str, now: float) -> bool:
        """Return True if the user may send a message at `now`, claiming a slot."""
        slots = self._slots.get(user_id)
        if slots is None:
            slots = [0.0] * self.max_requests
            slots[0] = now + self.window
            self._slots[user_id] = slots
            return True

        for i, free_at in enumerate(slots):
            if free_at <= now:
                slots[i] = now + self.window
                return True
        return False

    def __len__(self) -> int:
        return len(self._slots)
