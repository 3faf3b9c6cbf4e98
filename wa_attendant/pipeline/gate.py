"""Per-sender admission gate with cooldown release."""

from __future__ import annotations

import time
from collections.abc import Callable


class AdmissionGate:
    """
    Set of senders currently being served.

    A sender is admitted once and stays pending until ``cooldown`` seconds
    after ``release`` is called. Entries are keyed by their release deadline
    on ``clock``, so expiry needs no timer and is checked on access.

    Meant to be used from a single event loop: every method runs without
    awaiting, so check-and-insert cannot interleave with another handler.
    """

    def __init__(self, cooldown: float = 15.0, clock: Callable[[], float] = time.monotonic):
        self.cooldown = cooldown
        self._clock = clock
        # sender -> release deadline; None while the reply is still in flight
        self._pending: dict[str, float | None] = {}

    def _expired(self, deadline: float | None, now: float) -> bool:
        return deadline is not None and deadline <= now

    def _prune(self, now: float) -> None:
        expired = [s for s, d in self._pending.items() if self._expired(d, now)]
        for sender_id in expired:
            del self._pending[sender_id]

    def try_admit(self, sender_id: str) -> bool:
        """Admit ``sender_id`` unless it is already pending."""
        self._prune(self._clock())
        if sender_id in self._pending:
            return False
        self._pending[sender_id] = None
        return True

    def release(self, sender_id: str) -> None:
        """Start the cooldown after which ``sender_id`` may be admitted again."""
        if sender_id in self._pending:
            self._pending[sender_id] = self._clock() + self.cooldown

    def is_pending(self, sender_id: str) -> bool:
        self._prune(self._clock())
        return sender_id in self._pending

    def __len__(self) -> int:
        self._prune(self._clock())
        return len(self._pending)
