"""Time-bounded per-entity locks.

A lock that is never released expires after `ttl` seconds, so a failed or
forgotten operation can never block an entity forever. Each acquisition
gets its own token; releasing with a stale token leaves the current holder
alone.
"""

from __future__ import annotations

import itertools
import logging
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class LockTable:
    def __init__(self, ttl: float = 5.0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._tokens = itertools.count(1)
        self._held: dict[str, tuple[float, int]] = {}

    def _expire(self, entity_id: str) -> None:
        held = self._held.get(entity_id)
        if held is not None and self._clock() >= held[0]:
            del self._held[entity_id]
            logger.warning("Lock on %s expired after %.1fs; force-unlocked", entity_id, self.ttl)

    def is_locked(self, entity_id: str) -> bool:
        self._expire(entity_id)
        return entity_id in self._held

    def acquire(self, entity_id: str) -> int | None:
        """Take the lock and return its token; None if another operation holds it."""
        if self.is_locked(entity_id):
            return None
        token = next(self._tokens)
        self._held[entity_id] = (self._clock() + self.ttl, token)
        return token

    def release(self, entity_id: str, token: int | None = None) -> bool:
        """Drop the lock. With a token, only the acquisition that owns it is released."""
        held = self._held.get(entity_id)
        if held is None:
            return False
        if token is not None and held[1] != token:
            logger.debug("Not releasing %s: lock was taken over after expiry", entity_id)
            return False
        del self._held[entity_id]
        return True

    def locked(self) -> list[str]:
        for entity_id in list(self._held):
            self._expire(entity_id)
        return sorted(self._held)

    def clear(self) -> int:
        """Emergency release of every lock; returns how many were held."""
        count = len(self._held)
        self._held.clear()
        if count:
            logger.warning("Cleared %d relationship sync locks", count)
        return count
