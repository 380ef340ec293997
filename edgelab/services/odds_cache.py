"""
In-memory per-sport cache for parsed odds.

The Odds API bills per request, so a slate fetched for one sport is reused
until it is ``ODDS_CACHE_TTL_MIN`` minutes old or explicitly invalidated.
The clock is injectable for tests.
"""

import logging
import os
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from edgelab.core.quote import Event

logger = logging.getLogger(__name__)

ODDS_CACHE_TTL_MIN = float(os.getenv("ODDS_CACHE_TTL_MIN", "60"))


class OddsCache:
    """Sport → (fetched_at, events) with a fixed time-to-live."""

    def __init__(
        self,
        ttl_minutes: float = ODDS_CACHE_TTL_MIN,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_minutes * 60.0
        self._clock = clock
        self._entries: Dict[str, Tuple[float, List[Event]]] = {}
        self._lock = threading.Lock()

    def get(self, sport: str) -> Optional[List[Event]]:
        """Cached events for ``sport``, or ``None`` when missing or stale."""
        key = sport.upper()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            fetched_at, events = entry
            if self._clock() - fetched_at >= self.ttl_seconds:
                del self._entries[key]
                logger.debug("Odds cache expired for %s", key)
                return None
            return list(events)

    def put(self, sport: str, events: List[Event]) -> None:
        with self._lock:
            self._entries[sport.upper()] = (self._clock(), list(events))

    def replace_event(self, sport: str, event: Event) -> None:
        """Swap one cached event (by id) without touching its timestamp."""
        key = sport.upper()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return
            fetched_at, events = entry
            updated = [event if e.event_id == event.event_id else e for e in events]
            self._entries[key] = (fetched_at, updated)

    def invalidate(self, sport: Optional[str] = None) -> None:
        """Drop one sport's entry, or everything when ``sport`` is None."""
        with self._lock:
            if sport is None:
                self._entries.clear()
            else:
                self._entries.pop(sport.upper(), None)
        logger.info("Odds cache invalidated (%s)", sport or "all sports")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
