"""Pre-game scan windows.

Soft books are scanned in three windows before start time: FIRST when
openers have settled, SECOND as limits rise, LOCK just before the market
closes.  Offsets (minutes before start) come from
:class:`~edgelab.core.sport_config.SportConfig`.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Final, Optional

from edgelab.core.sport_config import for_sport

CADENCE_WAITING: Final[str] = "WAITING"
CADENCE_FIRST: Final[str] = "FIRST"
CADENCE_SECOND: Final[str] = "SECOND"
CADENCE_LOCK: Final[str] = "LOCK"
CADENCE_CLOSED: Final[str] = "CLOSED"
CADENCE_LIVE: Final[str] = "LIVE"

#: Past this much time after start the game is live rather than just closed.
_LIVE_AFTER: Final[timedelta] = timedelta(minutes=1)

_LABELS = {
    CADENCE_WAITING: "Waiting for Window",
    CADENCE_FIRST: "First Window Open",
    CADENCE_SECOND: "Second Window Open",
    CADENCE_LOCK: "Lock Window Open",
    CADENCE_CLOSED: "Closed",
    CADENCE_LIVE: "Live / Closed",
}


def cadence_status(
    commence_time: datetime,
    sport: str,
    now: Optional[datetime] = None,
) -> str:
    """Return the scan window a game is in.

    Both datetimes must share a convention (naive UTC or aware).
    """
    cfg = for_sport(sport)
    now = now or datetime.utcnow()
    until_start = commence_time - now

    if until_start <= -_LIVE_AFTER:
        return CADENCE_LIVE
    if until_start <= timedelta(0):
        return CADENCE_CLOSED
    if until_start <= timedelta(minutes=cfg.lock_window_min):
        return CADENCE_LOCK
    if until_start <= timedelta(minutes=cfg.second_window_min):
        return CADENCE_SECOND
    if until_start <= timedelta(minutes=cfg.first_window_min):
        return CADENCE_FIRST
    return CADENCE_WAITING


def is_scan_window_active(status: str) -> bool:
    return status in (CADENCE_FIRST, CADENCE_SECOND, CADENCE_LOCK)


def status_label(status: str) -> str:
    return _LABELS.get(status, status)
