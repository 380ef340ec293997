"""
EdgeLab worker: polls the slate and feeds the analysis queue.

Every ``SLATE_POLL_MIN`` minutes the configured sports are fetched from The
Odds API; games inside an active scan window are enqueued.  The
:class:`~edgelab.services.scheduler.AnalysisScheduler` analyses them one at
a time and each Decision is logged.

Run::

    python -m edgelab.worker
"""

import logging
import os
import time
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from dotenv import load_dotenv

from edgelab.core.cadence import cadence_status, is_scan_window_active
from edgelab.core.quote import Event
from edgelab.core.sport_config import for_sport
from edgelab.services.odds import OddsAPIClient
from edgelab.services.oracle import GeminiJudgementOracle
from edgelab.services.scheduler import AnalysisScheduler
from edgelab.services.veto_pipeline import VERDICT_PASS, Decision, VetoPipeline

load_dotenv()

logger = logging.getLogger(__name__)

EDGELAB_SPORTS = os.getenv("EDGELAB_SPORTS", "NFL,NBA")
SLATE_POLL_MIN = int(os.getenv("SLATE_POLL_MIN", "15"))


def configured_sports(raw: str = EDGELAB_SPORTS) -> List[str]:
    """``"nfl, NBA"`` → ``["NFL", "NBA"]`` (canonical sport ids, de-duplicated)."""
    sports: List[str] = []
    for item in raw.split(","):
        if not item.strip():
            continue
        sport_id = for_sport(item).sport_id
        if sport_id not in sports:
            sports.append(sport_id)
    return sports


class EventDirectory:
    """Remembers which sport each queued event belongs to, and the scan
    window it was last queued in."""

    def __init__(self, client: OddsAPIClient):
        self._client = client
        self._sports: Dict[str, str] = {}
        self._windows: Dict[str, str] = {}

    def remember(self, event: Event) -> None:
        self._sports[event.event_id] = event.sport

    def enter_window(self, event: Event, status: str) -> bool:
        """Record ``event`` as seen in window ``status``.

        Returns False when it was already queued in that window.
        """
        self.remember(event)
        if self._windows.get(event.event_id) == status:
            return False
        self._windows[event.event_id] = status
        return True

    def lookup(self, event_id: str) -> Optional[Event]:
        sport = self._sports.get(event_id)
        if sport is None:
            logger.warning("Unknown event %s requested by analysis queue", event_id)
            return None
        return self._client.get_event(sport, event_id)


def scan_slate(
    client: OddsAPIClient,
    queue: AnalysisScheduler,
    directory: EventDirectory,
    sports: Iterable[str],
    now: Optional[datetime] = None,
) -> int:
    """Enqueue games that have entered a new scan window.  Returns the count.

    A game is analysed once per window (FIRST, SECOND, LOCK), not once per
    poll.
    """
    now = now or datetime.utcnow()
    queued = 0
    for sport in sports:
        for event in client.get_events(sport):
            if event.commence_time is None:
                continue
            status = cadence_status(event.commence_time, event.sport, now=now)
            if not is_scan_window_active(status):
                continue
            if not directory.enter_window(event, status):
                continue
            if queue.enqueue(event.event_id):
                queued += 1
    logger.info("Slate scan: %d games queued", queued)
    return queued


def log_decision(decision: Decision) -> None:
    if decision.verdict == VERDICT_PASS:
        logger.info("PASS %s: %s", decision.event_id, decision.reason)
        return
    logger.info(
        "%s %s: %s %s @ %s [%s, floor %s %s]",
        decision.verdict, decision.event_id, decision.recommendation,
        decision.rec_line, decision.soft_best_book, decision.edge_quality,
        decision.line_floor or "", decision.odds_floor or "",
    )


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger.info("Starting EdgeLab worker")

    sports = configured_sports()
    client = OddsAPIClient()
    pipeline = VetoPipeline(oracle=GeminiJudgementOracle())
    directory = EventDirectory(client)

    scheduler = BackgroundScheduler()
    queue = AnalysisScheduler(pipeline, directory.lookup, scheduler=scheduler)
    queue.on_decision(log_decision)

    def _slate_job():
        try:
            scan_slate(client, queue, directory, sports)
        except Exception as exc:
            logger.error("Slate scan failed: %s", exc, exc_info=True)

    scheduler.add_job(
        _slate_job,
        IntervalTrigger(minutes=SLATE_POLL_MIN),
        id="slate_scan",
        name="Slate Scan",
        next_run_time=datetime.now(),
        replace_existing=True,
    )
    queue.start()
    logger.info("Scheduler started: slate scan every %dmin for %s",
                SLATE_POLL_MIN, ", ".join(sports))

    try:
        while True:
            time.sleep(1)
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down EdgeLab worker")
        queue.shutdown()


if __name__ == "__main__":
    main()
