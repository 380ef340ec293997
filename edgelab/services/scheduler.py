"""
Sequential analysis queue.

Each analysis ends in a paid, rate-limited oracle call, so events are
analysed one at a time, first-in first-out, with a minimum start-to-start
spacing (``ANALYSIS_INTERVAL_S``, default 60 s).  The spacing baseline is
the *start* of the previous item, so a slow analysis eats into the wait
rather than adding to it.

Rules:
    - ``enqueue`` is idempotent: an event already queued or in flight is
      not added twice.
    - ``cancel`` only removes queued items; the in-flight run completes.
    - A failed analysis is logged, clears the in-flight slot and never
      stops the queue.

The queue can be driven synchronously (``run_next`` / ``drain``, used by
tests and one-shot scripts) or by an APScheduler ``BackgroundScheduler``
(``start`` / ``shutdown``) that re-arms a one-shot ``date`` job after
every run.
"""

import logging
import os
import threading
import time
from collections import deque
from datetime import datetime, timedelta
from typing import Callable, Deque, Dict, List, Optional, Tuple

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from edgelab.core.quote import Event
from edgelab.services.veto_pipeline import (
    DATA_MISSING,
    STAGE_STRUCTURAL_CHECK,
    BaseDecisionMaker,
    Decision,
    pass_decision,
)

logger = logging.getLogger(__name__)

ANALYSIS_INTERVAL_S = float(os.getenv("ANALYSIS_INTERVAL_S", "60"))

WORKER_JOB_ID = "analysis_worker"


class AnalysisScheduler:
    """
    FIFO analysis queue with a single in-flight slot.

    Usage::

        queue = AnalysisScheduler(pipeline, directory.lookup)
        queue.on_decision(publish)
        queue.start()
        queue.enqueue("evt-123")
    """

    def __init__(
        self,
        decision_maker: BaseDecisionMaker,
        event_source: Callable[[str], Optional[Event]],
        interval_s: float = ANALYSIS_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self._decision_maker = decision_maker
        self._event_source = event_source
        self.interval_s = interval_s
        self._clock = clock
        self._scheduler = scheduler

        self._lock = threading.Lock()
        self._queue: Deque[str] = deque()
        self._in_flight: Optional[str] = None
        self._last_start: Optional[float] = None
        self._latest: Dict[str, Decision] = {}
        self._callbacks: List[Callable[[Decision], None]] = []

    # ------------------------------------------------------------------
    # Callback registration
    # ------------------------------------------------------------------

    def on_decision(self, callback: Callable[[Decision], None]) -> None:
        """Register a callback fired with every completed Decision."""
        self._callbacks.append(callback)

    # ------------------------------------------------------------------
    # Queue operations
    # ------------------------------------------------------------------

    def enqueue(self, event_id: str) -> bool:
        """Queue an event.  Returns False when it is already queued or running."""
        with self._lock:
            if event_id == self._in_flight or event_id in self._queue:
                logger.debug("Enqueue ignored for %s: already pending", event_id)
                return False
            self._queue.append(event_id)
            depth = len(self._queue)
        logger.info("Queued %s for analysis (%d pending)", event_id, depth)
        self._arm()
        return True

    def cancel(self, event_id: str) -> bool:
        """Remove a queued event.  The in-flight event cannot be cancelled."""
        with self._lock:
            try:
                self._queue.remove(event_id)
            except ValueError:
                return False
        logger.info("Cancelled queued analysis for %s", event_id)
        return True

    @property
    def in_flight(self) -> Optional[str]:
        with self._lock:
            return self._in_flight

    @property
    def pending(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._queue)

    def latest(self, event_id: str) -> Optional[Decision]:
        """Most recent Decision for an event; a re-analysis supersedes it."""
        with self._lock:
            return self._latest.get(event_id)

    def seconds_until_next_start(self) -> float:
        with self._lock:
            return self._wait_locked()

    def _wait_locked(self) -> float:
        if self._last_start is None:
            return 0.0
        return max(0.0, self._last_start + self.interval_s - self._clock())

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run_next(self) -> Optional[Decision]:
        """Analyse the head of the queue if it is due.

        Returns ``None`` when nothing ran (empty queue, spacing not yet
        elapsed, another run in flight) or when the analysis failed.
        """
        with self._lock:
            if self._in_flight is not None or not self._queue:
                return None
            if self._wait_locked() > 0:
                return None
            event_id = self._queue.popleft()
            self._in_flight = event_id
            self._last_start = self._clock()

        decision: Optional[Decision] = None
        try:
            event = self._event_source(event_id)
            if event is None:
                decision = pass_decision(
                    event_id, DATA_MISSING, "Event no longer available from odds source.",
                    STAGE_STRUCTURAL_CHECK,
                )
            else:
                decision = self._decision_maker.analyze(event)
        except Exception as exc:
            logger.error("Analysis failed for %s: %s", event_id, exc, exc_info=True)
        finally:
            with self._lock:
                self._in_flight = None
                if decision is not None:
                    self._latest[event_id] = decision

        if decision is not None:
            self._publish(decision)
        return decision

    def drain(self, sleep: Callable[[float], None] = time.sleep) -> List[Decision]:
        """Run until the queue is empty, honouring the spacing.  Blocking."""
        decisions: List[Decision] = []
        while self.pending:
            if self.in_flight is not None:
                sleep(1.0)
                continue
            wait = self.seconds_until_next_start()
            if wait > 0:
                sleep(wait)
                continue
            decision = self.run_next()
            if decision is not None:
                decisions.append(decision)
        return decisions

    def _publish(self, decision: Decision) -> None:
        for callback in self._callbacks:
            try:
                callback(decision)
            except Exception as exc:
                logger.error("Decision callback failed for %s: %s",
                             decision.event_id, exc, exc_info=True)

    # ------------------------------------------------------------------
    # Background driver
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._scheduler is None:
            self._scheduler = BackgroundScheduler()
        if not self._scheduler.running:
            self._scheduler.start()
        logger.info("Analysis worker started (spacing %.0fs)", self.interval_s)
        self._arm()

    def shutdown(self, wait: bool = False) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            logger.info("Analysis worker stopped (%d still queued)", len(self.pending))

    def _arm(self) -> None:
        """(Re)schedule the one-shot worker job for the next due item."""
        if self._scheduler is None or not self._scheduler.running:
            return
        with self._lock:
            if not self._queue:
                return
            wait = self._wait_locked()
        self._scheduler.add_job(
            self._tick,
            DateTrigger(run_date=datetime.now() + timedelta(seconds=wait)),
            id=WORKER_JOB_ID,
            name="Sequential Game Analysis",
            replace_existing=True,
        )

    def _tick(self) -> None:
        try:
            self.run_next()
        finally:
            self._arm()
