"""
The Odds API integration: sharp and soft quotes per event.
https://the-odds-api.com/

Sharp / soft split
------------------
The sport's ``sharp_book`` (Pinnacle) becomes ``Event.sharp``, the reference
every edge is measured against.  Only the retail books in ``SOFT_BOOKS``
become ``Event.soft``; exchanges and offshore books the API also returns
are ignored because their prices are not bettable for the target user.

Reference lines
---------------
:class:`ReferenceLineStore` remembers the sharp spread the first time each
event is seen.  Every later Event for that id carries it as
``Event.reference`` so the pipeline can describe line movement.

Environment:
    THE_ODDS_API_KEY   required
    ODDS_API_REGIONS   default ``us,eu`` (Pinnacle is an ``eu`` book)
"""

import logging
import os
import threading
from datetime import datetime
from typing import Dict, List, Optional

import requests
from dotenv import load_dotenv

from edgelab.core.odds_math import parse_number
from edgelab.core.quote import Event, Quote, ReferenceLine
from edgelab.core.sport_config import for_sport
from edgelab.services.odds_cache import OddsCache

load_dotenv()

logger = logging.getLogger(__name__)

API_KEY = os.getenv("THE_ODDS_API_KEY")
BASE_URL = "https://api.the-odds-api.com/v4"
ODDS_API_REGIONS = os.getenv("ODDS_API_REGIONS", "us,eu")

# Odds API bookmaker key → display name used on Quote.book
SOFT_BOOKS: Dict[str, str] = {
    "draftkings": "DraftKings",
    "fanduel": "FanDuel",
    "betmgm": "BetMGM",
    "williamhill_us": "Caesars",
    "betrivers": "BetRivers",
    "bovada": "Bovada",
}

SHARP_BOOK_NAMES: Dict[str, str] = {
    "pinnacle": "Pinnacle",
}

_COMMENCE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_commence_time(value: Optional[str]) -> Optional[datetime]:
    """``2024-11-03T18:00:00Z`` → naive UTC datetime, or ``None``."""
    if not value:
        return None
    try:
        return datetime.strptime(value, _COMMENCE_FORMAT)
    except ValueError:
        logger.debug("Unparseable commence_time %r", value)
        return None


def parse_quote(bookmaker: Dict, home_team: str, book_name: str) -> Quote:
    """One bookmaker block from the API → :class:`Quote`."""
    fields: Dict = {}

    for market in bookmaker.get("markets", []):
        market_key = market.get("key")

        if market_key == "spreads":
            for outcome in market.get("outcomes", []):
                if outcome.get("name") == home_team:
                    fields["spread_line_home"] = outcome.get("point")
                    fields["spread_odds_home"] = outcome.get("price")
                else:
                    fields["spread_line_away"] = outcome.get("point")
                    fields["spread_odds_away"] = outcome.get("price")

        elif market_key == "totals":
            # The Over's point is the line; the Under's only fills a gap.
            for outcome in market.get("outcomes", []):
                if outcome.get("name") == "Over":
                    if outcome.get("point") is not None:
                        fields["total_line"] = outcome.get("point")
                    fields["total_over_odds"] = outcome.get("price")
                else:
                    if fields.get("total_line") is None:
                        fields["total_line"] = outcome.get("point")
                    fields["total_under_odds"] = outcome.get("price")

        elif market_key == "h2h":
            for outcome in market.get("outcomes", []):
                if outcome.get("name") == home_team:
                    fields["moneyline_home"] = outcome.get("price")
                else:
                    fields["moneyline_away"] = outcome.get("price")

    return Quote(book=book_name, **fields)


def parse_event(game_data: Dict, sport: str) -> Event:
    """
    Convert one raw game from The Odds API into an :class:`Event`.

    The sport's sharp book fills ``sharp``; allowlisted retail books fill
    ``soft`` in the order the API returned them.  Any other bookmaker is
    dropped.
    """
    cfg = for_sport(sport)
    home_team = game_data.get("home_team") or ""
    away_team = game_data.get("away_team") or ""

    sharp: Optional[Quote] = None
    soft: List[Quote] = []
    for bookmaker in game_data.get("bookmakers", []):
        book_key = (bookmaker.get("key") or "").lower()
        if book_key == cfg.sharp_book:
            name = SHARP_BOOK_NAMES.get(book_key, bookmaker.get("title") or book_key)
            sharp = parse_quote(bookmaker, home_team, name)
        elif book_key in SOFT_BOOKS:
            soft.append(parse_quote(bookmaker, home_team, SOFT_BOOKS[book_key]))

    return Event(
        event_id=str(game_data.get("id") or ""),
        sport=cfg.sport_id,
        away_team=away_team,
        home_team=home_team,
        commence_time=parse_commence_time(game_data.get("commence_time")),
        sharp=sharp,
        soft=tuple(soft),
    )


# ---------------------------------------------------------------------------
# Reference lines
# ---------------------------------------------------------------------------

class ReferenceLineStore:
    """First-seen sharp lines, keyed by event id."""

    def __init__(self):
        self._lines: Dict[str, ReferenceLine] = {}
        self._lock = threading.Lock()

    def get(self, event_id: str) -> Optional[ReferenceLine]:
        with self._lock:
            return self._lines.get(event_id)

    def attach(self, event: Event, now: Optional[datetime] = None) -> Event:
        """Return ``event`` carrying its reference line.

        The first call for an event with a sharp quote captures that quote;
        later calls never overwrite it.
        """
        with self._lock:
            reference = self._lines.get(event.event_id)
            if reference is None and event.sharp is not None:
                reference = ReferenceLine.from_quote(event.sharp, captured_at=now)
                self._lines[event.event_id] = reference
                logger.debug(
                    "Reference line captured for %s: %s",
                    event.matchup, reference.spread_line_away,
                )
        if reference is None:
            return event
        return event.with_reference(reference)

    def forget(self, event_id: str) -> None:
        with self._lock:
            self._lines.pop(event_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class OddsAPIClient:
    """Client for The Odds API"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        cache: Optional[OddsCache] = None,
        references: Optional[ReferenceLineStore] = None,
        regions: str = ODDS_API_REGIONS,
        timeout: float = 10.0,
    ):
        self.api_key = api_key or API_KEY
        if not self.api_key:
            raise ValueError("THE_ODDS_API_KEY not set in environment")
        self.cache = cache if cache is not None else OddsCache()
        self.references = references if references is not None else ReferenceLineStore()
        self.regions = regions
        self.timeout = timeout
        self.requests_remaining: Optional[int] = None

    def fetch_odds(self, sport: str) -> List[Dict]:
        """Raw odds payload for one sport.  ``[]`` on any network error."""
        cfg = for_sport(sport)
        if not cfg.odds_api_sport_key:
            logger.warning("No Odds API sport key for %s", sport)
            return []

        url = f"{BASE_URL}/sports/{cfg.odds_api_sport_key}/odds"
        params = {
            "apiKey": self.api_key,
            "regions": self.regions,
            "markets": "h2h,spreads,totals",
            "oddsFormat": "american",
        }

        try:
            response = requests.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error("Odds API error for %s: %s", cfg.sport_id, e)
            return []
        except ValueError as e:
            logger.error("Odds API returned non-JSON for %s: %s", cfg.sport_id, e)
            return []

        remaining = response.headers.get("x-requests-remaining")
        used = response.headers.get("x-requests-used")
        quota = parse_number(remaining)
        if quota is not None:
            self.requests_remaining = int(quota)
        logger.info(
            "Odds API: %d %s games fetched. Quota: %s used, %s remaining",
            len(data), cfg.sport_id, used, remaining,
        )
        return data if isinstance(data, list) else []

    def get_events(self, sport: str, refresh: bool = False) -> List[Event]:
        """All upcoming events for a sport, served from cache when fresh."""
        if not refresh:
            cached = self.cache.get(sport)
            if cached is not None:
                logger.debug("Odds cache hit for %s (%d events)", sport, len(cached))
                return cached

        events = []
        for game in self.fetch_odds(sport):
            event = parse_event(game, sport)
            if not event.event_id:
                continue
            events.append(self.references.attach(event))

        if events:
            self.cache.put(sport, events)

        with_sharp = sum(1 for e in events if e.sharp is not None)
        logger.info(
            "Parsed %d %s events (%d with sharp quote)", len(events), sport, with_sharp,
        )
        return events

    def get_event(self, sport: str, event_id: str) -> Optional[Event]:
        """One event by id, or ``None`` when the API no longer lists it."""
        for event in self.get_events(sport):
            if event.event_id == event_id:
                return event
        return None
