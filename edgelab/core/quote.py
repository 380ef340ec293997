"""Immutable market data: bookmaker quotes and the events they price.

A :class:`Quote` is one bookmaker's full price sheet for one event.  An
:class:`Event` owns zero-or-one sharp (reference) quote and any number of
soft (competing) quotes.  Both are frozen: a refresh replaces the object
wholesale, so any code holding an Event holds a consistent snapshot of it.

Quote fields keep the raw value the source supplied (number, numeric
string, ``"N/A"`` or ``None``).  Normalisation is the job of
:mod:`edgelab.core.odds_math`, not of the data model.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Final, Optional, Tuple

from edgelab.core.odds_math import OddsValue, parse_number

# ---------------------------------------------------------------------------
# Outcome vocabulary
# ---------------------------------------------------------------------------

SIDE_AWAY: Final[str] = "AWAY"
SIDE_HOME: Final[str] = "HOME"
SIDE_OVER: Final[str] = "OVER"
SIDE_UNDER: Final[str] = "UNDER"

MARKET_SPREAD: Final[str] = "Spread"
MARKET_MONEYLINE: Final[str] = "Moneyline"
MARKET_TOTAL: Final[str] = "Total"

#: Line placeholder for moneyline outcomes, which have no number.
MONEYLINE_LINE: Final[str] = "ML"


@dataclass(frozen=True)
class Quote:
    """One bookmaker's price sheet for one event.

    ``*_away`` / ``*_home`` fields price the away and home team.
    """

    book: str
    spread_line_away: OddsValue = None
    spread_odds_away: OddsValue = None
    spread_line_home: OddsValue = None
    spread_odds_home: OddsValue = None
    total_line: OddsValue = None
    total_over_odds: OddsValue = None
    total_under_odds: OddsValue = None
    moneyline_away: OddsValue = None
    moneyline_home: OddsValue = None

    def line_for(self, side: str, market: str) -> OddsValue:
        """Raw line for an outcome (``"ML"`` for moneylines)."""
        if market == MARKET_MONEYLINE:
            return MONEYLINE_LINE
        if market == MARKET_TOTAL:
            return self.total_line
        return self.spread_line_away if side == SIDE_AWAY else self.spread_line_home

    def odds_for(self, side: str, market: str) -> OddsValue:
        """Raw price for an outcome."""
        if market == MARKET_MONEYLINE:
            return self.moneyline_away if side == SIDE_AWAY else self.moneyline_home
        if market == MARKET_TOTAL:
            return self.total_over_odds if side == SIDE_OVER else self.total_under_odds
        return self.spread_odds_away if side == SIDE_AWAY else self.spread_odds_home


@dataclass(frozen=True)
class ReferenceLine:
    """Sharp lines captured the first time an event was seen."""

    spread_line_away: Optional[float]
    total_line: Optional[float] = None
    captured_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def from_quote(cls, quote: Quote, captured_at: Optional[datetime] = None) -> ReferenceLine:
        return cls(
            spread_line_away=parse_number(quote.spread_line_away),
            total_line=parse_number(quote.total_line),
            captured_at=captured_at or datetime.utcnow(),
        )


@dataclass(frozen=True)
class Event:
    """A single game and every quote collected for it."""

    event_id: str
    sport: str
    away_team: str
    home_team: str
    commence_time: Optional[datetime] = None
    sharp: Optional[Quote] = None
    soft: Tuple[Quote, ...] = ()
    reference: Optional[ReferenceLine] = None

    def __post_init__(self) -> None:
        # Lists are accepted; the stored tuple keeps the Event hashable.
        if not isinstance(self.soft, tuple):
            object.__setattr__(self, "soft", tuple(self.soft))

    @property
    def matchup(self) -> str:
        return f"{self.away_team} @ {self.home_team}"

    def team_for(self, side: str) -> str:
        """Display name for a side: team names for AWAY/HOME, else the side."""
        if side == SIDE_AWAY:
            return self.away_team
        if side == SIDE_HOME:
            return self.home_team
        return side

    def with_sharp_quote(self, quote: Optional[Quote]) -> Event:
        return replace(self, sharp=quote)

    def with_reference(self, reference: Optional[ReferenceLine]) -> Event:
        return replace(self, reference=reference)
