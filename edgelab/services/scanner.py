"""
Cross-book edge scanner.

For one Event, finds the best soft-book price on each of the six standard
outcomes and measures it against the sharp reference quote:

    away spread · home spread · away moneyline · home moneyline
    total over  · total under

Filtering, in order, per outcome:
    1. Soft quotes without a usable number for the outcome are skipped.
    2. Outliers (|American odds| > 2000) are OCR / data-entry errors and are
       excluded from consideration entirely.
    3. Comparisons more than 50 cents off the sharp price are "ghost edges"
       (stale or bad quotes) and are discarded.

Ranking: spreads by ``line_value * 10 + price_value`` (a half point beats any
realistic juice gap); moneylines and totals by ``price_value`` alone.

The scanner is pure: no I/O, results depend only on the Event passed in.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Final, List, Optional, Sequence, Tuple

from edgelab.core.odds_math import (
    OddsValue,
    juice_difference_cents,
    line_difference,
    parse_number,
    to_american_odds,
)
from edgelab.core.quote import (
    MARKET_MONEYLINE,
    MARKET_SPREAD,
    MARKET_TOTAL,
    SIDE_AWAY,
    SIDE_HOME,
    SIDE_OVER,
    SIDE_UNDER,
    Event,
    Quote,
)
from edgelab.core.sport_config import for_sport

logger = logging.getLogger(__name__)

#: Any quote beyond this magnitude (American) is treated as a data error.
OUTLIER_ODDS: Final[float] = 2000.0

#: Real edges are single-digit to low-double-digit cents.
GHOST_EDGE_CENTS: Final[int] = 50

#: Spread points are weighted this many cents each when ranking.
POINT_WEIGHT_CENTS: Final[int] = 10

#: The six outcomes scanned, in report order.
OUTCOMES: Final[Tuple[Tuple[str, str], ...]] = (
    (SIDE_AWAY, MARKET_SPREAD),
    (SIDE_HOME, MARKET_SPREAD),
    (SIDE_AWAY, MARKET_MONEYLINE),
    (SIDE_HOME, MARKET_MONEYLINE),
    (SIDE_OVER, MARKET_TOTAL),
    (SIDE_UNDER, MARKET_TOTAL),
)

EDGE_PREMIUM: Final[str] = "PREMIUM"
EDGE_STANDARD: Final[str] = "STANDARD"
EDGE_NONE: Final[str] = "NONE"

#: Juice gaps at which an edge is badged regardless of points.
PREMIUM_JUICE_CENTS: Final[int] = 15
STANDARD_JUICE_CENTS: Final[int] = 5


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SideCandidate:
    """Best soft price found for one outcome, versus the sharp reference."""

    side: str
    market: str
    sharp_line: OddsValue
    sharp_odds: OddsValue
    best_line: OddsValue
    best_odds: OddsValue
    best_book: str
    line_value: float           # points, soft - sharp
    price_value: int            # cents, positive = cheaper than sharp
    has_positive_value: bool
    supporting_books: int = 0   # distinct books showing any positive edge
    books_compared: int = 0
    score: float = 0.0

    @property
    def label(self) -> str:
        return f"{self.side} {self.market}"

    def to_dict(self) -> dict:
        return {
            "side": self.side,
            "market": self.market,
            "sharp_line": self.sharp_line,
            "sharp_odds": self.sharp_odds,
            "best_line": self.best_line,
            "best_odds": self.best_odds,
            "best_book": self.best_book,
            "line_value": self.line_value,
            "price_value": self.price_value,
            "has_positive_value": self.has_positive_value,
            "supporting_books": self.supporting_books,
            "books_compared": self.books_compared,
            "score": self.score,
        }


@dataclass(frozen=True)
class _Comparison:
    book: str
    line: OddsValue
    odds: OddsValue
    line_value: float
    price_value: int
    score: float
    positive: bool


# ---------------------------------------------------------------------------
# Value rules
# ---------------------------------------------------------------------------

def has_positive_value(market: str, line_value: float, price_value: int) -> bool:
    """Spread: better number, or same number at a cheaper price.
    Moneyline / total: cheaper price."""
    if market == MARKET_SPREAD:
        return line_value > 0 or (line_value == 0 and price_value > 0)
    return price_value > 0


def composite_score(market: str, line_value: float, price_value: int) -> float:
    if market == MARKET_SPREAD:
        return line_value * POINT_WEIGHT_CENTS + price_value
    return float(price_value)


def classify_edge(
    candidate: SideCandidate,
    sport: str,
    confidence: Optional[str] = None,
) -> str:
    """Badge an edge PREMIUM, STANDARD or NONE.

    HIGH oracle confidence or a 15+ cent juice gap is always premium;
    otherwise the line edge is compared against sport-specific thresholds.
    """
    if not candidate.has_positive_value:
        return EDGE_NONE

    cfg = for_sport(sport)
    points = abs(candidate.line_value)
    cents = candidate.price_value

    if (confidence or "").upper() == "HIGH" or cents >= PREMIUM_JUICE_CENTS:
        return EDGE_PREMIUM
    if candidate.market == MARKET_TOTAL:
        premium_pts, standard_pts = cfg.premium_total_pts, cfg.standard_total_pts
    else:
        premium_pts, standard_pts = cfg.premium_spread_pts, cfg.standard_spread_pts
    if candidate.market != MARKET_MONEYLINE and points >= premium_pts:
        return EDGE_PREMIUM
    if cents >= STANDARD_JUICE_CENTS:
        return EDGE_STANDARD
    if candidate.market != MARKET_MONEYLINE and points >= standard_pts:
        return EDGE_STANDARD
    return EDGE_NONE


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------

class MarketScanner:
    """Finds the best soft price per outcome relative to the sharp quote."""

    def __init__(
        self,
        outlier_odds: float = OUTLIER_ODDS,
        ghost_edge_cents: int = GHOST_EDGE_CENTS,
    ):
        self.outlier_odds = outlier_odds
        self.ghost_edge_cents = ghost_edge_cents

    def scan(self, event: Event) -> List[SideCandidate]:
        """Scan one Event.  Returns ``[]`` when it has no sharp quote."""
        if event.sharp is None:
            logger.debug("Scan skipped for %s: no sharp quote", event.event_id)
            return []
        return self.scan_quotes(event.sharp, event.soft)

    def scan_quotes(self, sharp: Quote, softs: Sequence[Quote]) -> List[SideCandidate]:
        """One :class:`SideCandidate` per outcome with at least one valid quote.

        Outcomes with zero valid soft quotes are omitted, not zeroed.
        """
        results: List[SideCandidate] = []
        for side, market in OUTCOMES:
            candidate = self._scan_outcome(side, market, sharp, softs)
            if candidate is not None:
                results.append(candidate)
        return results

    # ------------------------------------------------------------------

    def _usable_odds(self, raw: OddsValue) -> Optional[float]:
        odds = to_american_odds(raw)
        if odds == 0.0 or abs(odds) > self.outlier_odds:
            return None
        return odds

    def _scan_outcome(
        self,
        side: str,
        market: str,
        sharp: Quote,
        softs: Sequence[Quote],
    ) -> Optional[SideCandidate]:
        sharp_line = sharp.line_for(side, market)
        sharp_odds = sharp.odds_for(side, market)
        needs_line = market != MARKET_MONEYLINE

        if self._usable_odds(sharp_odds) is None or (
            needs_line and parse_number(sharp_line) is None
        ):
            logger.debug(
                "No usable sharp %s %s from %s (line=%r odds=%r)",
                side, market, sharp.book, sharp_line, sharp_odds,
            )
            return None

        comparisons: List[_Comparison] = []
        for soft in softs:
            soft_line = soft.line_for(side, market)
            soft_odds = soft.odds_for(side, market)

            if self._usable_odds(soft_odds) is None:
                logger.debug(
                    "Skipping %s %s %s: unusable odds %r", soft.book, side, market, soft_odds,
                )
                continue
            if needs_line and parse_number(soft_line) is None:
                logger.debug(
                    "Skipping %s %s %s: unusable line %r", soft.book, side, market, soft_line,
                )
                continue

            line_value = line_difference(sharp_line, soft_line) if needs_line else 0.0
            price_value = juice_difference_cents(sharp_odds, soft_odds)
            if abs(price_value) > self.ghost_edge_cents:
                logger.debug(
                    "Ghost edge discarded: %s %s %s %+d cents vs sharp",
                    soft.book, side, market, price_value,
                )
                continue

            comparisons.append(
                _Comparison(
                    book=soft.book,
                    line=soft_line,
                    odds=soft_odds,
                    line_value=line_value,
                    price_value=price_value,
                    score=composite_score(market, line_value, price_value),
                    positive=has_positive_value(market, line_value, price_value),
                )
            )

        if not comparisons:
            return None

        # max() keeps the first book on ties
        best = max(comparisons, key=lambda c: c.score)
        supporting = {c.book.lower() for c in comparisons if c.positive}

        return SideCandidate(
            side=side,
            market=market,
            sharp_line=sharp_line,
            sharp_odds=sharp_odds,
            best_line=best.line,
            best_odds=best.odds,
            best_book=best.book,
            line_value=best.line_value,
            price_value=best.price_value,
            has_positive_value=best.positive,
            supporting_books=len(supporting),
            books_compared=len(comparisons),
            score=best.score,
        )


def scan_event(event: Event) -> List[SideCandidate]:
    """Scan with default thresholds."""
    return MarketScanner().scan(event)


def positive_candidates(candidates: Sequence[SideCandidate]) -> List[SideCandidate]:
    return [c for c in candidates if c.has_positive_value]


def best_candidate(candidates: Sequence[SideCandidate]) -> Optional[SideCandidate]:
    """Highest-scoring positive-value candidate, or ``None``."""
    positives = positive_candidates(candidates)
    if not positives:
        return None
    return max(positives, key=lambda c: c.score)


def candidates_by_outcome(candidates: Sequence[SideCandidate]) -> Dict[Tuple[str, str], SideCandidate]:
    return {(c.side, c.market): c for c in candidates}
