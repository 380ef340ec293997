"""Fundamental odds mathematics, the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services.

The pillars exposed are:

1. **Normalisation**: books quote in American *or* decimal format, often
   inconsistently within one slate.  :func:`to_american_odds` absorbs this.
2. **Probability**: implied and no-vig (proportional) probabilities.
3. **Market diffs**: line (points) and price (cents) differences between a
   sharp reference quote and a soft competing quote.

Design decisions
----------------
* Inputs may be ``int``, ``float``, numeric strings (``"-110"``, ``"+4.5"``)
  or placeholders (``"N/A"``, ``None``).  Nothing here raises on malformed
  input: one corrupted quote must never crash a whole-slate scan, so bad
  values degrade to a neutral result (0, 50.0 or 50/50).
* Vig removal is proportional rather than Shin: the sharp book's margin is
  small enough (~2-3 %) that favourite-longshot correction is noise at the
  one-decimal precision the pipeline reports.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

import math
from typing import Final, Optional, Tuple, Union

OddsValue = Union[int, float, str, None]

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: Values with ``1.0 < |v| < DECIMAL_ODDS_CEILING`` are read as decimal odds.
#: No American price lives in that band (|American| >= 100).
DECIMAL_ODDS_CEILING: Final[float] = 50.0

#: Returned by :func:`implied_probability` for zero or unusable odds.
COIN_FLIP_PROB: Final[float] = 50.0

#: When *both* sides of a two-way market imply more than this percentage the
#: quote is corrupted (e.g. decimal odds mis-read as American).
CORRUPT_IMPLIED_CEILING: Final[float] = 90.0

#: Placeholders emitted by scrapers and OCR when a market is missing.
_PLACEHOLDERS: Final[frozenset] = frozenset({"", "n/a", "na", "-", "off", "none"})

#: Book shorthand for a zero spread and for +100.
_PICKEM: Final[frozenset] = frozenset({"pk", "pick", "pick'em"})
_EVEN_MONEY: Final[frozenset] = frozenset({"ev", "even", "evs"})


# ---------------------------------------------------------------------------
# Parsing and normalisation
# ---------------------------------------------------------------------------


def parse_number(value: OddsValue) -> Optional[float]:
    """Parse a quote field into a float, or ``None`` when unusable.

    Accepts numbers and numeric strings with an explicit sign
    (``"+4.5"``).  Booleans, NaN, infinities and placeholders return
    ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if text.lower() in _PLACEHOLDERS:
            return None
        if text.lower() in _PICKEM:
            return 0.0
        if text.lower() in _EVEN_MONEY:
            return 100.0
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def to_american_odds(value: OddsValue) -> float:
    """Normalise American *or* decimal odds to American.

    A value ``v`` with ``1.0 < |v| < 50`` is treated as decimal odds::

        to_american_odds(2.50)  → 150.0
        to_american_odds(1.91)  → -109.89
        to_american_odds(-110)  → -110.0   (already American, passed through)

    Returns:
        American odds as a float.  Non-numeric input yields ``0.0``.
    """
    number = parse_number(value)
    if number is None:
        return 0.0
    if 1.0 < abs(number) < DECIMAL_ODDS_CEILING:
        # Negative decimal odds do not exist; treat the magnitude as decimal.
        decimal_odds = abs(number)
        if decimal_odds >= 2.0:
            return (decimal_odds - 1.0) * 100.0
        return -100.0 / (decimal_odds - 1.0)
    return number


def american_to_decimal(american: OddsValue) -> float:
    """Convert odds to decimal (European) format.

    Examples::

        american_to_decimal(-110) → 1.9091
        american_to_decimal(+150) → 2.5000

    Returns ``1.0`` (no payout) for unusable odds rather than raising.
    """
    odds = to_american_odds(american)
    if abs(odds) < 100:
        return 1.0
    if odds > 0:
        return odds / 100.0 + 1.0
    return 100.0 / abs(odds) + 1.0


def format_odds(value: OddsValue) -> str:
    """Display string for a price: ``"+150"``, ``"-110"`` or ``"N/A"``.

    Decimal input is converted to American first and rounded to the
    nearest integer.
    """
    odds = to_american_odds(value)
    if odds == 0.0:
        return "N/A"
    rounded = int(round(odds))
    return f"+{rounded}" if rounded > 0 else str(rounded)


# ---------------------------------------------------------------------------
# Probability
# ---------------------------------------------------------------------------


def implied_probability(odds: OddsValue) -> float:
    """Raw (vig-inclusive) implied probability, as a percentage.

    Examples::

        implied_probability(-110) → 52.38
        implied_probability(+150) → 40.00
        implied_probability(0)    → 50.00   (coin-flip default)
    """
    american = to_american_odds(odds)
    if american == 0.0:
        return COIN_FLIP_PROB
    if american < 0:
        magnitude = abs(american)
        return magnitude / (magnitude + 100.0) * 100.0
    return 100.0 / (american + 100.0) * 100.0


def no_vig_probabilities(odds_a: OddsValue, odds_b: OddsValue) -> Tuple[float, float]:
    """Remove the bookmaker margin from a two-way market.

    Each side's implied probability is rescaled so the pair sums to 100 %.
    Results are rounded to one decimal place and side B is derived as
    ``100 - A`` so the pair always sums to exactly 100.0.

    When both raw probabilities exceed :data:`CORRUPT_IMPLIED_CEILING` the
    inputs are treated as corrupted and ``(50.0, 50.0)`` is returned.
    """
    implied_a = implied_probability(odds_a)
    implied_b = implied_probability(odds_b)

    if implied_a > CORRUPT_IMPLIED_CEILING and implied_b > CORRUPT_IMPLIED_CEILING:
        return COIN_FLIP_PROB, COIN_FLIP_PROB

    total = implied_a + implied_b
    if total <= 0.0:
        return COIN_FLIP_PROB, COIN_FLIP_PROB

    prob_a = round(implied_a / total * 100.0, 1)
    return prob_a, round(100.0 - prob_a, 1)


# ---------------------------------------------------------------------------
# Market diffs
# ---------------------------------------------------------------------------


def _linear_odds(american: float) -> float:
    """Centre American odds on even money: +150 → 50, -110 → -10."""
    return american - 100.0 if american >= 100.0 else american + 100.0


def juice_difference_cents(reference_odds: OddsValue, competing_odds: OddsValue) -> int:
    """Price difference in cents, ``competing - reference``.

    Positive means the competing price is cheaper for the bettor::

        juice_difference_cents(-110, -105) → 5
        juice_difference_cents(-105, +105) → 10
        juice_difference_cents(+150, +140) → -10

    Returns ``0`` when either price is unusable.
    """
    reference = to_american_odds(reference_odds)
    competing = to_american_odds(competing_odds)
    if reference == 0.0 or competing == 0.0:
        return 0
    return int(round(_linear_odds(competing) - _linear_odds(reference)))


def line_difference(reference_line: OddsValue, competing_line: OddsValue) -> float:
    """Point difference ``competing - reference``, rounded to one decimal.

    The sign is side-relative: for a spread, a higher number is better for
    whichever side is being priced (``-3.0`` beats ``-4.0``; ``+4.5`` beats
    ``+4.0``).  Returns ``0.0`` when either line is unusable.
    """
    reference = parse_number(reference_line)
    competing = parse_number(competing_line)
    if reference is None or competing is None:
        return 0.0
    return round(competing - reference, 1) + 0.0
