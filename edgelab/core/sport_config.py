"""Sport-level configuration: all sport-specific constants in one place.

This module is the **registry** for every constant that differs between
sports.  Nowhere else in the codebase should spread ceilings, edge-tier
thresholds, scan-window offsets or Odds API sport keys be hard-coded.

Architecture
------------
:class:`SportConfig` is a frozen dataclass carrying all per-sport constants.
Named constructors (:meth:`SportConfig.nfl`, :meth:`SportConfig.nba`, ...)
return pre-populated instances and :func:`for_sport` resolves a sport tag
(``"NFL"``, ``"nba"``) to one of them.  Unknown tags resolve to
:meth:`SportConfig.generic`, never to ``None``.

Typical usage::

    from edgelab.core.sport_config import for_sport

    cfg = for_sport("NFL")
    cfg.spread_cap            # 14.0

    # Override a single constant for an experiment:
    from dataclasses import replace
    loose_cfg = replace(cfg, spread_cap=17.0)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Final

#: Sport identifier strings used on Events and in log lines.
SPORT_ID_NFL: Final[str] = "NFL"
SPORT_ID_CFB: Final[str] = "CFB"
SPORT_ID_NBA: Final[str] = "NBA"
SPORT_ID_CBB: Final[str] = "CBB"
SPORT_ID_NHL: Final[str] = "NHL"
SPORT_ID_MLB: Final[str] = "MLB"
SPORT_ID_OTHER: Final[str] = "OTHER"

#: Sport families; the structural spread ceiling is set per family.
FAMILY_FOOTBALL: Final[str] = "football"
FAMILY_BASKETBALL: Final[str] = "basketball"
FAMILY_HOCKEY: Final[str] = "hockey"
FAMILY_BASEBALL: Final[str] = "baseball"
FAMILY_OTHER: Final[str] = "other"

#: Sharp reference book used when a config does not name one.
DEFAULT_SHARP_BOOK: Final[str] = "pinnacle"


@dataclass(frozen=True)
class SportConfig:
    """Immutable configuration bundle for a single sport.

    Attributes:
        sport_id: Short tag (``"NFL"``, ``"NBA"``...) carried on Events.
        sport_name: Human-readable name for logging and prompts.
        family: Sport family (football / basketball / hockey / baseball /
            other).

        --- Structural veto ---
        spread_cap: Largest absolute sharp spread the pipeline will price.
            Beyond it the matchup is too lopsided for point/cent edges to
            mean anything.  Football 14, basketball 16, hockey and baseball
            4 (puck line / run line), everything else 10.

        --- Edge tiers ---
        premium_spread_pts / premium_total_pts: Line edge (points) at which
            an edge is badged PREMIUM.
        standard_spread_pts / standard_total_pts: Line edge at which an
            edge is badged STANDARD.

        --- Scan cadence (minutes before start) ---
        first_window_min / second_window_min / lock_window_min: Opening
            times of the three pre-game scan windows.

        --- Market ---
        odds_api_sport_key: The Odds API ``sport`` path segment.
        sharp_book: Odds API bookmaker key used as the reference quote.
    """

    # Identity
    sport_id: str
    sport_name: str
    family: str

    # Structural veto
    spread_cap: float

    # Edge tiers
    premium_spread_pts: float
    premium_total_pts: float
    standard_spread_pts: float
    standard_total_pts: float

    # Scan cadence
    first_window_min: int
    second_window_min: int
    lock_window_min: int

    # Market
    odds_api_sport_key: str
    sharp_book: str = DEFAULT_SHARP_BOOK

    # ------------------------------------------------------------------ #
    #  Named constructors                                                  #
    # ------------------------------------------------------------------ #

    @classmethod
    def nfl(cls) -> SportConfig:
        """NFL: key numbers make half-point edges valuable."""
        return cls(
            sport_id=SPORT_ID_NFL,
            sport_name="NFL",
            family=FAMILY_FOOTBALL,
            spread_cap=14.0,
            premium_spread_pts=0.5,
            premium_total_pts=1.0,
            standard_spread_pts=0.5,
            standard_total_pts=0.5,
            first_window_min=150,
            second_window_min=90,
            lock_window_min=45,
            odds_api_sport_key="americanfootball_nfl",
        )

    @classmethod
    def ncaa_football(cls) -> SportConfig:
        return cls(
            sport_id=SPORT_ID_CFB,
            sport_name="NCAA Football",
            family=FAMILY_FOOTBALL,
            spread_cap=14.0,
            premium_spread_pts=0.5,
            premium_total_pts=0.5,
            standard_spread_pts=0.5,
            standard_total_pts=0.5,
            first_window_min=90,
            second_window_min=50,
            lock_window_min=25,
            odds_api_sport_key="americanfootball_ncaaf",
        )

    @classmethod
    def nba(cls) -> SportConfig:
        """NBA: totals move in bigger steps, so tier thresholds are wider."""
        return cls(
            sport_id=SPORT_ID_NBA,
            sport_name="NBA",
            family=FAMILY_BASKETBALL,
            spread_cap=16.0,
            premium_spread_pts=1.0,
            premium_total_pts=1.5,
            standard_spread_pts=0.5,
            standard_total_pts=1.0,
            first_window_min=90,
            second_window_min=50,
            lock_window_min=25,
            odds_api_sport_key="basketball_nba",
        )

    @classmethod
    def ncaa_basketball(cls) -> SportConfig:
        return cls(
            sport_id=SPORT_ID_CBB,
            sport_name="NCAA Basketball",
            family=FAMILY_BASKETBALL,
            spread_cap=16.0,
            premium_spread_pts=0.5,
            premium_total_pts=0.5,
            standard_spread_pts=0.5,
            standard_total_pts=0.5,
            first_window_min=90,
            second_window_min=50,
            lock_window_min=25,
            odds_api_sport_key="basketball_ncaab",
        )

    @classmethod
    def nhl(cls) -> SportConfig:
        """NHL: the puck line is ±1.5, so any spread past 4 is a data error."""
        return cls(
            sport_id=SPORT_ID_NHL,
            sport_name="NHL",
            family=FAMILY_HOCKEY,
            spread_cap=4.0,
            premium_spread_pts=0.5,
            premium_total_pts=0.5,
            standard_spread_pts=0.5,
            standard_total_pts=0.5,
            first_window_min=105,
            second_window_min=60,
            lock_window_min=30,
            odds_api_sport_key="icehockey_nhl",
        )

    @classmethod
    def mlb(cls) -> SportConfig:
        return cls(
            sport_id=SPORT_ID_MLB,
            sport_name="MLB",
            family=FAMILY_BASEBALL,
            spread_cap=4.0,
            premium_spread_pts=0.5,
            premium_total_pts=0.5,
            standard_spread_pts=0.5,
            standard_total_pts=0.5,
            first_window_min=90,
            second_window_min=50,
            lock_window_min=25,
            odds_api_sport_key="baseball_mlb",
        )

    @classmethod
    def generic(cls, sport_id: str = SPORT_ID_OTHER) -> SportConfig:
        """Fallback for sports without a dedicated constructor."""
        return cls(
            sport_id=sport_id,
            sport_name=sport_id,
            family=FAMILY_OTHER,
            spread_cap=10.0,
            premium_spread_pts=0.5,
            premium_total_pts=0.5,
            standard_spread_pts=0.5,
            standard_total_pts=0.5,
            first_window_min=90,
            second_window_min=50,
            lock_window_min=25,
            odds_api_sport_key="",
        )

    def __repr__(self) -> str:
        return (
            f"SportConfig(sport_id={self.sport_id!r}, "
            f"family={self.family!r}, "
            f"spread_cap={self.spread_cap})"
        )


_REGISTRY: Dict[str, SportConfig] = {
    cfg.sport_id: cfg
    for cfg in (
        SportConfig.nfl(),
        SportConfig.ncaa_football(),
        SportConfig.nba(),
        SportConfig.ncaa_basketball(),
        SportConfig.nhl(),
        SportConfig.mlb(),
    )
}


def for_sport(sport: str) -> SportConfig:
    """Resolve a sport tag (case-insensitive) to its :class:`SportConfig`."""
    key = (sport or "").strip().upper()
    cfg = _REGISTRY.get(key)
    if cfg is None:
        return SportConfig.generic(key or SPORT_ID_OTHER)
    return cfg


def supported_sports() -> list:
    """Sport tags with a dedicated configuration, in registry order."""
    return list(_REGISTRY)
