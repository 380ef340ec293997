"""
Veto pipeline: turns a scanned Event into a final Decision.

State machine (one run per analysis; a re-analysis starts again at NEW)::

    NEW → STRUCTURAL_CHECK → MATH_SCAN → CONSENSUS_CHECK → EXTERNAL_JUDGEMENT
        → RECONCILE → SAFETY_CHECK → JUICE_CHECK → {PLAYABLE | LEAN | PASS}

Cheap stages run first so that a game is rejected before the oracle (the
only slow, paid call) is consulted.  Every rejection is a terminal PASS
Decision carrying a reason code; nothing escapes :meth:`VetoPipeline.analyze`
as an exception.

Reason codes
------------
    DATA_MISSING       sharp or soft quotes absent / unusable
    SPREAD_CAP         sharp spread beyond the sport's structural ceiling
    NO_VALUE           no outcome shows positive value
    MARKET_MATURITY    best edge supported by fewer than 2 books
    NO_EDGE_DIRECTION  oracle named no favoured side
    SITUATIONAL_PASS   oracle named a side but asked to pass
    JUICE_VETO         final price worse than -160
    AI_ERROR           oracle failed or was unparseable after retries

Verdicts
--------
    PLAYABLE  survived every stage on a side with computed positive value
    LEAN      survived every stage, but the oracle's side had no computed
              edge and is priced at the sharp number
    PASS      rejected; ``veto_reason`` says why

Environment:
    JUICE_CEILING         worst acceptable American price   (default -160)
    MIN_SUPPORTING_BOOKS  books needed behind the best edge  (default 2)
    ORACLE_TIMEOUT_S      per-attempt oracle timeout         (default 90)
    ORACLE_RETRIES        retries after the first attempt    (default 1)
"""

import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Final, List, Optional, Tuple

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from edgelab.core.odds_math import (
    format_odds,
    implied_probability,
    no_vig_probabilities,
    parse_number,
    to_american_odds,
)
from edgelab.core.quote import (
    MARKET_MONEYLINE,
    MARKET_SPREAD,
    MARKET_TOTAL,
    SIDE_AWAY,
    SIDE_OVER,
    SIDE_UNDER,
    Event,
)
from edgelab.core.sport_config import for_sport
from edgelab.services.oracle import (
    BaseJudgementOracle,
    OracleError,
    OracleJudgement,
    OracleRequest,
    parse_judgement,
)
from edgelab.services.scanner import (
    EDGE_NONE,
    MarketScanner,
    SideCandidate,
    best_candidate,
    classify_edge,
    positive_candidates,
)

logger = logging.getLogger(__name__)

JUICE_CEILING = float(os.getenv("JUICE_CEILING", "-160"))
MIN_SUPPORTING_BOOKS = int(os.getenv("MIN_SUPPORTING_BOOKS", "2"))
ORACLE_TIMEOUT_S = float(os.getenv("ORACLE_TIMEOUT_S", "90"))
ORACLE_RETRIES = int(os.getenv("ORACLE_RETRIES", "1"))

#: Moneyline underdogs below this implied probability (~+200) are swapped
#: for a same-side spread when one has value.
LONGSHOT_IMPLIED_PCT: Final[float] = 33.0

#: Standard odds floor for spread/total picks; a worse sharp price wins.
STANDARD_ODDS_FLOOR: Final[float] = -130.0

#: Backoff after oracle attempt n: ``ORACLE_BACKOFF_S * n``.
ORACLE_BACKOFF_S: Final[float] = 1.0

# Verdicts
VERDICT_PLAYABLE: Final[str] = "PLAYABLE"
VERDICT_LEAN: Final[str] = "LEAN"
VERDICT_PASS: Final[str] = "PASS"
VERDICTS: Final[Tuple[str, ...]] = (VERDICT_PLAYABLE, VERDICT_LEAN, VERDICT_PASS)

# Reason codes
DATA_MISSING: Final[str] = "DATA_MISSING"
SPREAD_CAP: Final[str] = "SPREAD_CAP"
NO_VALUE: Final[str] = "NO_VALUE"
MARKET_MATURITY: Final[str] = "MARKET_MATURITY"
NO_EDGE_DIRECTION: Final[str] = "NO_EDGE_DIRECTION"
SITUATIONAL_PASS: Final[str] = "SITUATIONAL_PASS"
JUICE_VETO: Final[str] = "JUICE_VETO"
AI_ERROR: Final[str] = "AI_ERROR"

# Stages
STAGE_NEW: Final[str] = "NEW"
STAGE_STRUCTURAL_CHECK: Final[str] = "STRUCTURAL_CHECK"
STAGE_MATH_SCAN: Final[str] = "MATH_SCAN"
STAGE_CONSENSUS_CHECK: Final[str] = "CONSENSUS_CHECK"
STAGE_EXTERNAL_JUDGEMENT: Final[str] = "EXTERNAL_JUDGEMENT"
STAGE_RECONCILE: Final[str] = "RECONCILE"
STAGE_SAFETY_CHECK: Final[str] = "SAFETY_CHECK"
STAGE_JUICE_CHECK: Final[str] = "JUICE_CHECK"
STAGE_PLAYABLE: Final[str] = "PLAYABLE"
STAGE_PASS: Final[str] = "PASS"

#: Reason codes raised by the pipeline's own rules rather than the oracle.
_RULE_VETOES: Final[frozenset] = frozenset(
    {DATA_MISSING, SPREAD_CAP, NO_VALUE, MARKET_MATURITY, JUICE_VETO}
)


# ---------------------------------------------------------------------------
# Decision
# ---------------------------------------------------------------------------

@dataclass
class Decision:
    """Terminal output of one pipeline run.  Superseded, never mutated, by
    the next run for the same event."""

    event_id: str
    verdict: str
    stage: str                                  # where the state machine stopped
    veto_reason: Optional[str] = None           # reason code when PASS
    reason: str = ""                            # human-readable cause
    candidate: Optional[SideCandidate] = None
    research_summary: str = ""
    edge_narrative: str = ""

    # Recommendation
    recommendation: Optional[str] = None        # "Boston Celtics Spread"
    rec_line: Optional[str] = None              # "-3.0 (-110)" or "+150"
    rec_probability: Optional[float] = None     # sharp no-vig %, chosen side
    sharp_implied_prob: Optional[float] = None  # sharp no-vig %, away ML
    soft_best_odds: Optional[str] = None
    soft_best_book: Optional[str] = None
    line_value_points: float = 0.0
    line_value_cents: int = 0

    # Floors: the sharp number/price beyond which the edge disappears
    line_floor: Optional[str] = None
    odds_floor: Optional[str] = None
    floor_reason: Optional[str] = None

    confidence: Optional[str] = None
    edge_quality: str = EDGE_NONE

    def __post_init__(self) -> None:
        if self.verdict not in VERDICTS:
            raise ValueError(f"Unknown verdict {self.verdict!r}")
        if self.verdict == VERDICT_PASS and not self.veto_reason:
            raise ValueError("A PASS decision must carry a veto reason code")
        if self.verdict == VERDICT_PLAYABLE and (
            self.candidate is None or not self.candidate.has_positive_value
        ):
            raise ValueError("A PLAYABLE decision needs a positive-value candidate")
        if self.verdict == VERDICT_LEAN and self.candidate is None:
            raise ValueError("A LEAN decision needs a candidate")

    @property
    def is_playable(self) -> bool:
        return self.verdict == VERDICT_PLAYABLE

    @property
    def veto_triggered(self) -> bool:
        """True when a pipeline rule (not the oracle) rejected the game."""
        return self.veto_reason in _RULE_VETOES

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "verdict": self.verdict,
            "stage": self.stage,
            "veto_reason": self.veto_reason,
            "veto_triggered": self.veto_triggered,
            "reason": self.reason,
            "candidate": self.candidate.to_dict() if self.candidate else None,
            "research_summary": self.research_summary,
            "edge_narrative": self.edge_narrative,
            "recommendation": self.recommendation,
            "rec_line": self.rec_line,
            "rec_probability": self.rec_probability,
            "sharp_implied_prob": self.sharp_implied_prob,
            "soft_best_odds": self.soft_best_odds,
            "soft_best_book": self.soft_best_book,
            "line_value_points": self.line_value_points,
            "line_value_cents": self.line_value_cents,
            "line_floor": self.line_floor,
            "odds_floor": self.odds_floor,
            "floor_reason": self.floor_reason,
            "confidence": self.confidence,
            "edge_quality": self.edge_quality,
        }


def pass_decision(
    event_id: str,
    reason_code: str,
    reason: str,
    stage: str,
    **extra,
) -> Decision:
    """Terminal PASS with a reason string formatted ``CODE: detail``."""
    return Decision(
        event_id=event_id,
        verdict=VERDICT_PASS,
        stage=stage,
        veto_reason=reason_code,
        reason=f"{reason_code}: {reason}",
        **extra,
    )


# ---------------------------------------------------------------------------
# Decision makers
# ---------------------------------------------------------------------------

class BaseDecisionMaker(ABC):
    """Contract for anything that turns an Event into a Decision.

    :class:`VetoPipeline` is the canonical implementation; alternative
    policies (e.g. probability-threshold edges) plug in here.
    """

    @abstractmethod
    def analyze(self, event: Event) -> Decision:
        """Run one full analysis.  Must not raise for bad market data."""


class VetoPipeline(BaseDecisionMaker):
    """Canonical ordered veto pipeline.

    Usage::

        pipeline = VetoPipeline(oracle=GeminiJudgementOracle())
        decision = pipeline.analyze(event)
        if decision.is_playable:
            ...
    """

    def __init__(
        self,
        oracle: Optional[BaseJudgementOracle],
        scanner: Optional[MarketScanner] = None,
        juice_ceiling: float = JUICE_CEILING,
        min_supporting_books: int = MIN_SUPPORTING_BOOKS,
        oracle_timeout: float = ORACLE_TIMEOUT_S,
        oracle_retries: int = ORACLE_RETRIES,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.oracle = oracle
        self.scanner = scanner or MarketScanner()
        self.juice_ceiling = juice_ceiling
        self.min_supporting_books = min_supporting_books
        self.oracle_timeout = oracle_timeout
        self.oracle_retries = max(0, oracle_retries)
        self._sleep = sleep

    def analyze(self, event: Event) -> Decision:
        decision = self._run(event)
        logger.info(
            "%s %s: %s (%s)%s",
            event.sport, event.matchup, decision.verdict, decision.stage,
            f" {decision.reason}" if decision.veto_reason else "",
        )
        return decision

    # ------------------------------------------------------------------

    def _run(self, event: Event) -> Decision:
        # Events are frozen, so `event` is a consistent snapshot for the run.
        cfg = for_sport(event.sport)
        sharp = event.sharp

        # --- 1. Structural price veto -----------------------------------
        _enter(event, STAGE_STRUCTURAL_CHECK)
        if sharp is None:
            return pass_decision(
                event.event_id, DATA_MISSING, "No sharp reference quote.",
                STAGE_STRUCTURAL_CHECK,
            )

        spread = parse_number(sharp.spread_line_away)
        if spread is None:
            spread = parse_number(sharp.spread_line_home)
        if spread is not None and abs(spread) > cfg.spread_cap:
            return pass_decision(
                event.event_id, SPREAD_CAP,
                f"Spread is {abs(spread):g} points "
                f"(exceeds {cfg.spread_cap:g} limit for {cfg.sport_id}).",
                STAGE_STRUCTURAL_CHECK,
                research_summary="Price veto triggered before research.",
            )

        # --- 2. Math scan / no-edge veto --------------------------------
        _enter(event, STAGE_MATH_SCAN)
        sharp_prob, _ = no_vig_probabilities(sharp.moneyline_away, sharp.moneyline_home)
        if not event.soft:
            return pass_decision(
                event.event_id, DATA_MISSING, "No soft book quotes to compare.",
                STAGE_MATH_SCAN, sharp_implied_prob=sharp_prob,
            )

        candidates = self.scanner.scan(event)
        if not candidates:
            return pass_decision(
                event.event_id, DATA_MISSING,
                "No usable soft quotes for any outcome.",
                STAGE_MATH_SCAN, sharp_implied_prob=sharp_prob,
            )

        positives = positive_candidates(candidates)
        if not positives:
            return pass_decision(
                event.event_id, NO_VALUE,
                "No positive line or price value found on any side.",
                STAGE_MATH_SCAN,
                research_summary=(
                    f"Math scan complete. All soft book lines are equal or "
                    f"worse than {sharp.book}."
                ),
                sharp_implied_prob=sharp_prob,
            )

        # --- 3. Consensus / market maturity veto -----------------------
        _enter(event, STAGE_CONSENSUS_CHECK)
        best = best_candidate(positives)
        if best.supporting_books < self.min_supporting_books:
            return pass_decision(
                event.event_id, MARKET_MATURITY,
                f"Best edge ({best.label} @ {best.best_book}) is supported by "
                f"{best.supporting_books} book(s); need {self.min_supporting_books}.",
                STAGE_CONSENSUS_CHECK,
                candidate=best, sharp_implied_prob=sharp_prob,
            )

        # --- 4. External situational judgement --------------------------
        _enter(event, STAGE_EXTERNAL_JUDGEMENT)
        request = build_oracle_request(event, positives)
        text, failure = self._consult_oracle(request)
        if failure is not None:
            return pass_decision(
                event.event_id, AI_ERROR, failure, STAGE_EXTERNAL_JUDGEMENT,
                sharp_implied_prob=sharp_prob,
            )

        judgement = parse_judgement(text)
        if judgement is None:
            return pass_decision(
                event.event_id, AI_ERROR, "Oracle response could not be parsed.",
                STAGE_EXTERNAL_JUDGEMENT, sharp_implied_prob=sharp_prob,
            )

        summary = _research_summary(event, judgement)
        if judgement.recommended_side is None:
            return pass_decision(
                event.event_id, NO_EDGE_DIRECTION,
                judgement.reasoning or "Oracle found no situational edge direction.",
                STAGE_EXTERNAL_JUDGEMENT,
                research_summary=summary, edge_narrative=judgement.reasoning,
                sharp_implied_prob=sharp_prob, confidence=judgement.confidence,
            )
        if not judgement.is_playable:
            return pass_decision(
                event.event_id, SITUATIONAL_PASS,
                judgement.reasoning or "Oracle did not find an aligned edge.",
                STAGE_EXTERNAL_JUDGEMENT,
                research_summary=summary, edge_narrative=judgement.reasoning,
                sharp_implied_prob=sharp_prob, confidence=judgement.confidence,
            )

        # --- 5. Side reconciliation -------------------------------------
        _enter(event, STAGE_RECONCILE)
        selected = self._reconcile(event, judgement, positives)
        if selected is None:
            return pass_decision(
                event.event_id, DATA_MISSING,
                f"Sharp quote cannot price the oracle's pick "
                f"({judgement.recommended_side} {judgement.recommended_market}).",
                STAGE_RECONCILE,
                research_summary=summary, sharp_implied_prob=sharp_prob,
            )

        # --- 6. Underdog safety -----------------------------------------
        _enter(event, STAGE_SAFETY_CHECK)
        selected = self._apply_underdog_safety(event, selected, positives)

        # --- 7. Juice ceiling -------------------------------------------
        _enter(event, STAGE_JUICE_CHECK)
        price = to_american_odds(selected.best_odds)
        if price < self.juice_ceiling:
            return pass_decision(
                event.event_id, JUICE_VETO,
                f"Recommended odds {format_odds(price)} are worse than "
                f"{format_odds(self.juice_ceiling)} limit.",
                STAGE_JUICE_CHECK,
                candidate=selected,
                research_summary=(
                    "Oracle liked the spot, but the price is too expensive.\n\n"
                    f"Situation favors: {judgement.situation_favors}"
                ),
                edge_narrative=judgement.reasoning,
                sharp_implied_prob=sharp_prob,
                confidence=judgement.confidence,
            )

        # --- 8. Assembly -------------------------------------------------
        return self._assemble(event, selected, judgement, summary, sharp_prob)

    # ------------------------------------------------------------------

    def _consult_oracle(self, request: OracleRequest) -> Tuple[Optional[str], Optional[str]]:
        """Call the oracle with timeout and retry.

        Returns ``(text, None)`` on success or ``(None, failure reason)``.
        """
        if self.oracle is None:
            return None, "No judgement oracle configured."

        attempts = self.oracle_retries + 1

        def log_attempt(retry_state):
            logger.warning(
                "Oracle attempt %d/%d failed for %s: %s",
                retry_state.attempt_number, attempts, request.event_id,
                retry_state.outcome.exception(),
            )

        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_incrementing(start=ORACLE_BACKOFF_S, increment=ORACLE_BACKOFF_S),
            # The oracle is a black box; any failure becomes AI_ERROR.
            retry=retry_if_exception_type(Exception),
            after=log_attempt,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            return retrying(self._judge_once, request), None
        except Exception as exc:
            return None, f"Oracle call failed: {exc} ({attempts} attempt(s))"

    def _judge_once(self, request: OracleRequest) -> str:
        text = self.oracle.judge(request, timeout=self.oracle_timeout)
        if not text or not text.strip():
            raise OracleError("Oracle returned empty text.")
        return text

    def _reconcile(
        self,
        event: Event,
        judgement: OracleJudgement,
        positives: List[SideCandidate],
    ) -> Optional[SideCandidate]:
        """Match the oracle's pick against computed value.

        Preference: same side and market → same side, any market → the
        oracle's outcome priced at the sharp number (zero edge).
        """
        side = judgement.recommended_side
        market = _market_for_side(side, judgement.recommended_market)

        for c in positives:
            if c.side == side and c.market == market:
                return c
        for c in positives:
            if c.side == side:
                logger.info(
                    "Oracle picked %s %s for %s; using valued %s instead",
                    side, market, event.matchup, c.market,
                )
                return c

        logger.info(
            "Oracle picked %s %s for %s with no computed edge; pricing at %s",
            side, market, event.matchup, event.sharp.book,
        )
        return _reference_candidate(event, side, market)

    def _apply_underdog_safety(
        self,
        event: Event,
        selected: SideCandidate,
        positives: List[SideCandidate],
    ) -> SideCandidate:
        if selected.market != MARKET_MONEYLINE:
            return selected
        if implied_probability(selected.best_odds) >= LONGSHOT_IMPLIED_PCT:
            return selected

        for c in positives:
            if c.side == selected.side and c.market == MARKET_SPREAD:
                logger.info(
                    "[Safety] %s: switched risky ML (%s) to spread %s",
                    event.matchup, format_odds(selected.best_odds), c.best_line,
                )
                return c
        return selected

    def _assemble(
        self,
        event: Event,
        selected: SideCandidate,
        judgement: OracleJudgement,
        summary: str,
        sharp_prob: float,
    ) -> Decision:
        team = event.team_for(selected.side)
        odds_text = format_odds(selected.best_odds)
        if selected.market == MARKET_MONEYLINE:
            rec_line = odds_text
        else:
            rec_line = f"{format_line(selected.side, selected.market, selected.best_line)} ({odds_text})"

        line_floor, odds_floor, floor_reason = compute_floor(selected)
        verdict = VERDICT_PLAYABLE if selected.has_positive_value else VERDICT_LEAN

        return Decision(
            event_id=event.event_id,
            verdict=verdict,
            stage=STAGE_PLAYABLE,
            candidate=selected,
            research_summary=summary + f"\nConfidence: {judgement.confidence}",
            edge_narrative=judgement.reasoning,
            recommendation=f"{team} {selected.market}",
            rec_line=rec_line,
            rec_probability=side_probability(event, selected.side),
            sharp_implied_prob=sharp_prob,
            soft_best_odds=odds_text,
            soft_best_book=selected.best_book,
            line_value_points=selected.line_value,
            line_value_cents=max(selected.price_value, 0),
            line_floor=line_floor,
            odds_floor=odds_floor,
            floor_reason=floor_reason,
            confidence=judgement.confidence,
            edge_quality=classify_edge(selected, event.sport, judgement.confidence),
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _enter(event: Event, stage: str) -> None:
    logger.debug("%s → %s", event.event_id, stage)


def _market_for_side(side: str, market: Optional[str]) -> str:
    """Coerce the oracle's market to one that exists for its side."""
    if side in (SIDE_OVER, SIDE_UNDER):
        return MARKET_TOTAL
    if market in (MARKET_SPREAD, MARKET_MONEYLINE):
        return market
    return MARKET_SPREAD


def _reference_candidate(event: Event, side: str, market: str) -> Optional[SideCandidate]:
    """Price an outcome at the sharp number: a valid, zero-edge pick."""
    sharp = event.sharp
    line = sharp.line_for(side, market)
    odds = sharp.odds_for(side, market)
    if to_american_odds(odds) == 0.0:
        return None
    if market != MARKET_MONEYLINE and parse_number(line) is None:
        return None
    return SideCandidate(
        side=side,
        market=market,
        sharp_line=line,
        sharp_odds=odds,
        best_line=line,
        best_odds=odds,
        best_book=sharp.book,
        line_value=0.0,
        price_value=0,
        has_positive_value=False,
    )


def format_line(side: str, market: str, line) -> str:
    """``-3.5`` / ``+4.0`` for spreads, ``o45.5`` / ``u45.5`` for totals."""
    number = parse_number(line)
    if number is None:
        return str(line)
    if market == MARKET_TOTAL:
        return f"{'o' if side == SIDE_OVER else 'u'}{number:g}"
    if number == 0:
        return "PK"
    return f"{number:+.1f}"


def compute_floor(candidate: SideCandidate) -> Tuple[Optional[str], Optional[str], str]:
    """Sharp number/price beyond which the edge disappears.

    Spread/total: the sharp line, priced at the worse of -130 and the sharp
    odds.  Moneyline: the sharp price.
    """
    if candidate.market == MARKET_MONEYLINE:
        return None, format_odds(candidate.sharp_odds), "Matches sharp price"

    line_floor = format_line(candidate.side, candidate.market, candidate.sharp_line)
    sharp_odds = to_american_odds(candidate.sharp_odds)
    odds_floor = format_odds(min(sharp_odds, STANDARD_ODDS_FLOOR))
    if candidate.market == MARKET_SPREAD:
        return line_floor, odds_floor, "Matches sharp line - no edge below this"
    return line_floor, odds_floor, "Matches sharp line"


def side_probability(event: Event, side: str) -> float:
    """Sharp no-vig probability (%) for a side."""
    sharp = event.sharp
    if side in (SIDE_OVER, SIDE_UNDER):
        over, under = no_vig_probabilities(sharp.total_over_odds, sharp.total_under_odds)
        return over if side == SIDE_OVER else under
    away, home = no_vig_probabilities(sharp.moneyline_away, sharp.moneyline_home)
    return away if side == SIDE_AWAY else home


def movement_note(event: Event) -> str:
    """Describe sharp spread movement since the event was first seen."""
    reference = event.reference
    current = parse_number(event.sharp.spread_line_away) if event.sharp else None
    if reference is None or reference.spread_line_away is None or current is None:
        return "Movement: No reference line data available (first time seen)."

    diff = current - reference.spread_line_away
    if abs(diff) < 0.1:
        return "Movement: Line is stable."
    direction = "TOWARD" if diff < 0 else "AGAINST"
    return f"Movement: Sharps moved {abs(diff):.1f} points {direction} {event.away_team}."


def _value_line(event: Event, c: SideCandidate) -> str:
    parts = []
    if c.line_value > 0:
        parts.append(f"+{c.line_value:g} points")
    elif c.line_value < 0:
        parts.append(f"{c.line_value:g} points")
    if c.price_value > 0:
        parts.append(f"+{c.price_value} cents juice")
    line = c.best_line if c.market != MARKET_MONEYLINE else format_odds(c.best_odds)
    return (
        f"- {event.team_for(c.side)} {c.market} {line} @ {c.best_book}: "
        f"{', '.join(parts)} ({c.supporting_books} books)"
    )


def build_oracle_request(event: Event, positives: List[SideCandidate]) -> OracleRequest:
    sharp = event.sharp
    reference = event.reference
    return OracleRequest(
        event_id=event.event_id,
        sport=event.sport,
        away_team=event.away_team,
        home_team=event.home_team,
        commence_time=event.commence_time,
        sharp_book=sharp.book,
        sharp_spread_away=str(sharp.spread_line_away),
        sharp_spread_odds_away=format_odds(sharp.spread_odds_away),
        reference_spread_away=(
            f"{reference.spread_line_away:+.1f}"
            if reference is not None and reference.spread_line_away is not None
            else None
        ),
        movement_note=movement_note(event),
        value_lines=[_value_line(event, c) for c in positives],
    )


def _research_summary(event: Event, judgement: OracleJudgement) -> str:
    return (
        f"Away ({event.away_team}): {judgement.away_team_injuries or 'No data'}\n"
        f"Home ({event.home_team}): {judgement.home_team_injuries or 'No data'}\n\n"
        f"Situation favors: {judgement.situation_favors}"
    )
