"""
Tests for the ordered veto pipeline.
Run with: pytest tests/test_veto_pipeline.py -v
"""

import json
from unittest.mock import MagicMock

import pytest

from edgelab.core.quote import (
    MARKET_MONEYLINE,
    MARKET_SPREAD,
    MARKET_TOTAL,
    SIDE_AWAY,
    SIDE_HOME,
    SIDE_OVER,
    Event,
    Quote,
    ReferenceLine,
)
from edgelab.services.oracle import BaseJudgementOracle, OracleError
from edgelab.services.scanner import SideCandidate
from edgelab.services.veto_pipeline import (
    AI_ERROR,
    DATA_MISSING,
    JUICE_VETO,
    MARKET_MATURITY,
    NO_EDGE_DIRECTION,
    NO_VALUE,
    SITUATIONAL_PASS,
    SPREAD_CAP,
    STAGE_CONSENSUS_CHECK,
    STAGE_EXTERNAL_JUDGEMENT,
    STAGE_JUICE_CHECK,
    STAGE_MATH_SCAN,
    STAGE_PLAYABLE,
    STAGE_STRUCTURAL_CHECK,
    VERDICT_LEAN,
    VERDICT_PASS,
    VERDICT_PLAYABLE,
    Decision,
    VetoPipeline,
    compute_floor,
    format_line,
    movement_note,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

class FakeOracle(BaseJudgementOracle):
    """Replays scripted responses; an Exception instance is raised instead."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []
        self.timeouts = []

    def judge(self, request, timeout):
        self.requests.append(request)
        self.timeouts.append(timeout)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _judgement(side="AWAY", market="Spread", decision="PLAYABLE", **extra):
    payload = {
        "decision": decision,
        "recommendedSide": side,
        "recommendedMarket": market,
        "reasoning": "Knicks on a back-to-back; Celtics rested.",
        "awayTeamInjuries": "None reported",
        "homeTeamInjuries": "Starting center questionable",
        "situationFavors": "AWAY",
        "confidence": "MEDIUM",
    }
    payload.update(extra)
    return json.dumps(payload)


def _sharp(**overrides):
    fields = dict(
        book="Pinnacle",
        spread_line_away=-4.0, spread_odds_away=-105,
        spread_line_home=4.0, spread_odds_home=-115,
        total_line=220.5, total_over_odds=-110, total_under_odds=-110,
        moneyline_away=-190, moneyline_home=+165,
    )
    fields.update(overrides)
    return Quote(**fields)


def _softs(ml_away=-185):
    return [
        Quote(
            book="DraftKings",
            spread_line_away=-3.5, spread_odds_away=-110,
            spread_line_home=3.5, spread_odds_home=-110,
            total_line=220.5, total_over_odds=-112, total_under_odds=-108,
            moneyline_away=ml_away, moneyline_home=+160,
        ),
        Quote(
            book="FanDuel",
            spread_line_away=-3.5, spread_odds_away=-108,
            spread_line_home=3.5, spread_odds_home=-112,
            total_line=220.5, total_over_odds=-110, total_under_odds=-110,
            moneyline_away=ml_away, moneyline_home=+160,
        ),
    ]


def _event(sharp=None, softs=None, sport="NBA", reference=None):
    return Event(
        event_id="evt-42",
        sport=sport,
        away_team="Boston Celtics",
        home_team="New York Knicks",
        sharp=sharp if sharp is not None else _sharp(),
        soft=softs if softs is not None else _softs(),
        reference=reference,
    )


def _pipeline(oracle, **kwargs):
    kwargs.setdefault("sleep", MagicMock())
    return VetoPipeline(oracle=oracle, **kwargs)


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------

class TestPlayable:

    def test_aligned_spread_edge(self):
        oracle = FakeOracle(_judgement())
        decision = _pipeline(oracle).analyze(_event())

        assert decision.verdict == VERDICT_PLAYABLE
        assert decision.stage == STAGE_PLAYABLE
        assert decision.veto_reason is None
        assert decision.recommendation == "Boston Celtics Spread"
        assert decision.rec_line == "-3.5 (-108)"
        assert decision.soft_best_book == "FanDuel"
        assert decision.line_value_points == 0.5
        assert decision.line_value_cents == 0
        assert decision.line_floor == "-4.0"
        assert decision.odds_floor == "-130"
        assert decision.candidate.has_positive_value
        assert decision.confidence == "MEDIUM"
        assert decision.edge_quality == "STANDARD"

    def test_probability_is_sharp_no_vig(self):
        decision = _pipeline(FakeOracle(_judgement())).analyze(_event())
        # -190 / +165 → 65.5 % / 37.7 % raw → 63.5 % no-vig
        assert decision.rec_probability == pytest.approx(63.5, abs=0.1)
        assert decision.rec_probability == decision.sharp_implied_prob

    def test_oracle_receives_structured_request(self):
        oracle = FakeOracle(_judgement())
        _pipeline(oracle, oracle_timeout=12.5).analyze(_event())

        request = oracle.requests[0]
        assert request.away_team == "Boston Celtics"
        assert request.sharp_book == "Pinnacle"
        assert request.sharp_spread_odds_away == "-105"
        assert oracle.timeouts == [12.5]
        # AWAY spread, AWAY moneyline and UNDER all show value
        assert len(request.value_lines) == 3
        assert any("FanDuel" in line for line in request.value_lines)

    def test_research_summary_carries_findings(self):
        decision = _pipeline(FakeOracle(_judgement())).analyze(_event())
        assert "Starting center questionable" in decision.research_summary
        assert decision.edge_narrative.startswith("Knicks on a back-to-back")

    def test_to_dict(self):
        data = _pipeline(FakeOracle(_judgement())).analyze(_event()).to_dict()
        assert data["verdict"] == "PLAYABLE"
        assert data["candidate"]["best_book"] == "FanDuel"
        assert data["veto_triggered"] is False


# ---------------------------------------------------------------------------
# Structural and math vetoes
# ---------------------------------------------------------------------------

class TestEarlyVetoes:

    def test_spread_cap_fires_before_scan(self):
        scanner = MagicMock()
        oracle = FakeOracle()
        event = _event(
            sharp=_sharp(spread_line_away=-20.0, spread_line_home=20.0),
            sport="NFL",
        )
        decision = _pipeline(oracle, scanner=scanner).analyze(event)

        assert decision.verdict == VERDICT_PASS
        assert decision.veto_reason == SPREAD_CAP
        assert decision.stage == STAGE_STRUCTURAL_CHECK
        assert decision.reason.startswith("SPREAD_CAP:")
        assert decision.veto_triggered
        scanner.scan.assert_not_called()
        assert oracle.requests == []

    def test_spread_at_cap_is_allowed(self):
        event = _event(sharp=_sharp(spread_line_away=-14.0, spread_line_home=14.0), sport="NFL")
        decision = _pipeline(FakeOracle(_judgement())).analyze(event)
        assert decision.veto_reason != SPREAD_CAP

    def test_home_spread_used_when_away_missing(self):
        event = _event(sharp=_sharp(spread_line_away=None, spread_line_home=5.5), sport="NHL")
        decision = _pipeline(FakeOracle()).analyze(event)
        assert decision.veto_reason == SPREAD_CAP

    def test_missing_sharp_quote(self):
        event = Event(event_id="e", sport="NBA", away_team="A", home_team="B", soft=_softs())
        decision = _pipeline(FakeOracle()).analyze(event)
        assert decision.veto_reason == DATA_MISSING
        assert decision.stage == STAGE_STRUCTURAL_CHECK

    def test_missing_soft_quotes(self):
        decision = _pipeline(FakeOracle()).analyze(_event(softs=[]))
        assert decision.veto_reason == DATA_MISSING
        assert decision.stage == STAGE_MATH_SCAN

    def test_unusable_soft_quotes(self):
        junk = [Quote(book="DraftKings", moneyline_away="N/A", spread_odds_away="OFF")]
        decision = _pipeline(FakeOracle()).analyze(_event(softs=junk))
        assert decision.veto_reason == DATA_MISSING

    def test_no_value_anywhere(self):
        worse = [
            Quote(book="DraftKings", spread_line_away=-4.5, spread_odds_away=-110,
                  spread_line_home=3.5, spread_odds_home=-110,
                  moneyline_away=-200, moneyline_home=+155),
        ]
        oracle = FakeOracle()
        decision = _pipeline(oracle).analyze(_event(softs=worse))
        assert decision.veto_reason == NO_VALUE
        assert decision.stage == STAGE_MATH_SCAN
        assert oracle.requests == []

    def test_single_book_edge_is_market_maturity(self):
        softs = [
            Quote(book="DraftKings", moneyline_away=-180, moneyline_home=+160),
            Quote(book="FanDuel", moneyline_away=-190, moneyline_home=+160),
            Quote(book="BetMGM", moneyline_away=-195, moneyline_home=+165),
        ]
        oracle = FakeOracle(_judgement())
        decision = _pipeline(oracle).analyze(_event(softs=softs))

        assert decision.veto_reason == MARKET_MATURITY
        assert decision.stage == STAGE_CONSENSUS_CHECK
        assert decision.candidate.supporting_books == 1
        assert oracle.requests == []

    def test_min_supporting_books_is_configurable(self):
        sharp = _sharp(moneyline_away=-150, moneyline_home=+130)
        softs = [Quote(book="DraftKings", moneyline_away=-145, moneyline_home=+125)]
        decision = _pipeline(
            FakeOracle(_judgement(market="Moneyline")), min_supporting_books=1,
        ).analyze(_event(sharp=sharp, softs=softs))
        assert decision.verdict == VERDICT_PLAYABLE


# ---------------------------------------------------------------------------
# Oracle stage
# ---------------------------------------------------------------------------

class TestOracleStage:

    def test_retry_then_success(self):
        sleep = MagicMock()
        oracle = FakeOracle(OracleError("503"), _judgement())
        decision = _pipeline(oracle, sleep=sleep).analyze(_event())

        assert decision.verdict == VERDICT_PLAYABLE
        assert len(oracle.requests) == 2
        sleep.assert_called_once_with(1.0)

    def test_exhausted_retries_is_ai_error(self):
        oracle = FakeOracle(OracleError("timeout"), OracleError("timeout"))
        decision = _pipeline(oracle).analyze(_event())

        assert decision.verdict == VERDICT_PASS
        assert decision.veto_reason == AI_ERROR
        assert decision.stage == STAGE_EXTERNAL_JUDGEMENT
        assert "timeout" in decision.reason
        assert len(oracle.requests) == 2

    def test_backoff_grows_with_each_attempt(self):
        sleep = MagicMock()
        oracle = FakeOracle(OracleError("503"), "", OracleError("503"), _judgement())
        decision = _pipeline(oracle, sleep=sleep, oracle_retries=3).analyze(_event())

        assert decision.verdict == VERDICT_PLAYABLE
        assert len(oracle.requests) == 4
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0, 3.0]

    def test_no_sleep_after_last_attempt(self):
        sleep = MagicMock()
        oracle = FakeOracle(OracleError("down"), OracleError("down"))
        _pipeline(oracle, sleep=sleep).analyze(_event())
        sleep.assert_called_once_with(1.0)

    def test_unexpected_exception_is_ai_error(self):
        oracle = FakeOracle(RuntimeError("boom"), RuntimeError("boom"))
        decision = _pipeline(oracle).analyze(_event())
        assert decision.veto_reason == AI_ERROR

    def test_empty_text_counts_as_failure(self):
        oracle = FakeOracle("", "   ")
        decision = _pipeline(oracle).analyze(_event())
        assert decision.veto_reason == AI_ERROR
        assert len(oracle.requests) == 2

    def test_unparseable_text_is_ai_error(self):
        oracle = FakeOracle("I like Boston tonight.")
        decision = _pipeline(oracle).analyze(_event())
        assert decision.veto_reason == AI_ERROR
        assert len(oracle.requests) == 1

    def test_no_oracle_configured(self):
        decision = _pipeline(None).analyze(_event())
        assert decision.veto_reason == AI_ERROR

    def test_no_edge_direction(self):
        decision = _pipeline(FakeOracle(_judgement(side="NONE", decision="PASS"))).analyze(_event())
        assert decision.veto_reason == NO_EDGE_DIRECTION
        assert not decision.veto_triggered

    def test_pass_with_side_is_situational_pass(self):
        decision = _pipeline(FakeOracle(_judgement(decision="PASS"))).analyze(_event())
        assert decision.veto_reason == SITUATIONAL_PASS
        assert decision.edge_narrative


# ---------------------------------------------------------------------------
# Reconciliation, safety and juice
# ---------------------------------------------------------------------------

class TestReconcile:

    def test_oracle_side_without_edge_is_lean_at_sharp_number(self):
        decision = _pipeline(FakeOracle(_judgement(side="HOME"))).analyze(_event())

        assert decision.verdict == VERDICT_LEAN
        assert decision.recommendation == "New York Knicks Spread"
        assert decision.rec_line == "+4.0 (-115)"
        assert decision.soft_best_book == "Pinnacle"
        assert decision.candidate.has_positive_value is False
        assert decision.edge_quality == "NONE"

    def test_total_lean_uses_over_under_prefix(self):
        decision = _pipeline(FakeOracle(_judgement(side="OVER", market="Total"))).analyze(_event())
        assert decision.verdict == VERDICT_LEAN
        assert decision.recommendation == "OVER Total"
        assert decision.rec_line == "o220.5 (-110)"
        assert decision.line_floor == "o220.5"

    def test_same_side_other_market_preferred_over_lean(self):
        # Moneyline no longer has value; the AWAY spread does
        event = _event(softs=_softs(ml_away=-195))
        decision = _pipeline(FakeOracle(_judgement(market="Moneyline"))).analyze(event)

        assert decision.verdict == VERDICT_PLAYABLE
        assert decision.candidate.market == MARKET_SPREAD
        assert decision.candidate.side == SIDE_AWAY

    def test_missing_market_defaults_to_spread(self):
        decision = _pipeline(FakeOracle(_judgement(market=None))).analyze(_event())
        assert decision.candidate.market == MARKET_SPREAD


class TestUnderdogSafety:

    def _longshot_event(self):
        sharp = Quote(
            book="Pinnacle",
            spread_line_away=7.5, spread_odds_away=-110,
            spread_line_home=-7.5, spread_odds_home=-110,
            moneyline_away=+250, moneyline_home=-300,
        )
        softs = [
            Quote(book="DraftKings", spread_line_away=8.0, spread_odds_away=-110,
                  spread_line_home=-8.0, spread_odds_home=-110,
                  moneyline_away=+260, moneyline_home=-320),
            Quote(book="FanDuel", spread_line_away=8.0, spread_odds_away=-112,
                  spread_line_home=-8.0, spread_odds_home=-108,
                  moneyline_away=+260, moneyline_home=-320),
        ]
        return _event(sharp=sharp, softs=softs)

    def test_longshot_moneyline_switched_to_spread(self):
        oracle = FakeOracle(_judgement(market="Moneyline"))
        decision = _pipeline(oracle).analyze(self._longshot_event())

        assert decision.verdict == VERDICT_PLAYABLE
        assert decision.candidate.market == MARKET_SPREAD
        assert decision.recommendation == "Boston Celtics Spread"
        assert decision.rec_line == "+8.0 (-110)"
        assert decision.soft_best_book == "DraftKings"

    def test_longshot_kept_without_spread_alternative(self):
        event = self._longshot_event()
        softs = [
            Quote(book=q.book, moneyline_away=q.moneyline_away, moneyline_home=q.moneyline_home)
            for q in event.soft
        ]
        decision = _pipeline(FakeOracle(_judgement(market="Moneyline"))).analyze(
            _event(sharp=event.sharp, softs=softs)
        )
        assert decision.candidate.market == MARKET_MONEYLINE
        assert decision.rec_line == "+260"
        assert decision.line_floor is None
        assert decision.odds_floor == "+250"


class TestJuiceCeiling:

    def _expensive_event(self):
        sharp = Quote(book="Pinnacle", moneyline_away=-180, moneyline_home=+155)
        softs = [
            Quote(book="DraftKings", moneyline_away=-175, moneyline_home=+150),
            Quote(book="FanDuel", moneyline_away=-175, moneyline_home=+150),
        ]
        return _event(sharp=sharp, softs=softs)

    def test_price_worse_than_160_is_vetoed(self):
        oracle = FakeOracle(_judgement(market="Moneyline"))
        decision = _pipeline(oracle).analyze(self._expensive_event())

        assert decision.verdict == VERDICT_PASS
        assert decision.veto_reason == JUICE_VETO
        assert decision.stage == STAGE_JUICE_CHECK
        assert "-175" in decision.reason
        assert len(oracle.requests) == 1

    def test_ceiling_is_configurable(self):
        decision = _pipeline(
            FakeOracle(_judgement(market="Moneyline")), juice_ceiling=-200,
        ).analyze(self._expensive_event())
        assert decision.verdict == VERDICT_PLAYABLE

    def test_exactly_160_is_allowed(self):
        sharp = Quote(book="Pinnacle", moneyline_away=-165, moneyline_home=+145)
        softs = [
            Quote(book="DraftKings", moneyline_away=-160, moneyline_home=+140),
            Quote(book="FanDuel", moneyline_away=-160, moneyline_home=+140),
        ]
        decision = _pipeline(FakeOracle(_judgement(market="Moneyline"))).analyze(
            _event(sharp=sharp, softs=softs)
        )
        assert decision.verdict == VERDICT_PLAYABLE


# ---------------------------------------------------------------------------
# Decision invariants and helpers
# ---------------------------------------------------------------------------

def _candidate(positive):
    return SideCandidate(
        side=SIDE_AWAY, market=MARKET_SPREAD, sharp_line=-3.0, sharp_odds=-105,
        best_line=-3.0, best_odds=-110, best_book="FanDuel",
        line_value=0.0, price_value=-5, has_positive_value=positive,
    )


class TestDecisionInvariants:

    def test_playable_requires_positive_candidate(self):
        with pytest.raises(ValueError):
            Decision(event_id="e", verdict=VERDICT_PLAYABLE, stage=STAGE_PLAYABLE,
                     candidate=_candidate(False))
        with pytest.raises(ValueError):
            Decision(event_id="e", verdict=VERDICT_PLAYABLE, stage=STAGE_PLAYABLE)

    def test_pass_requires_reason_code(self):
        with pytest.raises(ValueError):
            Decision(event_id="e", verdict=VERDICT_PASS, stage=STAGE_MATH_SCAN)

    def test_unknown_verdict(self):
        with pytest.raises(ValueError):
            Decision(event_id="e", verdict="MAYBE", stage=STAGE_PLAYABLE)

    def test_playable_never_without_value_across_oracle_picks(self):
        for side, market in [("AWAY", "Spread"), ("HOME", "Spread"), ("AWAY", "Moneyline"),
                             ("HOME", "Moneyline"), ("OVER", "Total"), ("UNDER", "Total")]:
            decision = _pipeline(FakeOracle(_judgement(side, market))).analyze(_event())
            if decision.verdict == VERDICT_PLAYABLE:
                assert decision.candidate.has_positive_value


class TestMovementNote:

    def test_first_time_seen(self):
        assert "first time seen" in movement_note(_event())

    def test_stable(self):
        event = _event(reference=ReferenceLine(spread_line_away=-4.0))
        assert movement_note(event) == "Movement: Line is stable."

    def test_toward_away(self):
        event = _event(reference=ReferenceLine(spread_line_away=-2.5))
        assert movement_note(event) == "Movement: Sharps moved 1.5 points TOWARD Boston Celtics."

    def test_against_away(self):
        event = _event(reference=ReferenceLine(spread_line_away=-5.0))
        assert movement_note(event) == "Movement: Sharps moved 1.0 points AGAINST Boston Celtics."


class TestFloorsAndFormatting:

    def test_format_line(self):
        assert format_line(SIDE_AWAY, MARKET_SPREAD, -3.5) == "-3.5"
        assert format_line(SIDE_HOME, MARKET_SPREAD, "4") == "+4.0"
        assert format_line(SIDE_HOME, MARKET_SPREAD, 0) == "PK"
        assert format_line(SIDE_OVER, MARKET_TOTAL, 45.5) == "o45.5"
        assert format_line("UNDER", MARKET_TOTAL, 45) == "u45"

    def test_spread_floor_uses_worse_of_sharp_and_minus_130(self):
        cheap = _candidate(True)
        assert compute_floor(cheap)[:2] == ("-3.0", "-130")

        pricey = SideCandidate(
            side=SIDE_AWAY, market=MARKET_SPREAD, sharp_line=-3.0, sharp_odds=-140,
            best_line=-2.5, best_odds=-140, best_book="FanDuel",
            line_value=0.5, price_value=0, has_positive_value=True,
        )
        assert compute_floor(pricey)[:2] == ("-3.0", "-140")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
