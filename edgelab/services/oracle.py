"""
Situational-judgement oracle (LLM research call).

The veto pipeline treats the oracle as a black box: it sends a structured
:class:`OracleRequest` (matchup, sharp price snapshot, outcomes with value,
line-movement note) and receives free text that *should* be a JSON object.
:func:`parse_judgement` turns that text into a typed :class:`OracleJudgement`
or returns ``None``; it never raises.

Providers
---------
``GeminiJudgementOracle`` calls the Google Generative Language REST endpoint
with Google Search grounding.  Any other provider only needs to subclass
:class:`BaseJudgementOracle` and return raw text from :meth:`judge`.

Environment:
    GEMINI_API_KEY   API key (required for the Gemini provider)
    GEMINI_MODEL     model name (default ``gemini-2.5-pro``)
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Final, List, Literal, Optional

import requests
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

load_dotenv()

logger = logging.getLogger(__name__)

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-pro")
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

DECISION_PLAYABLE: Final[str] = "PLAYABLE"
DECISION_PASS: Final[str] = "PASS"

SYSTEM_INSTRUCTION = """You are EdgeLab, a sports betting analyst looking for ALIGNED EDGES:
mathematical value and situational factors pointing at the same side.

RULES:
1. Search for current injury reports and news. Only cite what you found.
2. Check alignment of value, line movement and situation.
3. When in doubt, PASS.
4. OUTPUT ONLY JSON:
{
  "decision": "PLAYABLE" or "PASS",
  "recommendedSide": "AWAY", "HOME", "OVER", "UNDER" or "NONE",
  "recommendedMarket": "Spread", "Moneyline" or "Total",
  "reasoning": "...",
  "awayTeamInjuries": "...",
  "homeTeamInjuries": "...",
  "situationFavors": "AWAY", "HOME" or "NEUTRAL",
  "confidence": "HIGH", "MEDIUM" or "LOW"
}"""


class OracleError(Exception):
    """The oracle could not be reached or returned an unusable transport response."""


# ---------------------------------------------------------------------------
# Request / response types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OracleRequest:
    """Everything the oracle is told about one event."""

    event_id: str
    sport: str
    away_team: str
    home_team: str
    commence_time: Optional[datetime]
    sharp_book: str
    sharp_spread_away: str
    sharp_spread_odds_away: str
    reference_spread_away: Optional[str]
    movement_note: str
    value_lines: List[str] = field(default_factory=list)


class OracleJudgement(BaseModel):
    """Typed oracle verdict.  Unknown keys are ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    decision: Literal["PLAYABLE", "PASS"] = DECISION_PASS
    recommended_side: Optional[Literal["AWAY", "HOME", "OVER", "UNDER"]] = None
    recommended_market: Optional[Literal["Spread", "Moneyline", "Total"]] = None
    reasoning: str = ""
    away_team_injuries: str = ""
    home_team_injuries: str = ""
    situation_favors: Literal["AWAY", "HOME", "NEUTRAL"] = "NEUTRAL"
    confidence: Literal["HIGH", "MEDIUM", "LOW"] = "LOW"

    @field_validator("decision", mode="before")
    @classmethod
    def _upper(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    # Display-only fields: anything unrecognised falls back to the default.
    @field_validator("situation_favors", mode="before")
    @classmethod
    def _favors(cls, v):
        text = v.strip().upper() if isinstance(v, str) else ""
        return text if text in ("AWAY", "HOME") else "NEUTRAL"

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v):
        text = v.strip().upper() if isinstance(v, str) else ""
        return text if text in ("HIGH", "MEDIUM") else "LOW"

    @field_validator("recommended_side", mode="before")
    @classmethod
    def _side(cls, v):
        if v is None:
            return None
        text = str(v).strip().upper()
        return None if text in ("", "NONE", "NULL", "N/A", "NEUTRAL") else text

    @field_validator("recommended_market", mode="before")
    @classmethod
    def _market(cls, v):
        if v is None:
            return None
        text = str(v).strip().lower()
        if text in ("", "none", "null", "n/a"):
            return None
        aliases = {
            "spread": "Spread", "spreads": "Spread", "ats": "Spread",
            "moneyline": "Moneyline", "ml": "Moneyline", "h2h": "Moneyline",
            "total": "Total", "totals": "Total",
        }
        return aliases.get(text, v)

    @field_validator("reasoning", "away_team_injuries", "home_team_injuries", mode="before")
    @classmethod
    def _text(cls, v):
        return "" if v is None else str(v)

    @property
    def is_playable(self) -> bool:
        return self.decision == DECISION_PLAYABLE


def parse_judgement(text: Optional[str]) -> Optional[OracleJudgement]:
    """Decode oracle text into a judgement, or ``None`` when unparseable.

    Tolerates markdown code fences and prose around the JSON object.
    """
    if not text:
        logger.warning("Oracle returned empty text")
        return None

    clean = text.replace("```json", "").replace("```", "").strip()
    first, last = clean.find("{"), clean.rfind("}")
    if first == -1 or last <= first:
        logger.warning("No JSON object in oracle response: %.200s", text)
        return None

    try:
        payload = json.loads(clean[first:last + 1])
        if not isinstance(payload, dict):
            raise ValueError("oracle JSON is not an object")
        return OracleJudgement.model_validate(payload)
    except (ValueError, ValidationError) as exc:
        # json.JSONDecodeError and pydantic's ValidationError are ValueErrors
        logger.warning("Oracle response rejected: %s", exc)
        return None


def build_prompt(request: OracleRequest) -> str:
    """Render the research prompt for one event."""
    readable_date = (
        request.commence_time.strftime("%a, %B %d") if request.commence_time else "TBD"
    )
    reference = (
        f"{request.away_team} {request.reference_spread_away}"
        if request.reference_spread_away is not None
        else "N/A"
    )
    value_summary = "\n".join(request.value_lines) or "- none"
    return (
        "## GAME ANALYSIS REQUEST\n\n"
        f"**Matchup:** {request.away_team} (AWAY) at {request.home_team} (HOME)\n"
        f"**Sport:** {request.sport}\n"
        f"**Date:** {readable_date}\n\n"
        f"## SHARP LINES ({request.sharp_book})\n"
        f"Reference Line: {reference}\n"
        f"Current: {request.away_team} {request.sharp_spread_away} "
        f"({request.sharp_spread_odds_away})\n"
        f"{request.movement_note}\n\n"
        "## SIDES WITH POSITIVE VALUE\n"
        f"{value_summary}\n\n"
        "## YOUR TASK\n"
        "1. Search for current injury reports and news.\n"
        "2. Analyze if the situational edge aligns with the math value.\n"
        "3. Return strictly valid JSON.\n"
    )


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

class BaseJudgementOracle(ABC):
    """Contract for situational-judgement providers."""

    @abstractmethod
    def judge(self, request: OracleRequest, timeout: float) -> Optional[str]:
        """Return the raw response text (``None`` / empty when blank).

        Raises:
            OracleError: transport failure, timeout or non-2xx response.
        """


class GeminiJudgementOracle(BaseJudgementOracle):
    """Gemini ``generateContent`` with Google Search grounding."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = GEMINI_MODEL,
        temperature: float = 0.1,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key or GEMINI_API_KEY
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY not set in environment")
        self.model = model
        self.temperature = temperature
        self._session = session or requests.Session()

    def judge(self, request: OracleRequest, timeout: float) -> Optional[str]:
        url = f"{GEMINI_BASE_URL}/{self.model}:generateContent"
        body = {
            "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
            "contents": [{"role": "user", "parts": [{"text": build_prompt(request)}]}],
            "tools": [{"googleSearch": {}}],
            "generationConfig": {"temperature": self.temperature},
        }

        try:
            response = self._session.post(
                url,
                params={"key": self.api_key},
                json=body,
                timeout=timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise OracleError(f"Gemini request failed: {e}") from e
        except ValueError as e:
            raise OracleError(f"Gemini returned non-JSON body: {e}") from e

        text = _candidate_text(data)
        logger.info(
            "Oracle %s judged %s @ %s (%d chars)",
            self.model, request.away_team, request.home_team, len(text or ""),
        )
        return text


def _candidate_text(data: dict) -> Optional[str]:
    """Concatenate the text parts of the first candidate."""
    candidates = data.get("candidates") or []
    if not candidates:
        return None
    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
    return text or None
