"""
Scoring oracle - judges a response against a list of criteria.

The oracle is opaque to the pipeline: it receives the criteria and returns a
{criterion: value} map. The pipeline validates the shape and owns retries,
so implementations here make exactly one attempt.

Two implementations:
- OpenAIScoringOracle: chat completion in JSON mode
- HeuristicScoringOracle: deterministic stub for the universal criteria,
  used when no API key is configured
"""

import json
import re
from typing import Any, Dict, Optional, Protocol, Sequence

from sharpstack.ai.errors import OracleResponseError, OracleUnavailableError
from sharpstack.config import Settings, get_settings
from sharpstack.engines.criteria import Criterion, CriterionKind
from sharpstack.logging_config import get_logger

logger = get_logger(__name__)


class ScoringOracle(Protocol):
    async def evaluate(
        self,
        drill_type: str,
        drill_phase: str,
        response_text: str,
        criteria: Sequence[Criterion],
    ) -> Dict[str, Any]:
        ...


def openai_configured(key: str) -> bool:
    key = (key or "").strip()
    return bool(key) and not key.startswith("sk-your-")


class OpenAIScoringOracle:
    """Scores a response with an OpenAI chat model in JSON mode."""

    SYSTEM_PROMPT = (
        "You evaluate a trainee's written response against a rubric. "
        "Return only a JSON object mapping each criterion key to its value: "
        "true/false for boolean criteria, a non-negative integer for count criteria. "
        "Judge strictly; omit a key only if it cannot be judged from the response."
    )

    def __init__(self, settings: Settings):
        self.settings = settings

    def _build_prompt(
        self,
        drill_type: str,
        drill_phase: str,
        response_text: str,
        criteria: Sequence[Criterion],
    ) -> str:
        lines = [
            f"Drill: {drill_phase} ({drill_type})",
            "",
            "Criteria:",
        ]
        for criterion in criteria:
            kind = "integer count" if criterion.kind is CriterionKind.COUNT else "boolean"
            lines.append(f"- {criterion.key} ({kind}): {criterion.description}")
        lines += ["", "Response:", response_text]
        return "\n".join(lines)

    async def evaluate(
        self,
        drill_type: str,
        drill_phase: str,
        response_text: str,
        criteria: Sequence[Criterion],
    ) -> Dict[str, Any]:
        import openai
        from openai import AsyncOpenAI

        client = AsyncOpenAI(
            api_key=self.settings.openai_api_key,
            timeout=self.settings.oracle_timeout_seconds,
            max_retries=0,
        )
        try:
            response = await client.chat.completions.create(
                model=self.settings.openai_scoring_model,
                messages=[
                    {"role": "system", "content": self.SYSTEM_PROMPT},
                    {"role": "user", "content": self._build_prompt(drill_type, drill_phase, response_text, criteria)},
                ],
                response_format={"type": "json_object"},
                temperature=0,
                max_tokens=600,
            )
        except openai.OpenAIError as exc:
            raise OracleUnavailableError(str(exc)) from exc

        raw = (response.choices[0].message.content or "").strip()
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise OracleResponseError(f"Scoring oracle returned non-JSON content: {raw[:200]!r}") from exc
        if not isinstance(parsed, dict):
            raise OracleResponseError("Scoring oracle returned a non-object JSON value")
        return parsed


_HEDGES = re.compile(
    r"\b(i think|maybe|probably|perhaps|might|could be|sort of|kind of|i believe|it seems)\b",
    re.IGNORECASE,
)
_FILLERS = re.compile(
    r"\b(you know|like|basically|actually|just|really|very|obviously|honestly|literally)\b",
    re.IGNORECASE,
)
_APOLOGIES = re.compile(r"\b(sorry|i apologi[sz]e|forgive me)\b", re.IGNORECASE)


class HeuristicScoringOracle:
    """
    STUB: keyword heuristics for the universal criteria.

    Drill-specific criteria are left out of the result, so they are recorded
    as absent rather than guessed.
    """

    def __init__(self, short_words: int = 5, long_words: int = 150):
        self.short_words = short_words
        self.long_words = long_words

    async def evaluate(
        self,
        drill_type: str,
        drill_phase: str,
        response_text: str,
        criteria: Sequence[Criterion],
    ) -> Dict[str, Any]:
        words = len(response_text.split())
        judged = {
            "hedging": bool(_HEDGES.search(response_text)),
            "filler_phrases": len(_FILLERS.findall(response_text)),
            "apology_detected": bool(_APOLOGIES.search(response_text)),
            "too_short": words < self.short_words,
            "ran_long": words > self.long_words,
            "word_limit_met": words <= self.long_words,
        }
        wanted = {c.key for c in criteria}
        return {key: value for key, value in judged.items() if key in wanted}


def build_scoring_oracle(settings: Optional[Settings] = None) -> ScoringOracle:
    """OpenAI when a real key is configured, else the heuristic stub."""
    settings = settings or get_settings()
    if openai_configured(settings.openai_api_key):
        return OpenAIScoringOracle(settings)
    logger.info("No OpenAI key configured, using heuristic scoring oracle")
    return HeuristicScoringOracle()
