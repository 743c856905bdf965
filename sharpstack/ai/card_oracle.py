"""
Card oracle - writes scenarios and feedback for the session.

The session never depends on this succeeding: OracleError from here is
turned into a fallback card by the caller.
"""

import json
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from pydantic import BaseModel

from sharpstack.ai.errors import OracleResponseError, OracleUnavailableError
from sharpstack.ai.scoring_oracle import openai_configured
from sharpstack.config import Settings, get_settings
from sharpstack.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DrillBrief:
    """What the card oracle needs to know about the active drill."""

    phase: str
    instruction: str
    level: int
    input_type: str = "text"
    options: List[dict] = field(default_factory=list)


class ScenarioContent(BaseModel):
    scenario: str
    task: Optional[str] = None


class FeedbackContent(BaseModel):
    feedback: str
    score: Optional[int] = None
    # Set when the drill should be attempted again before moving on
    retry_prompt: Optional[str] = None


class CardOracle(Protocol):
    async def scenario(self, brief: DrillBrief) -> ScenarioContent:
        ...

    async def feedback(
        self,
        brief: DrillBrief,
        prompt: str,
        response: str,
        is_iteration: bool,
    ) -> FeedbackContent:
        ...


class OpenAICardOracle:
    """Scenario and feedback generation through OpenAI chat completions."""

    def __init__(self, settings: Settings):
        self.settings = settings

    async def _complete_json(self, system: str, user: str) -> dict:
        import openai
        from openai import AsyncOpenAI

        client = AsyncOpenAI(
            api_key=self.settings.openai_api_key,
            timeout=self.settings.oracle_timeout_seconds,
            max_retries=1,
        )
        try:
            response = await client.chat.completions.create(
                model=self.settings.openai_card_model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                response_format={"type": "json_object"},
                max_tokens=700,
            )
        except openai.OpenAIError as exc:
            raise OracleUnavailableError(str(exc)) from exc

        raw = (response.choices[0].message.content or "").strip()
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise OracleResponseError("Card oracle returned non-JSON content") from exc
        if not isinstance(parsed, dict):
            raise OracleResponseError("Card oracle returned a non-object JSON value")
        return parsed

    async def scenario(self, brief: DrillBrief) -> ScenarioContent:
        system = (
            "You write short workplace scenarios for communication drills. "
            f"Difficulty level {brief.level} of 5. "
            'Return JSON: {"scenario": str, "task": str}.'
        )
        data = await self._complete_json(system, f"Drill: {brief.phase}\nInstruction: {brief.instruction}")
        if not data.get("scenario"):
            raise OracleResponseError("Scenario missing from card oracle output")
        return ScenarioContent(scenario=str(data["scenario"]), task=data.get("task") or brief.instruction)

    async def feedback(
        self,
        brief: DrillBrief,
        prompt: str,
        response: str,
        is_iteration: bool,
    ) -> FeedbackContent:
        system = (
            "You are a blunt communication coach. Give 2-4 sentences of feedback "
            "on the trainee's response and a 1-10 score. "
            + ("This was their second attempt; do not ask for another. " if is_iteration else
               "If the response misses the point badly, include a one-sentence retry_prompt asking them to try again. ")
            + 'Return JSON: {"feedback": str, "score": int, "retry_prompt": str|null}.'
        )
        user = f"Drill: {brief.phase}\nPrompt: {prompt}\nResponse: {response}"
        data = await self._complete_json(system, user)
        if not data.get("feedback"):
            raise OracleResponseError("Feedback missing from card oracle output")

        score = data.get("score")
        retry = data.get("retry_prompt") if not is_iteration else None
        return FeedbackContent(
            feedback=str(data["feedback"]),
            score=int(score) if isinstance(score, (int, float)) else None,
            retry_prompt=str(retry) if retry else None,
        )


class StubCardOracle:
    """STUB: deterministic cards for local runs without an API key."""

    async def scenario(self, brief: DrillBrief) -> ScenarioContent:
        return ScenarioContent(
            scenario=f"{brief.phase}: {brief.instruction}",
            task=brief.instruction,
        )

    async def feedback(
        self,
        brief: DrillBrief,
        prompt: str,
        response: str,
        is_iteration: bool,
    ) -> FeedbackContent:
        words = len(response.split())
        if words < 5:
            text = "Too thin to judge. Give a complete answer with one clear point."
            score = 3
        elif words > 150:
            text = "Solid material, but it runs long. Cut it in half and lead with the point."
            score = 5
        else:
            text = "Clear and direct. Check that your first sentence carries the main point."
            score = 7
        return FeedbackContent(feedback=text, score=score)


def build_card_oracle(settings: Optional[Settings] = None) -> CardOracle:
    """OpenAI when a real key is configured, else the stub."""
    settings = settings or get_settings()
    if openai_configured(settings.openai_api_key):
        return OpenAICardOracle(settings)
    logger.info("No OpenAI key configured, using stub card oracle")
    return StubCardOracle()
