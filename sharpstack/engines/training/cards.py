"""
Session cards - a closed set of card variants discriminated by `type`.

Cards are what the session shows next. They are stored in the exchange log
as JSON and parsed back with CARD_ADAPTER.
"""

from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class CardType(str, Enum):
    SCENARIO = "scenario"
    PROMPT = "prompt"
    MULTIPLE_CHOICE = "multiple_choice"
    FEEDBACK = "feedback"
    INSIGHT = "insight"
    REFLECTION = "reflection"
    LEVEL_UP = "level_up"
    LEVEL_CAP = "level_cap"


class ChoiceOption(BaseModel):
    id: str
    label: str


class _CardBase(BaseModel):
    content: str
    drill_phase: Optional[str] = None
    is_iteration: bool = False


class ScenarioCard(_CardBase):
    type: Literal["scenario"] = "scenario"
    task: Optional[str] = None
    timer_seconds: Optional[int] = None


class PromptCard(_CardBase):
    """A follow-up ask on the same drill, e.g. an iteration re-ask."""

    type: Literal["prompt"] = "prompt"


class MultipleChoiceCard(_CardBase):
    type: Literal["multiple_choice"] = "multiple_choice"
    options: List[ChoiceOption] = []
    timer_seconds: Optional[int] = None


class FeedbackCard(_CardBase):
    type: Literal["feedback"] = "feedback"
    score: Optional[int] = None


class InsightCard(_CardBase):
    type: Literal["insight"] = "insight"
    title: Optional[str] = None


class ReflectionCard(_CardBase):
    type: Literal["reflection"] = "reflection"


class LevelUpCard(_CardBase):
    type: Literal["level_up"] = "level_up"
    new_level: int


class LevelCapCard(_CardBase):
    type: Literal["level_cap"] = "level_cap"
    level: int


Card = Annotated[
    Union[
        ScenarioCard,
        PromptCard,
        MultipleChoiceCard,
        FeedbackCard,
        InsightCard,
        ReflectionCard,
        LevelUpCard,
        LevelCapCard,
    ],
    Field(discriminator="type"),
]

CARD_ADAPTER: TypeAdapter = TypeAdapter(Card)

# Cards the user answers
RESPONSE_CARD_TYPES = frozenset({
    CardType.SCENARIO.value,
    CardType.PROMPT.value,
    CardType.MULTIPLE_CHOICE.value,
})

# Answers to these carry free text worth scoring
SCORABLE_CARD_TYPES = frozenset({CardType.SCENARIO.value, CardType.PROMPT.value})


def parse_card(payload: dict):
    """Rebuild a card from its stored JSON payload."""
    return CARD_ADAPTER.validate_python(payload)


def dump_card(card) -> dict:
    return card.model_dump(mode="json")
