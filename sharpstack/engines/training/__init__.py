"""
Training Engine - session progression, cards, levels and daily usage.

Phases of a session:
- insight:  one-time drill insight, waiting on continue
- scenario: first attempt at the drill, waiting on a response
- retry:    iteration re-ask of the same drill, waiting on a response
- feedback: feedback shown, continue moves to the next drill
"""

from sharpstack.engines.training.cards import (
    Card,
    CardType,
    ChoiceOption,
    FeedbackCard,
    InsightCard,
    LevelCapCard,
    LevelUpCard,
    MultipleChoiceCard,
    PromptCard,
    ReflectionCard,
    ScenarioCard,
    parse_card,
)
from sharpstack.engines.training.errors import (
    ConcurrentUpdateError,
    InvalidActionError,
    ModeNotFoundError,
    SessionNotFoundError,
    TrainingError,
)
from sharpstack.engines.training.levels import LevelDecision, LevelOutcome, evaluate_level
from sharpstack.engines.training.session_service import (
    ModeView,
    ProgressView,
    SessionState,
    SessionStep,
    SessionView,
    TrainingSessionService,
)
from sharpstack.engines.training.usage import LimitReached, UsageSnapshot, UsageTracker

__all__ = [
    "Card",
    "CardType",
    "ChoiceOption",
    "FeedbackCard",
    "InsightCard",
    "LevelCapCard",
    "LevelUpCard",
    "MultipleChoiceCard",
    "PromptCard",
    "ReflectionCard",
    "ScenarioCard",
    "parse_card",
    "ConcurrentUpdateError",
    "InvalidActionError",
    "ModeNotFoundError",
    "SessionNotFoundError",
    "TrainingError",
    "LevelDecision",
    "LevelOutcome",
    "evaluate_level",
    "ModeView",
    "ProgressView",
    "SessionState",
    "SessionStep",
    "SessionView",
    "TrainingSessionService",
    "LimitReached",
    "UsageSnapshot",
    "UsageTracker",
]
