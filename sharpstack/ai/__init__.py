"""
AI boundary.

Both oracles are opaque collaborators. Their outputs are validated by the
engines before anything is persisted.
"""

from sharpstack.ai.errors import OracleError, OracleResponseError, OracleUnavailableError
from sharpstack.ai.card_oracle import (
    CardOracle,
    DrillBrief,
    FeedbackContent,
    ScenarioContent,
    build_card_oracle,
)
from sharpstack.ai.scoring_oracle import ScoringOracle, build_scoring_oracle

__all__ = [
    "OracleError",
    "OracleResponseError",
    "OracleUnavailableError",
    "CardOracle",
    "DrillBrief",
    "FeedbackContent",
    "ScenarioContent",
    "build_card_oracle",
    "ScoringOracle",
    "build_scoring_oracle",
]
