"""
Level ladder rules.

Pure functions over a progress snapshot; the session service applies the
returned decision to the database row.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from sharpstack.engines.criteria import LevelLadder, PlanTier


class LevelOutcome(str, Enum):
    NONE = "none"
    LEVEL_UP = "level_up"
    LEVEL_CAP = "level_cap"


@dataclass(frozen=True)
class LevelDecision:
    outcome: LevelOutcome
    level: int
    message: Optional[str] = None


def effective_max_level(ladder: LevelLadder, plan: PlanTier) -> int:
    """Highest level the user may reach on their plan."""
    return min(ladder.max_level, plan.max_level)


def threshold_for(
    ladder: LevelLadder,
    level: int,
    mode_thresholds: Optional[Mapping] = None,
) -> Optional[int]:
    """Exchanges needed at `level` to advance; a mode may override the ladder."""
    # JSON column, so keys are strings
    if mode_thresholds and str(level) in mode_thresholds:
        return mode_thresholds[str(level)]
    return ladder.threshold_for(level)


def exchanges_to_next_level(
    ladder: LevelLadder,
    level: int,
    exchanges_at_level: int,
    mode_thresholds: Optional[Mapping] = None,
) -> Optional[int]:
    """Remaining exchanges before the next level; None at the top of the ladder."""
    threshold = threshold_for(ladder, level, mode_thresholds)
    if threshold is None or level >= ladder.max_level:
        return None
    return max(0, threshold - exchanges_at_level)


def evaluate_level(
    ladder: LevelLadder,
    plan: PlanTier,
    current_level: int,
    exchanges_at_level: int,
    cap_notified_level: Optional[int] = None,
    mode_thresholds: Optional[Mapping] = None,
) -> LevelDecision:
    """
    Decide whether the counter at the current level earns a level change.

    - Threshold met and below the plan's cap: advance one level.
    - Threshold met at the plan's cap: a cap notice, once per level.
    - No threshold (top of the ladder) or threshold not met: nothing.
    """
    threshold = threshold_for(ladder, current_level, mode_thresholds)
    if threshold is None or exchanges_at_level < threshold:
        return LevelDecision(LevelOutcome.NONE, current_level)

    if current_level < effective_max_level(ladder, plan):
        new_level = current_level + 1
        return LevelDecision(LevelOutcome.LEVEL_UP, new_level, ladder.message_for(new_level))

    if cap_notified_level == current_level:
        return LevelDecision(LevelOutcome.NONE, current_level)
    return LevelDecision(LevelOutcome.LEVEL_CAP, current_level, ladder.cap_message)
