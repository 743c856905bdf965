"""
Dimension scoring - oracle outcome validation and criteria-to-dimension math.

Pure functions; no I/O.
"""

from typing import Any, Dict, Mapping, Sequence

from sharpstack.engines.criteria import Criterion, CriteriaRegistry, CriterionValue

MAX_SCORE = 10.0
MIN_SCORE = 0.0


def validate_outcomes(
    criteria: Sequence[Criterion],
    raw: Mapping[str, Any],
) -> Dict[str, CriterionValue]:
    """
    Keep only requested criteria whose value has the right kind.

    Unknown keys are dropped. Missing or malformed values stay absent; they
    are never defaulted to a pass or a fail.
    """
    outcomes: Dict[str, CriterionValue] = {}
    for criterion in criteria:
        if criterion.key not in raw:
            continue
        value = criterion.kind.coerce(raw[criterion.key])
        if value is not None:
            outcomes[criterion.key] = value
    return outcomes


def score_dimensions(
    registry: CriteriaRegistry,
    drill_type: str,
    outcomes: Mapping[str, CriterionValue],
    penalty: float,
) -> Dict[str, float]:
    """
    Derive a 0-10 score per skill dimension touched by this drill type.

    Each dimension starts at 10 and loses `penalty` for every positive member
    criterion that came back false and every negative member criterion that
    came back true (counts above zero trigger). Dimensions with no member
    criterion present in `outcomes` get no score.
    """
    scores: Dict[str, float] = {}
    for dimension in registry.dimensions_for(drill_type):
        present = dimension.members & outcomes.keys()
        if not present:
            continue

        # Counts are non-negative, so truthiness covers both value kinds
        failures = sum(
            1 for key in present
            if bool(outcomes[key]) == (key in dimension.negative)
        )

        scores[dimension.key] = max(MIN_SCORE, MAX_SCORE - penalty * failures)
    return scores


def word_count(text: str) -> int:
    return len(text.split())
