"""
Pattern Aggregator - classifies skill dimensions from dimension score history.

Everything here is a pure function of its inputs. The evaluation instant
`now` is always passed in; nothing reads the clock.

Classification per dimension, over a recent and a baseline window:
    blind_spot  recent failure rate >= blind_spot_threshold
    slipping    recent - baseline   >= regression_threshold
    improving   baseline - recent   >= improvement_threshold
    strength    baseline rate       <= strength_threshold
    stable      anything else
First match wins, in that order.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence, Tuple

from pydantic import BaseModel

from sharpstack.config import Settings
from sharpstack.engines.criteria import CriteriaRegistry
from sharpstack.kernel.models.base import as_utc

# Tolerance for threshold comparisons on rates built from small samples
_EPSILON = 1e-9

GROWTH_EDGE_CEILING = 7.0


class Classification(str, Enum):
    BLIND_SPOT = "blind_spot"
    SLIPPING = "slipping"
    IMPROVING = "improving"
    STABLE = "stable"
    STRENGTH = "strength"


@dataclass(frozen=True)
class AnalysisThresholds:
    blind_spot: float = 0.6
    improvement: float = 0.2
    regression: float = 0.15
    strength: float = 0.25
    minimum_responses: int = 5
    minimum_sessions: int = 5
    recent_days: int = 7
    baseline_days: int = 30
    pass_cutoff: float = 6.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "AnalysisThresholds":
        return cls(
            blind_spot=settings.blind_spot_threshold,
            improvement=settings.improvement_threshold,
            regression=settings.regression_threshold,
            strength=settings.strength_threshold,
            minimum_responses=settings.minimum_responses,
            minimum_sessions=settings.minimum_sessions,
            recent_days=settings.recent_window_days,
            baseline_days=settings.baseline_window_days,
            pass_cutoff=settings.pass_cutoff,
        )


class DimensionSample(NamedTuple):
    dimension_key: str
    score: float
    created_at: datetime


class ScoreOutcomeSample(NamedTuple):
    """Criteria outcomes of one score record, for universal patterns."""

    outcomes: Mapping[str, object]
    created_at: datetime


class DimensionAnalysis(BaseModel):
    key: str
    label: str
    category: str
    classification: Classification
    recent_failure_rate: float
    baseline_failure_rate: float
    average_score: float
    sample_size: int
    recent_sample_size: int

    @property
    def change(self) -> float:
        """Positive when the failure rate dropped."""
        return self.baseline_failure_rate - self.recent_failure_rate


class UniversalPattern(BaseModel):
    criterion: str
    description: str
    occurrences: int
    total: int
    rate: float


class PatternAnalysis(BaseModel):
    total_sessions: int
    has_enough_data: bool
    sessions_until_insights: int
    blind_spots: List[DimensionAnalysis] = []
    improving: List[DimensionAnalysis] = []
    slipping: List[DimensionAnalysis] = []
    stable: List[DimensionAnalysis] = []
    biggest_gap: Optional[DimensionAnalysis] = None
    biggest_win: Optional[DimensionAnalysis] = None
    growth_edge: Optional[DimensionAnalysis] = None
    universal_patterns: List[UniversalPattern] = []
    analyzed_at: datetime

    @property
    def has_patterns(self) -> bool:
        return bool(self.blind_spots or self.improving or self.slipping)


class TeaserSummary(BaseModel):
    """Counts and flags only; never dimension identities."""

    blind_spot_count: int
    has_improving: bool
    has_regressing: bool
    total_sessions: int


class TrendBucket(BaseModel):
    week: str
    week_start: date
    failure_rate: Optional[float] = None
    sample_size: int = 0
    # Per-dimension failure rates for the week; None when the week is empty
    data: Optional[Dict[str, float]] = None


# -- primitives ------------------------------------------------------------

def failure_rate(scores: Iterable[float], pass_cutoff: float) -> Optional[float]:
    """Fraction of scores below the cutoff; None for no scores."""
    scores = list(scores)
    if not scores:
        return None
    failures = sum(1 for s in scores if s < pass_cutoff)
    return failures / len(scores)


def sessions_until_insights(completed_sessions: int, minimum_sessions: int) -> int:
    return max(0, minimum_sessions - completed_sessions)


def _window(samples: Sequence[DimensionSample], now: datetime, days: int) -> List[DimensionSample]:
    start = now - timedelta(days=days)
    return [s for s in samples if start < as_utc(s.created_at) <= now]


def classify(
    recent_rate: float,
    baseline_rate: float,
    thresholds: AnalysisThresholds,
) -> Classification:
    if recent_rate >= thresholds.blind_spot - _EPSILON:
        return Classification.BLIND_SPOT
    if recent_rate - baseline_rate >= thresholds.regression - _EPSILON:
        return Classification.SLIPPING
    if baseline_rate - recent_rate >= thresholds.improvement - _EPSILON:
        return Classification.IMPROVING
    if baseline_rate <= thresholds.strength + _EPSILON:
        return Classification.STRENGTH
    return Classification.STABLE


def analyze_dimension(
    key: str,
    samples: Sequence[DimensionSample],
    now: datetime,
    thresholds: AnalysisThresholds,
    registry: Optional[CriteriaRegistry] = None,
) -> Optional[DimensionAnalysis]:
    """Classify one dimension; None when it has too few baseline samples."""
    now = as_utc(now)
    baseline = _window(samples, now, thresholds.baseline_days)
    if len(baseline) < thresholds.minimum_responses:
        return None

    recent = _window(baseline, now, thresholds.recent_days)
    baseline_rate = failure_rate((s.score for s in baseline), thresholds.pass_cutoff)
    recent_rate = failure_rate((s.score for s in recent), thresholds.pass_cutoff)
    if recent_rate is None:
        # No activity this week: compare the baseline with itself
        recent_rate = baseline_rate

    definition = registry.dimension(key) if registry else None
    return DimensionAnalysis(
        key=key,
        label=definition.label if definition else key.replace("_", " ").title(),
        category=definition.category if definition else "general",
        classification=classify(recent_rate, baseline_rate, thresholds),
        recent_failure_rate=round(recent_rate, 4),
        baseline_failure_rate=round(baseline_rate, 4),
        average_score=round(sum(s.score for s in baseline) / len(baseline), 2),
        sample_size=len(baseline),
        recent_sample_size=len(recent),
    )


def universal_patterns(
    records: Sequence[ScoreOutcomeSample],
    registry: CriteriaRegistry,
    now: datetime,
    window_days: int,
) -> List[UniversalPattern]:
    """How often each universal criterion fired across recent score records."""
    now = as_utc(now)
    start = now - timedelta(days=window_days)
    in_window = [r for r in records if start < as_utc(r.created_at) <= now]

    patterns = []
    for criterion in registry.universal_criteria:
        values = [r.outcomes[criterion.key] for r in in_window if criterion.key in r.outcomes]
        if not values:
            continue
        fired = sum(1 for v in values if criterion.fired(v))
        patterns.append(UniversalPattern(
            criterion=criterion.key,
            description=criterion.description,
            occurrences=fired,
            total=len(values),
            rate=round(fired / len(values), 4),
        ))
    patterns.sort(key=lambda p: p.rate, reverse=True)
    return patterns


# -- aggregate ---------------------------------------------------------------

def analyze(
    samples: Sequence[DimensionSample],
    total_sessions: int,
    now: datetime,
    thresholds: AnalysisThresholds,
    registry: Optional[CriteriaRegistry] = None,
    score_records: Sequence[ScoreOutcomeSample] = (),
) -> PatternAnalysis:
    """
    Full classification for one user.

    Below `minimum_sessions` completed sessions nothing is classified and
    only the remaining-session count is meaningful.
    """
    now = as_utc(now)
    remaining = sessions_until_insights(total_sessions, thresholds.minimum_sessions)
    if remaining > 0:
        return PatternAnalysis(
            total_sessions=total_sessions,
            has_enough_data=False,
            sessions_until_insights=remaining,
            analyzed_at=now,
        )

    by_key: Dict[str, List[DimensionSample]] = defaultdict(list)
    for sample in samples:
        by_key[sample.dimension_key].append(sample)

    buckets: Dict[Classification, List[DimensionAnalysis]] = defaultdict(list)
    for key in sorted(by_key):
        result = analyze_dimension(key, by_key[key], now, thresholds, registry)
        if result is not None:
            buckets[result.classification].append(result)

    blind_spots = sorted(buckets[Classification.BLIND_SPOT], key=lambda d: d.recent_failure_rate, reverse=True)
    improving = sorted(buckets[Classification.IMPROVING], key=lambda d: d.change, reverse=True)
    slipping = sorted(buckets[Classification.SLIPPING], key=lambda d: d.change)
    stable = sorted(
        buckets[Classification.STABLE] + buckets[Classification.STRENGTH],
        key=lambda d: d.baseline_failure_rate,
        reverse=True,
    )

    edge_candidates = [d for d in improving + slipping + stable if d.average_score < GROWTH_EDGE_CEILING]
    growth_edge = min(edge_candidates, key=lambda d: d.average_score) if edge_candidates else None

    return PatternAnalysis(
        total_sessions=total_sessions,
        has_enough_data=True,
        sessions_until_insights=0,
        blind_spots=blind_spots,
        improving=improving,
        slipping=slipping,
        stable=stable,
        biggest_gap=blind_spots[0] if blind_spots else None,
        biggest_win=improving[0] if improving else None,
        growth_edge=growth_edge,
        universal_patterns=(
            universal_patterns(score_records, registry, now, thresholds.baseline_days)
            if registry else []
        ),
        analyzed_at=now,
    )


def teaser_summary(analysis: PatternAnalysis) -> TeaserSummary:
    return TeaserSummary(
        blind_spot_count=len(analysis.blind_spots),
        has_improving=bool(analysis.improving),
        has_regressing=bool(analysis.slipping),
        total_sessions=analysis.total_sessions,
    )


# -- trend -------------------------------------------------------------------

def _week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def _week_label(start: date) -> str:
    iso = start.isocalendar()
    return f"{iso[0]}-W{iso[1]:02d}"


def weekly_trend(
    samples: Sequence[DimensionSample],
    now: datetime,
    weeks: int,
    pass_cutoff: float,
) -> List[TrendBucket]:
    """
    Exactly `weeks` ISO-week buckets ending with the current week, oldest
    first. Weeks without samples are returned with null rates.
    """
    if weeks <= 0:
        return []
    now = as_utc(now)

    current = _week_start(now.date())
    starts = [current - timedelta(weeks=offset) for offset in range(weeks - 1, -1, -1)]
    grouped: Dict[date, List[DimensionSample]] = {start: [] for start in starts}

    for sample in samples:
        created = as_utc(sample.created_at)
        if created > now:
            continue
        start = _week_start(created.date())
        if start in grouped:
            grouped[start].append(sample)

    buckets = []
    for start in starts:
        week_samples = grouped[start]
        if not week_samples:
            buckets.append(TrendBucket(week=_week_label(start), week_start=start))
            continue

        per_dimension: Dict[str, List[float]] = defaultdict(list)
        for sample in week_samples:
            per_dimension[sample.dimension_key].append(sample.score)

        buckets.append(TrendBucket(
            week=_week_label(start),
            week_start=start,
            failure_rate=round(failure_rate((s.score for s in week_samples), pass_cutoff), 4),
            sample_size=len(week_samples),
            data={
                key: round(failure_rate(scores, pass_cutoff), 4)
                for key, scores in sorted(per_dimension.items())
            },
        ))
    return buckets


def window_start(now: datetime, thresholds: AnalysisThresholds, trend_weeks: int = 0) -> datetime:
    """Earliest timestamp any analysis or trend over `now` can look at."""
    days = max(thresholds.baseline_days, trend_weeks * 7 + 7)
    return now - timedelta(days=days)


def split_samples(rows: Iterable[Tuple[str, float, datetime]]) -> List[DimensionSample]:
    return [DimensionSample(key, float(score), as_utc(created)) for key, score, created in rows]
