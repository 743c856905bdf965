"""Unit tests for the pattern aggregator: classification, windows, trends."""

from datetime import date, datetime, timedelta, timezone

import pytest

from sharpstack.engines.criteria import build_registry
from sharpstack.engines.criteria.catalog import DEFAULT_CATALOG
from sharpstack.engines.insights import (
    AnalysisThresholds,
    Classification,
    DimensionSample,
    ScoreOutcomeSample,
    analyze,
    classify,
    failure_rate,
    weekly_trend,
)
from sharpstack.engines.insights.analyzer import universal_patterns

NOW = datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)  # a Wednesday


@pytest.fixture
def thresholds():
    return AnalysisThresholds()


@pytest.fixture
def registry():
    return build_registry(DEFAULT_CATALOG)


def _samples(key, scores, days_ago_start=1):
    return [
        DimensionSample(key, score, NOW - timedelta(days=days_ago_start + i))
        for i, score in enumerate(scores)
    ]


class TestClassify:
    """First matching rule wins: blind spot, slipping, improving, strength, stable."""

    def test_blind_spot_beats_slipping(self, thresholds):
        assert classify(0.7, 0.2, thresholds) is Classification.BLIND_SPOT

    def test_blind_spot_at_threshold(self, thresholds):
        assert classify(0.6, 0.6, thresholds) is Classification.BLIND_SPOT

    def test_slipping(self, thresholds):
        assert classify(0.4, 0.2, thresholds) is Classification.SLIPPING

    def test_improving(self, thresholds):
        assert classify(0.1, 0.4, thresholds) is Classification.IMPROVING

    def test_strength(self, thresholds):
        assert classify(0.1, 0.2, thresholds) is Classification.STRENGTH

    def test_stable(self, thresholds):
        assert classify(0.4, 0.35, thresholds) is Classification.STABLE


class TestFailureRate:
    def test_cutoff_passes(self):
        assert failure_rate([5.9, 6.0], pass_cutoff=6.0) == 0.5

    def test_empty_is_none(self):
        assert failure_rate([], pass_cutoff=6.0) is None

    def test_monotonic_in_cutoff(self):
        scores = [2.0, 4.0, 6.0, 8.0, 10.0]
        rates = [failure_rate(scores, cutoff) for cutoff in (3.0, 5.0, 7.0, 9.0)]
        assert rates == sorted(rates)


class TestAnalyze:
    def test_four_sessions_is_not_enough(self, thresholds, registry):
        result = analyze(_samples("authority", [2.0] * 6), 4, NOW, thresholds, registry)
        assert result.has_enough_data is False
        assert result.sessions_until_insights == 1
        assert result.blind_spots == []

    def test_five_sessions_unlock_classification(self, thresholds, registry):
        result = analyze(_samples("authority", [2.0] * 5), 5, NOW, thresholds, registry)
        assert result.has_enough_data is True
        assert result.sessions_until_insights == 0
        assert [d.key for d in result.blind_spots] == ["authority"]
        assert result.biggest_gap.label == "Authority"
        assert result.blind_spots[0].recent_failure_rate == 1.0

    def test_dimension_below_minimum_responses_is_skipped(self, thresholds, registry):
        samples = _samples("authority", [2.0] * 4) + _samples("clarity", [10.0] * 5)
        result = analyze(samples, 5, NOW, thresholds, registry)
        keys = {d.key for d in result.blind_spots + result.stable}
        assert keys == {"clarity"}

    def test_samples_outside_baseline_ignored(self, thresholds, registry):
        samples = _samples("authority", [2.0] * 5, days_ago_start=40)
        result = analyze(samples, 5, NOW, thresholds, registry)
        assert not result.has_patterns
        assert result.stable == []

    def test_improving_dimension(self, thresholds, registry):
        samples = _samples("directness", [2.0] * 5, days_ago_start=10) + _samples("directness", [8.0] * 5)
        result = analyze(samples, 6, NOW, thresholds, registry)
        assert [d.key for d in result.improving] == ["directness"]
        assert result.biggest_win.key == "directness"
        assert result.improving[0].change == pytest.approx(0.5)

    def test_no_recent_activity_compares_baseline_to_itself(self, thresholds, registry):
        samples = _samples("empathy", [2.0, 2.0, 8.0, 8.0, 8.0], days_ago_start=10)
        result = analyze(samples, 5, NOW, thresholds, registry)
        [empathy] = result.stable
        assert empathy.recent_sample_size == 0
        assert empathy.recent_failure_rate == empathy.baseline_failure_rate == 0.4

    def test_universal_patterns_counted(self, thresholds, registry):
        records = [
            ScoreOutcomeSample({"hedging": True, "word_limit_met": False}, NOW - timedelta(days=1)),
            ScoreOutcomeSample({"hedging": True, "word_limit_met": True}, NOW - timedelta(days=2)),
            ScoreOutcomeSample({"hedging": False}, NOW - timedelta(days=3)),
        ]
        result = analyze([], 5, NOW, thresholds, registry, records)
        by_key = {p.criterion: p for p in result.universal_patterns}
        assert by_key["hedging"].occurrences == 2
        assert by_key["hedging"].total == 3
        # word_limit_met fires when it comes back false
        assert by_key["word_limit_met"].occurrences == 1
        assert result.universal_patterns[0].criterion == "hedging"


class TestUniversalPatterns:
    def test_count_criterion_fires_above_zero(self, registry):
        records = [
            ScoreOutcomeSample({"filler_phrases": 0}, NOW - timedelta(days=1)),
            ScoreOutcomeSample({"filler_phrases": 3}, NOW - timedelta(days=1)),
        ]
        [pattern] = universal_patterns(records, registry, NOW, window_days=30)
        assert pattern.criterion == "filler_phrases"
        assert pattern.rate == 0.5


class TestWeeklyTrend:
    def test_exactly_n_buckets_oldest_first(self):
        buckets = weekly_trend([], NOW, weeks=4, pass_cutoff=6.0)
        assert len(buckets) == 4
        starts = [b.week_start for b in buckets]
        assert starts == sorted(starts)
        assert starts[-1] == date(2026, 10, 12)
        assert buckets[-1].week == "2026-W42"

    def test_empty_weeks_have_null_rates(self):
        samples = [DimensionSample("authority", 4.0, NOW - timedelta(days=1))]
        buckets = weekly_trend(samples, NOW, weeks=3, pass_cutoff=6.0)
        assert [b.failure_rate for b in buckets] == [None, None, 1.0]
        assert buckets[0].data is None
        assert buckets[0].sample_size == 0
        assert buckets[-1].data == {"authority": 1.0}

    def test_groups_per_dimension(self):
        samples = [
            DimensionSample("authority", 4.0, NOW - timedelta(days=8)),
            DimensionSample("authority", 8.0, NOW - timedelta(days=8)),
            DimensionSample("clarity", 10.0, NOW - timedelta(days=9)),
        ]
        buckets = weekly_trend(samples, NOW, weeks=2, pass_cutoff=6.0)
        previous = buckets[0]
        assert previous.sample_size == 3
        assert previous.data == {"authority": 0.5, "clarity": 0.0}
        assert previous.failure_rate == pytest.approx(0.3333, abs=1e-4)

    def test_future_and_old_samples_ignored(self):
        samples = [
            DimensionSample("authority", 4.0, NOW + timedelta(hours=1)),
            DimensionSample("authority", 4.0, NOW - timedelta(weeks=10)),
        ]
        buckets = weekly_trend(samples, NOW, weeks=2, pass_cutoff=6.0)
        assert all(b.sample_size == 0 for b in buckets)

    def test_zero_weeks(self):
        assert weekly_trend([], NOW, weeks=0, pass_cutoff=6.0) == []
