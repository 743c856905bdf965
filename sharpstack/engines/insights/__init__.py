"""
Insights Engine - Pattern Aggregator and Access Gate.

Turns the dimension score history into blind spot / slipping / improving /
stable classifications and decides how much of it a user may see.
"""

from sharpstack.engines.insights.analyzer import (
    AnalysisThresholds,
    Classification,
    DimensionAnalysis,
    DimensionSample,
    PatternAnalysis,
    ScoreOutcomeSample,
    TeaserSummary,
    TrendBucket,
    analyze,
    classify,
    failure_rate,
    teaser_summary,
    weekly_trend,
)
from sharpstack.engines.insights.access_gate import (
    AccessGate,
    GateDecision,
    GatedAnalysis,
    GatedTrend,
)
from sharpstack.engines.insights.service import BlindSpotStatus, InsightsService, TeaserView

__all__ = [
    "AnalysisThresholds",
    "Classification",
    "DimensionAnalysis",
    "DimensionSample",
    "PatternAnalysis",
    "ScoreOutcomeSample",
    "TeaserSummary",
    "TrendBucket",
    "analyze",
    "classify",
    "failure_rate",
    "teaser_summary",
    "weekly_trend",
    "AccessGate",
    "GateDecision",
    "GatedAnalysis",
    "GatedTrend",
    "BlindSpotStatus",
    "InsightsService",
    "TeaserView",
]
