"""Drill Scoring Pipeline and its worker pool."""

from sharpstack.engines.scoring.dimension_scoring import score_dimensions, validate_outcomes
from sharpstack.engines.scoring.jobs import RecordingPublisher, ScoringJob, ScoringPublisher
from sharpstack.engines.scoring.pipeline import DrillScoringPipeline
from sharpstack.engines.scoring.worker import ScoringWorkerPool

__all__ = [
    "score_dimensions",
    "validate_outcomes",
    "RecordingPublisher",
    "ScoringJob",
    "ScoringPublisher",
    "DrillScoringPipeline",
    "ScoringWorkerPool",
]
