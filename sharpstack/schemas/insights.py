"""
Pydantic schemas for blind spot, skills and email preference endpoints.
"""

from datetime import date
from typing import Dict, List, Optional

from pydantic import Field

from sharpstack.engines.insights import Classification, GateDecision
from sharpstack.schemas.common import CamelModel


class DimensionAnalysisResponse(CamelModel):
    key: str
    label: str
    category: str
    classification: Classification
    recent_failure_rate: float
    baseline_failure_rate: float
    average_score: float
    sample_size: int
    recent_sample_size: int


class UniversalPatternResponse(CamelModel):
    criterion: str
    description: str
    occurrences: int
    total: int
    rate: float


class TeaserSummaryResponse(CamelModel):
    blind_spot_count: int
    has_improving: bool
    has_regressing: bool
    total_sessions: int


class BlindSpotAnalysisResponse(CamelModel):
    """Detail fields are null whenever the gate forbids them, never partial."""

    has_enough_data: bool
    is_unlocked: bool
    gate_reason: GateDecision
    sessions_until_insights: int
    total_sessions: int
    blind_spots: Optional[List[DimensionAnalysisResponse]] = None
    improving: Optional[List[DimensionAnalysisResponse]] = None
    slipping: Optional[List[DimensionAnalysisResponse]] = None
    stable: Optional[List[DimensionAnalysisResponse]] = None
    biggest_gap: Optional[DimensionAnalysisResponse] = None
    biggest_win: Optional[DimensionAnalysisResponse] = None
    growth_edge: Optional[DimensionAnalysisResponse] = None
    universal_patterns: Optional[List[UniversalPatternResponse]] = None
    teaser: Optional[TeaserSummaryResponse] = None


class TeaserResponse(CamelModel):
    has_enough_data: bool
    is_unlocked: bool
    gate_reason: GateDecision
    sessions_until_insights: int
    total_sessions: int
    blind_spot_count: Optional[int] = None
    has_improving: Optional[bool] = None
    has_regressing: Optional[bool] = None


class BlindSpotStatusResponse(CamelModel):
    has_enough_data: bool
    has_pro_access: bool
    can_access_full_insights: bool
    show_teaser: bool
    total_sessions: int
    minimum_sessions: int
    sessions_until_insights: int
    blind_spot_count: Optional[int] = None


class TrendBucketResponse(CamelModel):
    week: str
    week_start: date
    failure_rate: Optional[float] = None
    sample_size: int = 0
    data: Optional[Dict[str, float]] = None


class TrendResponse(CamelModel):
    gate_reason: GateDecision
    weeks: Optional[List[TrendBucketResponse]] = None


class SkillDimensionResponse(CamelModel):
    key: str
    label: str
    category: str
    description: Optional[str] = None
    target: Optional[str] = None
    tips: List[str] = []


class EmailPreferencesResponse(CamelModel):
    teaser_emails: bool
    weekly_report: bool


class EmailPreferencesUpdate(CamelModel):
    teaser_emails: Optional[bool] = Field(None)
    weekly_report: Optional[bool] = Field(None)
