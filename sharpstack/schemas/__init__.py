"""
Pydantic schemas for API request/response validation.
"""

from sharpstack.schemas.common import (
    CamelModel,
    ErrorResponse,
    HealthResponse,
    LimitReachedResponse,
)
from sharpstack.schemas.training import (
    CardResponse,
    ModeResponse,
    RespondRequest,
    SessionStepResponse,
    SessionViewResponse,
    StartSessionRequest,
    UsageResponse,
)
from sharpstack.schemas.insights import (
    BlindSpotAnalysisResponse,
    BlindSpotStatusResponse,
    EmailPreferencesResponse,
    EmailPreferencesUpdate,
    SkillDimensionResponse,
    TeaserResponse,
    TrendResponse,
)

__all__ = [
    "CamelModel",
    "ErrorResponse",
    "HealthResponse",
    "LimitReachedResponse",
    "CardResponse",
    "ModeResponse",
    "RespondRequest",
    "SessionStepResponse",
    "SessionViewResponse",
    "StartSessionRequest",
    "UsageResponse",
    "BlindSpotAnalysisResponse",
    "BlindSpotStatusResponse",
    "EmailPreferencesResponse",
    "EmailPreferencesUpdate",
    "SkillDimensionResponse",
    "TeaserResponse",
    "TrendResponse",
]
