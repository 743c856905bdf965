"""
Blind spot endpoints - gated analysis, teaser, banner status and trends.

Every endpoint runs the same access gate; detail is null unless unlocked.
"""

from typing import Optional

from fastapi import APIRouter, Query

from sharpstack.api.deps import CurrentUser, Insights
from sharpstack.schemas.insights import (
    BlindSpotAnalysisResponse,
    BlindSpotStatusResponse,
    TeaserResponse,
    TrendResponse,
)

router = APIRouter()


@router.get("", response_model=BlindSpotAnalysisResponse)
async def get_blind_spots(user: CurrentUser, insights: Insights):
    """Pattern analysis, with per-dimension detail only when unlocked."""
    gated = await insights.gated_analysis(user)
    return BlindSpotAnalysisResponse.model_validate(gated)


@router.get("/teaser", response_model=TeaserResponse)
async def get_teaser(user: CurrentUser, insights: Insights):
    """Counts and flags only, for upgrade prompts."""
    teaser = await insights.teaser(user)
    return TeaserResponse.model_validate(teaser)


@router.get("/status", response_model=BlindSpotStatusResponse)
async def get_status(user: CurrentUser, insights: Insights):
    """Lightweight status for UI banners."""
    result = await insights.status(user)
    return BlindSpotStatusResponse.model_validate(result)


@router.get("/trends", response_model=TrendResponse)
async def get_trends(
    user: CurrentUser,
    insights: Insights,
    weeks: Optional[int] = Query(None, ge=1, le=52),
):
    """Weekly failure rate history, oldest week first."""
    trend = await insights.trends(user, weeks=weeks)
    return TrendResponse.model_validate(trend)
