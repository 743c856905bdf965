"""
Pydantic schemas for the training API.
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import Field, model_validator

from sharpstack.kernel.models import MessageRole, SessionPhase, SessionStatus
from sharpstack.schemas.common import CamelModel


class StartSessionRequest(CamelModel):
    mode_slug: str = Field(..., min_length=1, max_length=100)


class RespondRequest(CamelModel):
    """Free-text answer or a multiple choice option id."""

    text: Optional[str] = Field(None, max_length=10000)
    choice: Optional[str] = Field(None, max_length=100)

    @model_validator(mode="after")
    def _one_answer(self) -> "RespondRequest":
        if not self.text and not self.choice:
            raise ValueError("Either text or choice is required")
        return self


class ChoiceOptionResponse(CamelModel):
    id: str
    label: str


class CardResponse(CamelModel):
    """Every card variant flattened; fields that do not apply are null."""

    type: str
    content: str
    drill_phase: Optional[str] = None
    is_iteration: bool = False
    task: Optional[str] = None
    title: Optional[str] = None
    timer_seconds: Optional[int] = None
    options: Optional[List[ChoiceOptionResponse]] = None
    score: Optional[int] = None
    new_level: Optional[int] = None
    level: Optional[int] = None


class SessionStateResponse(CamelModel):
    id: uuid.UUID
    mode_slug: str
    status: SessionStatus
    phase: SessionPhase
    drill_index: int
    total_drills: int
    exchange_count: int
    level_at_start: int
    started_at: datetime
    ended_at: Optional[datetime] = None


class ProgressResponse(CamelModel):
    mode_slug: str
    current_level: int
    max_level: int
    exchanges_at_current_level: int
    exchanges_to_next_level: Optional[int] = None
    total_drills_completed: int
    total_sessions: int
    total_exchanges: int


class SessionSummaryResponse(CamelModel):
    drills: int
    responses: int
    iterations: int
    exchange_count: int
    multiple_choice_answered: int = 0
    multiple_choice_correct: int = 0
    accuracy: Optional[float] = None
    duration_seconds: int
    level_at_start: int
    level: int


class SessionStepResponse(CamelModel):
    session: SessionStateResponse
    card: Optional[CardResponse] = None
    notices: List[CardResponse] = []
    progress: ProgressResponse
    summary: Optional[SessionSummaryResponse] = None
    completed: bool = False


class MessageResponse(CamelModel):
    sequence: int
    role: MessageRole
    card: Optional[CardResponse] = None
    response: Optional[dict] = None
    created_at: datetime


class SessionViewResponse(CamelModel):
    session: SessionStateResponse
    card: Optional[CardResponse] = None
    progress: ProgressResponse
    messages: List[MessageResponse]
    summary: Optional[SessionSummaryResponse] = None


class ModeResponse(CamelModel):
    slug: str
    name: str
    description: Optional[str] = None
    total_drills: int
    progress: ProgressResponse


class UsageResponse(CamelModel):
    plan: str
    daily_limit: int
    used: int
    remaining: int
    usage_date: date
