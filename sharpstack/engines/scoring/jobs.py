"""
Scoring job message and the publisher boundary.

The session engine only knows `ScoringPublisher.enqueue`; it never waits on
scoring and never sees its result.
"""

import uuid
from typing import List, Optional, Protocol

from pydantic import BaseModel, Field


class ScoringJob(BaseModel):
    """Everything the pipeline needs to score one answer."""

    job_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    user_id: uuid.UUID
    session_id: uuid.UUID
    mode_id: Optional[uuid.UUID] = None
    drill_id: Optional[uuid.UUID] = None
    drill_type: str
    drill_phase: str
    is_iteration: bool = False
    response_text: str


class ScoringPublisher(Protocol):
    def enqueue(self, job: ScoringJob) -> bool:
        """Hand a job to the workers. Returns False if it was dropped."""
        ...


class RecordingPublisher:
    """Collects jobs in memory instead of scoring them."""

    def __init__(self) -> None:
        self.jobs: List[ScoringJob] = []

    def enqueue(self, job: ScoringJob) -> bool:
        self.jobs.append(job)
        return True
