"""
Scoring worker pool.

The request path calls enqueue() and returns immediately. N worker tasks
drain an asyncio.Queue; each job retries the oracle with exponential
backoff (tenacity) and then persists in its own transaction. A job that
exhausts its retries is logged and dropped: the user's session is never
affected, the dimension just has one sample fewer.
"""

import asyncio
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from sharpstack.ai.errors import OracleError
from sharpstack.config import Settings
from sharpstack.engines.scoring.jobs import ScoringJob
from sharpstack.engines.scoring.pipeline import DrillScoringPipeline
from sharpstack.logging_config import get_logger, request_id_var

logger = get_logger(__name__)


class ScoringWorkerPool:
    """In-process queue plus worker tasks, owned by the app lifespan."""

    def __init__(
        self,
        pipeline: DrillScoringPipeline,
        session_maker: async_sessionmaker[AsyncSession],
        settings: Settings,
    ):
        self.pipeline = pipeline
        self.session_maker = session_maker
        self.workers = max(1, settings.scoring_workers)
        self.max_attempts = max(1, settings.scoring_max_attempts)
        self.backoff_seconds = settings.scoring_backoff_seconds
        self._queue: asyncio.Queue[Optional[ScoringJob]] = asyncio.Queue(
            maxsize=settings.scoring_queue_size,
        )
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._run(i), name=f"scoring-worker-{i}")
            for i in range(self.workers)
        ]
        logger.info("Scoring workers started", extra={"workers": self.workers})

    async def stop(self, drain: bool = True) -> None:
        """Stop the workers, finishing queued jobs first when drain is set."""
        if not self._tasks:
            return
        if drain:
            await self._queue.join()
        for _ in self._tasks:
            self._queue.put_nowait(None)
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Scoring workers stopped")

    def enqueue(self, job: ScoringJob) -> bool:
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.warning(
                "Scoring queue full, dropping job",
                extra={"job_id": str(job.job_id), "session_id": str(job.session_id)},
            )
            return False
        logger.debug("Scoring job enqueued", extra={"job_id": str(job.job_id)})
        return True

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def _run(self, index: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                if job is None:
                    return
                await self.process(job)
            finally:
                self._queue.task_done()

    async def process(self, job: ScoringJob) -> bool:
        """Score one job. Returns True when a record was written."""
        token = request_id_var.set(f"score-{job.job_id}")
        try:
            try:
                outcomes = await self._evaluate_with_retry(job)
            except RetryError as exc:
                logger.warning(
                    "Scoring oracle failed after retries, dropping job",
                    extra={
                        "job_id": str(job.job_id),
                        "attempts": self.max_attempts,
                        "error": str(exc.last_attempt.exception()),
                    },
                )
                return False

            if outcomes is None:
                return False

            try:
                async with self.session_maker() as session:
                    async with session.begin():
                        await self.pipeline.persist(session, job, outcomes)
            except Exception:
                # Transaction rolled back; nothing partial was committed
                logger.exception(
                    "Persisting score failed",
                    extra={"job_id": str(job.job_id), "session_id": str(job.session_id)},
                )
                return False
            return True
        finally:
            request_id_var.reset(token)

    async def _evaluate_with_retry(self, job: ScoringJob):
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=30),
            retry=retry_if_exception_type(OracleError),
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(
                        "Retrying scoring oracle",
                        extra={"job_id": str(job.job_id), "attempt": attempt.retry_state.attempt_number},
                    )
                outcomes = await self.pipeline.evaluate(job)
        return outcomes
