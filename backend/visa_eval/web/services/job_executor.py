"""
Job Executor Service

Bridges the in-memory Job with the evaluation pipeline by:
- Running the pipeline detached from the request that created the job
- Keeping a handle per background run so shutdown can cancel it
- Scheduling registry eviction once the run is over
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from ...services.pipeline import (
    EvaluationPipeline,
    PipelineOutcome,
    ProgressEventType,
    Submission,
)
from .job_service import Job, JobRegistry

logger = logging.getLogger(__name__)


class JobExecutorService:
    """Executes the evaluation pipeline for a Job in the background."""

    def __init__(
        self,
        registry: JobRegistry,
        pipeline: EvaluationPipeline,
        retention_s: float = 30.0,
    ) -> None:
        self.registry = registry
        self.pipeline = pipeline
        self.retention_s = retention_s
        self._background: Dict[str, asyncio.Task[Any]] = {}

    def start(self, job: Job, submission: Submission) -> asyncio.Task[Any]:
        """Kick off the pipeline; the caller does not await it."""
        existing = self._background.get(job.id)
        if existing is not None and not existing.done():
            return existing

        loop = asyncio.get_running_loop()
        handle = loop.create_task(self._run(job, submission), name=f"job-{job.id}")
        self._background[job.id] = handle
        handle.add_done_callback(lambda t: self._background.pop(job.id, None))
        return handle

    def is_running(self, job_id: str) -> bool:
        """Check if a background run is active for the job."""
        handle = self._background.get(job_id)
        return bool(handle and not handle.done())

    @property
    def running_count(self) -> int:
        return sum(1 for handle in self._background.values() if not handle.done())

    async def _run(self, job: Job, submission: Submission) -> Optional[PipelineOutcome]:
        outcome: Optional[PipelineOutcome] = None
        try:
            outcome = await self.pipeline.run(submission, job.emit)
        except asyncio.CancelledError:
            logger.warning("Job %s cancelled before finishing", job.id)
            raise
        except Exception as exc:
            # Pipeline.run converts stage failures itself; this is a bug guard
            logger.exception("Job %s crashed outside the pipeline stages", job.id)
            job.emit(ProgressEventType.error, {"stage": "worker", "message": str(exc)})
            job.emit(ProgressEventType.finished, {"ok": False})
        finally:
            self.registry.schedule_removal(job.id, self.retention_s)
        return outcome

    async def shutdown(self) -> None:
        """Cancel background runs (application shutdown)."""
        pending = [handle for handle in self._background.values() if not handle.done()]
        for handle in pending:
            handle.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info("Cancelled %d running job(s)", len(pending))
        self._background.clear()
