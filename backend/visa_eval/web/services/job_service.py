"""
Job Service - In-memory job registry and per-job event fanout
"""
import asyncio
import logging
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from ...services.pipeline.contracts import JobStatus, ProgressEvent, ProgressEventType

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressEvent], None]


class Subscription:
    """Handle returned by Job.subscribe(); pass it back to unsubscribe."""

    __slots__ = ("job_id", "listener", "active")

    def __init__(self, job_id: str, listener: ProgressListener):
        self.job_id = job_id
        self.listener = listener
        self.active = True


class Job:
    """One tracked run of the evaluation pipeline for a single submission."""

    def __init__(self, job_id: str):
        self.id = job_id
        self.status: JobStatus = JobStatus.pending
        self.created_at = time.time()
        self.finished_at: Optional[float] = None
        self._subscriptions: List[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, listener: ProgressListener) -> Subscription:
        """Register a listener for future events (no replay of past events)."""
        subscription = Subscription(self.id, listener)
        self._subscriptions.append(subscription)
        logger.info(
            "Job %s: new subscriber (total: %d)", self.id, len(self._subscriptions)
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a listener. Safe to call repeatedly or after eviction."""
        subscription.active = False
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
            logger.info(
                "Job %s: unsubscribed (remaining: %d)",
                self.id,
                len(self._subscriptions),
            )

    def emit(
        self,
        event_type: ProgressEventType,
        payload: Optional[Dict[str, Any]] = None,
    ) -> ProgressEvent:
        """
        Synchronously notify every listener, in registration order.

        A listener that raises is logged and skipped; delivery to the
        remaining listeners continues.
        """
        event = ProgressEvent(type=ProgressEventType(event_type), payload=payload)

        if event.type.is_terminal:
            self.status = JobStatus.finished
            self.finished_at = time.time()
        elif self.status == JobStatus.pending:
            self.status = JobStatus.running

        # Iterate over a copy so listeners may unsubscribe during delivery
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                subscription.listener(event)
            except Exception:
                logger.exception(
                    "Job %s: listener failed on %s event", self.id, event.type.value
                )
        return event


class JobRegistry:
    """
    Process-scoped store of live jobs.

    Constructed once at application start and shared through app.state.
    All operations are plain dict operations and never await, so they are
    safe under interleaved coroutines on the single event loop.
    """

    def __init__(self, max_lifetime_s: float = 0.0):
        self.jobs: Dict[str, Job] = {}
        self._max_lifetime_s = max(0.0, float(max_lifetime_s))
        self._timers: Dict[str, asyncio.TimerHandle] = {}

    def __len__(self) -> int:
        return len(self.jobs)

    def _new_id(self) -> str:
        job_id = f"job_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}"
        while job_id in self.jobs:
            job_id = f"job_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}"
        return job_id

    def create(self) -> Job:
        """Create and register a new job"""
        job = Job(self._new_id())
        self.jobs[job.id] = job
        logger.info("Job %s created (live jobs: %d)", job.id, len(self.jobs))
        if self._max_lifetime_s > 0:
            self.schedule_removal(job.id, self._max_lifetime_s)
        return job

    def get(self, job_id: str) -> Optional[Job]:
        """Get job by ID, or None for unknown/expired ids"""
        return self.jobs.get(job_id)

    def remove(self, job_id: str) -> None:
        """Remove a job. Unknown ids are ignored."""
        timer = self._timers.pop(job_id, None)
        if timer is not None:
            timer.cancel()
        job = self.jobs.pop(job_id, None)
        if job is not None:
            logger.info("Job %s evicted (live jobs: %d)", job_id, len(self.jobs))

    def schedule_removal(self, job_id: str, delay_s: float) -> None:
        """
        Evict a job after `delay_s` seconds.

        Rescheduling replaces any earlier timer for the same job.
        """
        loop = asyncio.get_running_loop()
        previous = self._timers.pop(job_id, None)
        if previous is not None:
            previous.cancel()
        if delay_s <= 0:
            self.remove(job_id)
            return
        self._timers[job_id] = loop.call_later(delay_s, self._expire, job_id)

    def _expire(self, job_id: str) -> None:
        self._timers.pop(job_id, None)
        self.remove(job_id)

    def clear(self) -> None:
        """Cancel pending evictions and drop every job (shutdown/testing)."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self.jobs.clear()
