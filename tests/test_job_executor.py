"""
Background job execution: crash guard, eviction and shutdown.

Run with: pytest tests/test_job_executor.py
"""

import asyncio

from conftest import make_submission

from backend.visa_eval.services.pipeline import ProgressEventType
from backend.visa_eval.web.services.job_executor import JobExecutorService
from backend.visa_eval.web.services.job_service import JobRegistry


class CrashingPipeline:
    """Emits `received`, then fails outside any stage wrapper."""

    async def run(self, submission, emit):
        emit(ProgressEventType.received, {"message": "Submission received"})
        raise RuntimeError("worker bug")


class BlockedPipeline:
    def __init__(self):
        self.gate = asyncio.Event()
        self.started = asyncio.Event()

    async def run(self, submission, emit):
        self.started.set()
        await self.gate.wait()


def test_crash_outside_stages_finishes_and_evicts():
    async def scenario():
        registry = JobRegistry()
        executor = JobExecutorService(registry, CrashingPipeline(), retention_s=0.05)
        job = registry.create()
        seen = []
        job.subscribe(lambda e: seen.append(e))

        handle = executor.start(job, make_submission())
        outcome = await handle
        still_live = registry.get(job.id) is job
        await asyncio.sleep(0.15)
        return seen, outcome, still_live, registry.get(job.id)

    seen, outcome, still_live, after = asyncio.run(scenario())

    assert [e.type.value for e in seen] == ["received", "error", "finished"]
    assert seen[1].payload["stage"] == "worker"
    assert seen[2].payload == {"ok": False}
    assert outcome is None
    assert still_live
    assert after is None


def test_shutdown_cancels_running_jobs():
    async def scenario():
        registry = JobRegistry()
        pipeline = BlockedPipeline()
        executor = JobExecutorService(registry, pipeline, retention_s=30)
        job = registry.create()

        handle = executor.start(job, make_submission())
        await pipeline.started.wait()
        assert executor.is_running(job.id)
        assert executor.running_count == 1

        await executor.shutdown()
        result = (handle.cancelled(), executor.running_count, executor.is_running(job.id))
        registry.clear()
        return result

    assert asyncio.run(scenario()) == (True, 0, False)


def test_start_is_idempotent_while_running():
    async def scenario():
        registry = JobRegistry()
        pipeline = BlockedPipeline()
        executor = JobExecutorService(registry, pipeline)
        job = registry.create()

        first = executor.start(job, make_submission())
        second = executor.start(job, make_submission())
        same = first is second
        pipeline.gate.set()
        await first
        registry.clear()
        return same

    assert asyncio.run(scenario())
