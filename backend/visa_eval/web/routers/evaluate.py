"""
Evaluate Router - Job submission, progress streaming and result retrieval
"""
import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import Response, StreamingResponse

from ...db import EvaluationRepository
from ...services.pipeline import ReportRenderer, Submission, SubmissionFile, report_filename
from ..config import AppConfig
from ..dependencies import (
    get_app_config,
    get_executor,
    get_registry,
    get_renderer,
    get_store,
)
from ..limiter import limiter
from ..schemas import JobCreatedResponse, JobStatusResponse
from ..services.job_executor import JobExecutorService
from ..services.job_service import JobRegistry
from ..services.progress_channel import ProgressChannel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/evaluate", tags=["evaluate"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable Nginx buffering
}


def _parse_payload(raw: Optional[str]) -> dict:
    if raw is None or not raw.strip():
        raise HTTPException(status_code=400, detail="missing_payload")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="invalid_payload")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="invalid_payload")
    return payload


@router.post("", response_model=JobCreatedResponse)
@limiter.limit("10/minute")
async def create_evaluation(
    request: Request,
    payload: Optional[str] = Form(None),
    files: Optional[List[UploadFile]] = File(None),
    registry: JobRegistry = Depends(get_registry),
    executor: JobExecutorService = Depends(get_executor),
):
    """Accept a submission, start its pipeline, and return the job id immediately."""
    data = _parse_payload(payload)

    uploads: List[SubmissionFile] = []
    for upload in files or []:
        content = await upload.read()
        uploads.append(
            SubmissionFile(
                filename=upload.filename or "upload",
                content_type=upload.content_type or "application/octet-stream",
                content=content,
            )
        )

    job = registry.create()
    executor.start(job, Submission(payload=data, files=uploads))
    logger.info("Job %s accepted with %d file(s)", job.id, len(uploads))
    return JobCreatedResponse(jobId=job.id)


@router.get("/events")
@limiter.exempt
async def stream_events(
    request: Request,
    jobId: Optional[str] = Query(None),
    registry: JobRegistry = Depends(get_registry),
    config: AppConfig = Depends(get_app_config),
):
    """
    Server-Sent Events stream of one job's progress.

    Each message is `data: {"type": ..., "payload": ...}`. The stream ends
    after `finished` or when the client disconnects. No past events are
    replayed.
    """
    if not jobId:
        raise HTTPException(status_code=400, detail="missing_jobId")
    job = registry.get(jobId)
    if job is None:
        raise HTTPException(status_code=404, detail="job_not_found")

    channel = ProgressChannel(job, heartbeat_s=config.sse_heartbeat_s)
    # Subscribe now so events emitted before the body starts are queued
    channel.open()
    return StreamingResponse(
        channel.messages(request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job_status(
    job_id: str,
    registry: JobRegistry = Depends(get_registry),
    executor: JobExecutorService = Depends(get_executor),
):
    """Diagnostic view of a live job."""
    job = registry.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="job_not_found")
    return JobStatusResponse(
        jobId=job.id,
        status=job.status,
        subscribers=job.subscriber_count,
        running=executor.is_running(job.id),
    )


@router.get("/result")
async def get_result(
    evaluationId: Optional[str] = Query(None),
    format: str = Query("json"),
    store: EvaluationRepository = Depends(get_store),
    renderer: ReportRenderer = Depends(get_renderer),
):
    """Fetch a persisted evaluation as JSON, or as the rendered PDF report."""
    if not evaluationId:
        raise HTTPException(status_code=400, detail="missing_evaluationId")
    if format not in ("json", "pdf"):
        raise HTTPException(status_code=400, detail="invalid_format")

    record = await store.get(evaluationId)
    if record is None:
        raise HTTPException(status_code=404, detail="not_found")

    if format == "json":
        return record

    pdf = await renderer.render(record)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{report_filename(evaluationId)}"'
        },
    )
