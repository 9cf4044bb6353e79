"""
Reports Router - Re-send an existing evaluation report by email
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from ...db import EvaluationRepository
from ...services.pipeline import Mailer, OutgoingReport, ReportRenderer, report_filename
from ..dependencies import get_mailer, get_renderer, get_store
from ..schemas import OkResponse, SendReportRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reports"])


@router.post("/send-report", response_model=OkResponse)
async def send_report(
    body: SendReportRequest,
    store: EvaluationRepository = Depends(get_store),
    renderer: ReportRenderer = Depends(get_renderer),
    mailer: Mailer = Depends(get_mailer),
):
    """Re-render and re-email a stored evaluation. Uploads are not kept, so only the PDF is attached."""
    if not body.evaluationId:
        raise HTTPException(status_code=400, detail="missing_evaluationId")

    record = await store.get(body.evaluationId)
    if record is None:
        raise HTTPException(status_code=404, detail="not_found")

    pdf = await renderer.render(record)
    sent = await mailer.send(
        OutgoingReport(
            record=record,
            report_filename=report_filename(record["id"]),
            report_pdf=pdf,
        )
    )
    if not sent:
        logger.warning("Report re-send failed for %s", record["id"])
    return OkResponse(ok=sent)
