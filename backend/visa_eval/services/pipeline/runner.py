"""
Pipeline Runner - Orchestrates the evaluation stages for one job.

This module provides the EvaluationPipeline class that:
- Executes validate -> score -> persist -> render -> email strictly in sequence
- Emits a progress event at every stage transition
- Converts collaborator failures into `error` + `finished(ok=False)`
- Degrades mailer failures to `email_failed` without failing the run
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from .contracts import (
    EvaluationResult,
    PipelineStageError,
    ProgressEventType,
    StageTimeoutError,
    Submission,
    ValidationResult,
)
from .ports import (
    DocumentValidator,
    EvaluationStore,
    Mailer,
    OutgoingReport,
    ReportRenderer,
    ScoringEngine,
)


logger = logging.getLogger(__name__)

# Type alias for event callback
EventCallback = Callable[[ProgressEventType, Optional[Dict[str, Any]]], None]

T = TypeVar("T")


@dataclass
class PipelineOutcome:
    """Final result of one pipeline run."""

    ok: bool
    evaluation_id: Optional[str] = None
    email_sent: bool = False
    error: Optional[str] = None
    failed_stage: Optional[str] = None


def report_filename(evaluation_id: str) -> str:
    return f"Evaluation-Report-{evaluation_id}.pdf"


def build_record_data(
    submission: Submission,
    validation: ValidationResult,
    evaluation: EvaluationResult,
) -> Dict[str, Any]:
    """Merge the submission payload with its evaluation for persistence."""
    data: Dict[str, Any] = dict(submission.payload)
    data.update(evaluation.model_dump())
    data["uploadedFiles"] = [
        {"name": f.filename, "size": f.size, "contentType": f.content_type}
        for f in submission.files
    ]
    data["validation"] = validation.details
    return data


class EvaluationPipeline:
    """
    Runs the evaluation stages against a single submission.

    Stages run strictly sequentially: the next event is only emitted after
    the previous collaborator call has resolved. There are no retries.

    Usage:
        pipeline = EvaluationPipeline(
            validator=validator,
            scorer=scorer,
            store=store,
            renderer=renderer,
            mailer=mailer,
        )
        outcome = await pipeline.run(submission, on_event=job.emit)
    """

    def __init__(
        self,
        *,
        validator: DocumentValidator,
        scorer: ScoringEngine,
        store: EvaluationStore,
        renderer: ReportRenderer,
        mailer: Mailer,
        stage_timeout_s: float = 0.0,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            validator: Document validator collaborator
            scorer: Scoring engine collaborator
            store: Persistence store collaborator
            renderer: Report renderer collaborator
            mailer: Mailer collaborator
            stage_timeout_s: Per-stage timeout in seconds (0 disables)
        """
        self._validator = validator
        self._scorer = scorer
        self._store = store
        self._renderer = renderer
        self._mailer = mailer
        self._stage_timeout_s = max(0.0, float(stage_timeout_s))

    async def _call_stage(self, stage: str, call: Callable[[], Awaitable[T]]) -> T:
        """Await a collaborator, wrapping failures with the stage name."""
        try:
            if self._stage_timeout_s <= 0:
                return await call()
            try:
                return await asyncio.wait_for(call(), timeout=self._stage_timeout_s)
            except asyncio.TimeoutError as exc:
                raise StageTimeoutError(
                    stage, f"{stage} timed out after {self._stage_timeout_s:g}s"
                ) from exc
        except PipelineStageError:
            raise
        except Exception as exc:
            raise PipelineStageError(stage, f"{stage} failed: {exc}") from exc

    @staticmethod
    def _emit(
        on_event: EventCallback,
        event_type: ProgressEventType,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            on_event(event_type, payload)
        except Exception:
            # Listener problems must never abort the run
            logger.exception("Progress callback failed for %s", event_type.value)

    async def run(self, submission: Submission, on_event: EventCallback) -> PipelineOutcome:
        """
        Execute the pipeline for one submission.

        Never raises for collaborator failures; every outcome ends with
        exactly one `finished` event.
        """
        def emit(event_type: ProgressEventType, payload: Optional[Dict[str, Any]] = None) -> None:
            self._emit(on_event, event_type, payload)

        emit(
            ProgressEventType.received,
            {
                "message": "Submission received",
                "files": len(submission.files),
                "country": submission.country,
                "visaType": submission.visa_type,
            },
        )
        logger.info(
            "Pipeline started: country=%s visa=%s files=%d",
            submission.country,
            submission.visa_type,
            len(submission.files),
        )

        try:
            validation = await self._call_stage(
                "validate", lambda: self._validator.validate(submission)
            )
            if not validation.ok:
                issues = [issue.model_dump() for issue in validation.issues]
                logger.info("Validation rejected submission: %d issue(s)", len(issues))
                emit(ProgressEventType.invalid_documents, {"issues": issues})
                emit(ProgressEventType.finished, {"ok": False})
                return PipelineOutcome(ok=False, failed_stage="validate")

            emit(
                ProgressEventType.validated,
                {"message": "Documents validated", "details": validation.details},
            )

            emit(ProgressEventType.generating, {"message": "Generating evaluation"})
            evaluation = await self._call_stage(
                "score", lambda: self._scorer.evaluate(submission, validation)
            )
            emit(
                ProgressEventType.scored,
                {
                    "score": evaluation.score,
                    "recommendation": evaluation.recommendation,
                    "summary": evaluation.summary,
                },
            )

            record_data = build_record_data(submission, validation, evaluation)
            record = await self._call_stage(
                "persist", lambda: self._store.create(record_data)
            )
            evaluation_id = str(record["id"])
            emit(ProgressEventType.stored, {"evaluationId": evaluation_id})

            pdf_bytes = await self._call_stage(
                "render", lambda: self._renderer.render(record)
            )
            filename = report_filename(evaluation_id)
            emit(
                ProgressEventType.pdf_generated,
                {"filename": filename, "size": len(pdf_bytes)},
            )
        except PipelineStageError as exc:
            logger.exception("Pipeline failed in stage %s", exc.stage)
            emit(ProgressEventType.error, {"stage": exc.stage, "message": str(exc)})
            emit(ProgressEventType.finished, {"ok": False})
            return PipelineOutcome(ok=False, error=str(exc), failed_stage=exc.stage)

        email_sent = await self._send_email(
            emit,
            OutgoingReport(
                record=record,
                report_filename=filename,
                report_pdf=pdf_bytes,
                documents=list(submission.files),
            ),
        )

        emit(ProgressEventType.finished, {"ok": True, "evaluationId": evaluation_id})
        logger.info(
            "Pipeline finished: evaluation=%s email_sent=%s", evaluation_id, email_sent
        )
        return PipelineOutcome(ok=True, evaluation_id=evaluation_id, email_sent=email_sent)

    async def _send_email(self, emit: Callable[..., None], report: OutgoingReport) -> bool:
        """Email stage: failures degrade to `email_failed`, never abort."""
        recipient = str(report.record.get("email") or "")
        emit(
            ProgressEventType.sending_email,
            {"to": recipient, "attachments": len(report.attachments())},
        )
        try:
            sent = bool(
                await self._call_stage("email", lambda: self._mailer.send(report))
            )
            reason = None if sent else "Mailer reported failure"
        except PipelineStageError as exc:
            sent = False
            reason = str(exc)

        if sent:
            emit(ProgressEventType.email_sent, {"to": recipient})
        else:
            logger.warning("Email delivery failed for %s: %s", recipient, reason)
            emit(ProgressEventType.email_failed, {"to": recipient, "message": reason})
        return sent
