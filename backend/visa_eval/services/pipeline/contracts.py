"""
Pipeline contracts - Data models, enums, and errors for the evaluation pipeline.

This module defines the core abstractions used throughout the pipeline:
- ProgressEventType: Closed set of stage/outcome tags emitted on a job
- ProgressEvent: One {type, payload} notification
- JobStatus: Informational job status
- Submission / SubmissionFile: Input handed to the worker
- ValidationIssue / ValidationResult: Document validator output
- EvaluationResult: Scoring engine output
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ProgressEventType(str, Enum):
    """Stage and outcome tags emitted by the pipeline worker."""

    received = "received"
    validated = "validated"
    invalid_documents = "invalid_documents"
    generating = "generating"
    scored = "scored"
    stored = "stored"
    pdf_generated = "pdf_generated"
    sending_email = "sending_email"
    email_sent = "email_sent"
    email_failed = "email_failed"
    error = "error"
    finished = "finished"

    @property
    def is_terminal(self) -> bool:
        return self is ProgressEventType.finished


class JobStatus(str, Enum):
    """Informational job status. The event stream is authoritative."""

    pending = "pending"
    running = "running"
    finished = "finished"


@dataclass(frozen=True)
class ProgressEvent:
    """
    A single progress notification.

    Attributes:
        type: Stage or outcome tag
        payload: Optional stage data (message text, scores, issues...)
        created_at: When the event was emitted
    """

    type: ProgressEventType
    payload: Optional[Dict[str, Any]] = None
    created_at: datetime = field(default_factory=datetime.now)

    def to_wire(self) -> Dict[str, Any]:
        """Return the {type, payload} object sent to subscribers."""
        return {"type": self.type.value, "payload": self.payload}


@dataclass
class SubmissionFile:
    """An uploaded document held in memory for the lifetime of a job."""

    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class Submission:
    """
    Everything the worker needs to evaluate one form submission.

    `payload` is the parsed JSON form field (country, visaType, name,
    email, docsMeta, uploadedDocuments, partnerId...).
    """

    payload: Dict[str, Any]
    files: List[SubmissionFile] = field(default_factory=list)

    @property
    def country(self) -> str:
        return str(self.payload.get("country") or "")

    @property
    def visa_type(self) -> str:
        return str(self.payload.get("visaType") or "")

    @property
    def name(self) -> str:
        return str(self.payload.get("name") or "")

    @property
    def email(self) -> str:
        return str(self.payload.get("email") or "")


class ValidationIssue(BaseModel):
    fileName: str = ""
    reason: str


class ValidationResult(BaseModel):
    """Verdict returned by the document validator."""

    ok: bool
    issues: List[ValidationIssue] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)


class EvaluationResult(BaseModel):
    """
    Output of the scoring stage.

    `score` and `recommendation` come from the rule-based engine only;
    narrative fields may be filled in by the AI writer.
    """

    score: int
    summary: str
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    recommendation: str
    nextSteps: List[str] = Field(default_factory=list)
    timeline: str = ""
    additionalNotes: str = ""


class PipelineStageError(Exception):
    """A collaborator call failed inside a named pipeline stage."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(message)
        self.stage = stage


class StageTimeoutError(PipelineStageError):
    """A collaborator call exceeded the configured stage timeout."""

    pass
