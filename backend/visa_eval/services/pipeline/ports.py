"""
Pipeline ports - Interfaces for the collaborators the evaluation worker calls.

This module defines the boundary interfaces (ports) that decouple the pipeline
core from validation heuristics, scoring rules, storage, rendering and mail.

Interfaces:
- DocumentValidator: Checks uploaded files against the visa requirements
- ScoringEngine: Turns a submission into a score and narrative
- EvaluationStore: Persists merged submission + evaluation records
- ReportRenderer: Renders a stored evaluation into PDF bytes
- Mailer: Delivers the report and uploads by email
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from .contracts import EvaluationResult, Submission, SubmissionFile, ValidationResult


@dataclass(frozen=True)
class MailAttachment:
    """A single email attachment."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass
class OutgoingReport:
    """Everything the mailer needs to send one evaluation email.

    Attributes:
        record: Persisted evaluation record (as returned by the store)
        report_filename: Attachment name for the rendered PDF
        report_pdf: Rendered PDF bytes
        documents: Original uploads to attach alongside the report
    """

    record: Mapping[str, Any]
    report_filename: str
    report_pdf: bytes
    documents: List[SubmissionFile] = field(default_factory=list)

    def attachments(self) -> List[MailAttachment]:
        items = [MailAttachment(self.report_filename, self.report_pdf, "application/pdf")]
        for doc in self.documents:
            items.append(
                MailAttachment(
                    doc.filename,
                    doc.content,
                    doc.content_type or "application/octet-stream",
                )
            )
        return items


class DocumentValidator(Protocol):
    """Validates uploaded documents for a submission.

    An `ok=False` verdict is an expected outcome, not an error. Raising is
    reserved for unexpected failures.
    """

    async def validate(self, submission: Submission) -> ValidationResult:
        ...


class ScoringEngine(Protocol):
    """Produces a deterministic score and narrative for a submission."""

    async def evaluate(
        self, submission: Submission, validation: ValidationResult
    ) -> EvaluationResult:
        ...


class EvaluationStore(Protocol):
    """Evaluation persistence interface.

    Implementations assign the record identifier on `create`.
    """

    async def create(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Store a new record and return it including its generated `id`."""
        ...

    async def get(self, evaluation_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def list(
        self,
        *,
        country: Optional[str] = None,
        min_score: Optional[int] = None,
        max_score: Optional[int] = None,
        partner_id: Optional[str] = None,
    ) -> Sequence[Dict[str, Any]]:
        ...


class ReportRenderer(Protocol):
    """Renders an evaluation record into report bytes (PDF)."""

    async def render(self, record: Mapping[str, Any]) -> bytes:
        ...


class Mailer(Protocol):
    """Sends an evaluation email. Returns False on delivery failure."""

    async def send(self, report: OutgoingReport) -> bool:
        ...
