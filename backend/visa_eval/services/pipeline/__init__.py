"""
Pipeline module - Evaluation pipeline for visa eligibility submissions.

This module provides the core pipeline infrastructure:
- contracts: Data models, event types and errors
- ports: Collaborator interfaces (validator, scorer, store, renderer, mailer)
- runner: Stage orchestration
"""

from .contracts import (
    EvaluationResult,
    JobStatus,
    PipelineStageError,
    ProgressEvent,
    ProgressEventType,
    StageTimeoutError,
    Submission,
    SubmissionFile,
    ValidationIssue,
    ValidationResult,
)
from .ports import (
    DocumentValidator,
    EvaluationStore,
    MailAttachment,
    Mailer,
    OutgoingReport,
    ReportRenderer,
    ScoringEngine,
)
from .runner import EvaluationPipeline, PipelineOutcome, report_filename

__all__ = [
    # Enums
    "ProgressEventType",
    "JobStatus",
    # Models
    "ProgressEvent",
    "Submission",
    "SubmissionFile",
    "ValidationIssue",
    "ValidationResult",
    "EvaluationResult",
    # Exceptions
    "PipelineStageError",
    "StageTimeoutError",
    # Runner
    "EvaluationPipeline",
    "PipelineOutcome",
    "report_filename",
    # Ports (interfaces)
    "DocumentValidator",
    "ScoringEngine",
    "EvaluationStore",
    "ReportRenderer",
    "Mailer",
    "MailAttachment",
    "OutgoingReport",
]
