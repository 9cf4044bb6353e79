"""
Services module - Business logic layer.

This module provides:
- pipeline: Evaluation pipeline contracts, ports and runner
- validation: Uploaded document checks
- scoring: Rule-based scoring with narrative enrichment
- report: PDF report rendering
- mail: SMTP delivery
- ai: Language-model providers for the narrative
"""

from .pipeline import EvaluationPipeline, PipelineOutcome
from .validation import DefaultDocumentValidator
from .scoring import RuleBasedScoringEngine, NarrativeWriter
from .report import PillowReportRenderer
from .mail import SmtpMailer, SmtpSettings

__all__ = [
    "EvaluationPipeline",
    "PipelineOutcome",
    "DefaultDocumentValidator",
    "RuleBasedScoringEngine",
    "NarrativeWriter",
    "PillowReportRenderer",
    "SmtpMailer",
    "SmtpSettings",
]
