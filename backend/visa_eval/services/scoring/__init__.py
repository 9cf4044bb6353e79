"""
Rule-based scoring and narrative enrichment.
"""

from .engine import (
    NarrativeWriter,
    RuleBasedScoringEngine,
    fallback_narrative,
    generate_evaluation,
)

__all__ = [
    "NarrativeWriter",
    "RuleBasedScoringEngine",
    "fallback_narrative",
    "generate_evaluation",
]
