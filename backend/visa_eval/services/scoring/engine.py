"""
Scoring Engine - Rule-based visa eligibility scoring

Score components:
- Required documents share:  0-40
- Optional documents share:  0-25
- Visa type table:           default 15
- Profile quality:           0-15
The total is capped at 85 and rounded.

The narrative writer then fills nextSteps / timeline / additionalNotes,
through an AI provider when one is configured. It never touches the
score or the recommendation.
"""
import logging
from typing import Any, Dict, List, Optional

from ...common.visa_config import VISA_CONFIG, get_visa_config, is_test_country
from ..ai import (
    AIProvider,
    AIProviderError,
    NarrativeParseError,
    NarrativeResult,
    build_narrative_prompt,
    collect_reply,
    parse_narrative_response,
)
from ..pipeline.contracts import EvaluationResult, Submission, ValidationResult

logger = logging.getLogger(__name__)

SCORE_CAP = 85
DEFAULT_VISA_SCORE = 15

VISA_TYPE_SCORES: Dict[str, int] = {
    "Tourist Visa": 18,
    "Schengen Tourist Visa": 18,
    "Visitor Visa": 18,
    "B1/B2 Tourism": 18,
    "Student Visa": 19,
    "F1 Student": 19,
    "Study Permit": 19,
    "Work Permit": 15,
    "Employment Visa": 16,
    "Work Visa": 15,
    "H1B Work": 14,
    "Express Entry": 12,
    "EU Blue Card": 14,
    "ICT Permit": 14,
    "Highly Skilled Migrant": 15,
    "Talent Passport": 13,
    "Investor Visa": 10,
    "Settlement": 10,
    "Indefinite Leave to Remain": 10,
    "Permanent Migration": 8,
    "Digital Nomad Visa": 17,
    "Family Visa": 17,
}


def visa_type_score(visa_type: str) -> int:
    return VISA_TYPE_SCORES.get(visa_type, DEFAULT_VISA_SCORE)


def profile_score(name: str, email: str) -> int:
    score = 5
    if email and "@" in email:
        score += 5
    if name and len(name.split(" ")) >= 2:
        score += 3
    if name and len(name) >= 5:
        score += 2
    return min(score, 15)


def _uploaded_documents(payload: Dict[str, Any], required_docs: List[str]) -> List[Dict[str, Any]]:
    """Documents the form declared as uploaded.

    Without an explicit list, a submission that passed validation is taken
    to cover every required document.
    """
    documents = payload.get("uploadedDocuments")
    if isinstance(documents, list):
        return [d for d in documents if isinstance(d, dict)]
    return [{"name": name, "type": "required"} for name in required_docs]


def _recommendation(score: float) -> str:
    if score >= 80:
        return "Excellent fit - Ready to apply with confidence. Your application is well-prepared."
    if score >= 70:
        return "Good fit - Recommended to apply with current documents. Minor improvements possible."
    if score >= 50:
        return "Moderate fit - Gather additional documents before applying to improve chances significantly."
    return "Below threshold - Critical to complete all required documents and consider alternative visa options."


def _invalid_selection(message: str) -> EvaluationResult:
    return EvaluationResult(
        score=0,
        summary=message,
        strengths=[],
        improvements=["Unable to complete evaluation due to invalid selection"],
        recommendation="Please review your selections and try again",
    )


def generate_evaluation(payload: Dict[str, Any]) -> EvaluationResult:
    """
    Score a submission payload. Pure and deterministic.

    Unknown country or visa type yields a zero score with an explanatory
    summary rather than an error.
    """
    country = str(payload.get("country") or "")
    visa_type = str(payload.get("visaType") or "")
    name = str(payload.get("name") or "")
    email = str(payload.get("email") or "")

    visa = get_visa_config(country, visa_type)
    if visa is None:
        if country not in VISA_CONFIG:
            return _invalid_selection("Country not found")
        return _invalid_selection("Visa type not found")

    required_docs = list(visa.get("requiredDocuments", []))
    optional_docs = list(visa.get("optionalDocuments", []))
    documents = _uploaded_documents(payload, required_docs)
    uploaded_required = [d for d in documents if d.get("type") == "required"]
    uploaded_optional = [d for d in documents if d.get("type") == "optional"]

    required_score = (
        len(uploaded_required) / len(required_docs) * 40 if required_docs else 40
    )
    optional_score = (
        min(len(uploaded_optional) / len(optional_docs) * 25, 25) if optional_docs else 0
    )
    visa_score = visa_type_score(visa_type)

    raw = required_score + optional_score + visa_score + profile_score(name, email)
    raw = min(raw, SCORE_CAP)
    # Half-up rounding, not banker's rounding
    score = int(raw + 0.5)

    strengths: List[str] = []
    improvements: List[str] = []

    completion = (
        round(min(len(uploaded_required), len(required_docs)) / len(required_docs) * 100)
        if required_docs else 100
    )
    if completion >= 80:
        strengths.append(f"{completion}% of required documents submitted - strong foundation")
    elif completion >= 50:
        strengths.append(f"{completion}% of required documents submitted")
        improvements.append(
            f"Missing {len(required_docs) - len(uploaded_required)} required documents - prioritize submission"
        )
    else:
        improvements.append(
            f"Only {completion}% of required documents submitted - critical to complete"
        )

    if visa_score >= 14:
        strengths.append("Selected visa type with high approval rates and favorable terms")
    elif visa_score >= 12:
        strengths.append("Moderate visa category with reasonable processing timeline")
    else:
        improvements.append("This visa category has strict requirements - consider alternative options")

    if uploaded_optional and len(uploaded_optional) > len(optional_docs) * 0.5:
        strengths.append(
            f"{len(uploaded_optional)} additional documents strengthen your application significantly"
        )
    elif uploaded_optional:
        strengths.append("Additional documents submitted to strengthen your case")
    elif optional_docs:
        improvements.append(
            f"Consider uploading {len(optional_docs)} optional documents to improve chances"
        )

    success_rate = visa.get("successRate", 0)
    processing_time = visa.get("processingTime", "unknown")
    if success_rate >= 85:
        strengths.append(f"Excellent success rate ({success_rate}%) for this visa type")
    elif success_rate >= 75:
        strengths.append(f"Good success rate ({success_rate}%) for this visa type")
    else:
        improvements.append(
            f"Success rate for this visa is {success_rate}% - ensure all documents are perfect"
        )
    improvements.append(f"Expected processing time: {processing_time}")

    summary = (
        f"Your {visa_type} visa eligibility score is {score}/100. "
        f"You have completed {completion}% of required documentation "
        f"({len(uploaded_required)}/{len(required_docs)}). "
        f"Processing time typically takes {processing_time}, "
        f"with a historical success rate of {success_rate}%."
    )

    return EvaluationResult(
        score=score,
        summary=summary,
        strengths=strengths,
        improvements=improvements,
        recommendation=_recommendation(score),
    )


def fallback_narrative(payload: Dict[str, Any], evaluation: EvaluationResult) -> NarrativeResult:
    """Deterministic narrative used when no AI provider is available."""
    if evaluation.score == 0:
        steps = [
            "Check the selected country and visa type",
            "Submit the evaluation again",
        ]
    else:
        steps = [
            "Review the detailed report attached",
            "Address any areas marked for improvement",
            "Prepare for potential interview",
            "Monitor application status regularly",
        ]
    if is_test_country(payload.get("country")):
        timeline = "1 week"
    else:
        timeline = "4-6 weeks" if evaluation.score >= 70 else "6-8 weeks"
    return NarrativeResult(
        nextSteps=steps,
        timeline=timeline,
        additionalNotes=(
            "This is an automated evaluation. For legal advice, consult with an "
            "immigration professional."
        ),
    )


class NarrativeWriter:
    """Fills the narrative fields of an evaluation."""

    def __init__(
        self,
        provider: Optional[AIProvider] = None,
        *,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 800,
    ):
        self.provider = provider
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def write(self, payload: Dict[str, Any], evaluation: EvaluationResult) -> EvaluationResult:
        narrative = fallback_narrative(payload, evaluation)
        if self.provider is not None and evaluation.score > 0:
            try:
                reply = await collect_reply(
                    self.provider,
                    build_narrative_prompt(payload, evaluation.model_dump()),
                    model=self.model,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                )
                generated = parse_narrative_response(reply)
            except (AIProviderError, NarrativeParseError) as e:
                logger.warning("AI narrative failed, using fallback: %s", e)
            else:
                narrative = NarrativeResult(
                    nextSteps=generated.nextSteps or narrative.nextSteps,
                    timeline=generated.timeline or narrative.timeline,
                    additionalNotes=generated.additionalNotes or narrative.additionalNotes,
                )

        return evaluation.model_copy(update=narrative.model_dump())


class RuleBasedScoringEngine:
    """ScoringEngine implementation: rules first, narrative second."""

    def __init__(self, narrative_writer: Optional[NarrativeWriter] = None):
        self.narrative_writer = narrative_writer or NarrativeWriter()

    async def evaluate(
        self, submission: Submission, validation: ValidationResult
    ) -> EvaluationResult:
        evaluation = generate_evaluation(submission.payload)
        logger.info(
            "Scored %s/%s: %d", submission.country, submission.visa_type, evaluation.score
        )
        return await self.narrative_writer.write(submission.payload, evaluation)
