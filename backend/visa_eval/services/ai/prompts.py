"""
Prompt templates for the evaluation narrative
"""

from typing import Any, Dict, List

from .base import ChatMessage

NARRATIVE_SYSTEM_PROMPT = """You are an expert visa evaluation consultant.
You receive an application that has already been scored by a rule-based engine.
Do not change the score or the recommendation. Write only the follow-up guidance.
Respond with JSON only, using exactly this structure:
{
  "nextSteps": [<3-4 concrete next steps the applicant should take>],
  "timeline": "<realistic timeline estimate like '4-6 weeks' or '2-3 months'>",
  "additionalNotes": "<1-2 sentences of additional important information or warnings>"
}"""


def _document_lines(documents: List[Dict[str, Any]]) -> str:
    if not documents:
        return "none"
    return ", ".join(
        f"{d.get('name') or d.get('fileName') or 'unnamed'} ({d.get('type', 'unknown')})"
        for d in documents
    )


def build_narrative_prompt(
    payload: Dict[str, Any],
    evaluation: Dict[str, Any],
) -> List[ChatMessage]:
    """
    Build the chat messages asking for nextSteps/timeline/additionalNotes.

    Args:
        payload: Submission form payload
        evaluation: Rule-based evaluation (score, recommendation, summary...)
    """
    documents = payload.get("uploadedDocuments") or []
    required = sum(1 for d in documents if d.get("type") == "required")
    optional = sum(1 for d in documents if d.get("type") == "optional")

    user_prompt = f"""Application Details:
- Applicant: {payload.get('name', '')}
- Country: {payload.get('country', '')}
- Visa Type: {payload.get('visaType', '')}
- Score: {evaluation.get('score')}/100
- Recommendation: {evaluation.get('recommendation', '')}
- Summary: {evaluation.get('summary', '')}
- Documents Uploaded: {len(documents)} ({required} required, {optional} optional)
- Document List: {_document_lines(documents)}
- Improvements already identified: {'; '.join(evaluation.get('improvements') or [])}

Be specific, professional and constructive. Focus on the {payload.get('visaType', '')} visa requirements for {payload.get('country', '')}."""

    return [
        ChatMessage(role="system", content=NARRATIVE_SYSTEM_PROMPT),
        ChatMessage(role="user", content=user_prompt),
    ]
