"""
AI Response Parser for the evaluation narrative

Extracts the JSON document from a model reply (bare or inside a
markdown code fence) and normalizes it.
"""

import json
import re
from typing import List

from pydantic import BaseModel, Field

_FENCE_RE = re.compile(r"```(?:json)?\s*(\{.*\})\s*```", re.DOTALL)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


class NarrativeParseError(ValueError):
    """The reply did not contain a usable JSON object."""


class NarrativeResult(BaseModel):
    """Narrative fields added to an evaluation."""
    nextSteps: List[str] = Field(default_factory=list)
    timeline: str = ""
    additionalNotes: str = ""


def parse_narrative_response(text: str) -> NarrativeResult:
    """
    Parse a model reply into a NarrativeResult.

    Raises:
        NarrativeParseError: no JSON object could be decoded
    """
    match = _FENCE_RE.search(text) or _OBJECT_RE.search(text)
    if not match:
        raise NarrativeParseError("No JSON object in AI response")
    raw = match.group(1) if match.re is _FENCE_RE else match.group(0)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise NarrativeParseError(f"Invalid JSON in AI response: {e}") from e
    if not isinstance(data, dict):
        raise NarrativeParseError("AI response is not a JSON object")

    steps = data.get("nextSteps")
    next_steps = [str(s).strip() for s in steps if str(s).strip()] if isinstance(steps, list) else []

    return NarrativeResult(
        nextSteps=next_steps[:4],
        timeline=str(data.get("timeline") or "").strip(),
        additionalNotes=str(data.get("additionalNotes") or "").strip(),
    )
