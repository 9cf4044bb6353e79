"""
Rule-based scoring and narrative enrichment.

Run with: pytest tests/test_scoring_engine.py
"""

import asyncio

import pytest
from conftest import make_submission

from backend.visa_eval.common.visa_config import get_visa_config
from backend.visa_eval.services.ai import (
    AIProviderConnectionError,
    MockProvider,
    NarrativeParseError,
    parse_narrative_response,
)
from backend.visa_eval.services.pipeline import ValidationResult
from backend.visa_eval.services.scoring import (
    NarrativeWriter,
    RuleBasedScoringEngine,
    fallback_narrative,
    generate_evaluation,
)
from backend.visa_eval.services.scoring.engine import profile_score

JANE = {"name": "Jane Doe", "email": "jane@x.com"}


def test_test_country_score():
    result = generate_evaluation({"country": "Test", "visaType": "X", **JANE})

    # 40 required + 0 optional + 15 visa default + 15 profile
    assert result.score == 70
    assert result.recommendation == (
        "Good fit - Recommended to apply with current documents. Minor improvements possible."
    )
    assert "70/100" in result.summary
    assert "Expected processing time: 1 week" in result.improvements


def test_unknown_country_and_visa():
    no_country = generate_evaluation({"country": "Atlantis", "visaType": "X"})
    assert no_country.score == 0
    assert no_country.summary == "Country not found"

    no_visa = generate_evaluation({"country": "Canada", "visaType": "Space Visa"})
    assert no_visa.score == 0
    assert no_visa.summary == "Visa type not found"


def test_score_is_capped():
    visa = get_visa_config("Canada", "Visitor Visa")
    documents = [{"name": d, "type": "required"} for d in visa["requiredDocuments"]]
    documents += [{"name": d, "type": "optional"} for d in visa["optionalDocuments"]]

    result = generate_evaluation(
        {"country": "Canada", "visaType": "Visitor Visa", "uploadedDocuments": documents, **JANE}
    )
    assert result.score == 85
    assert result.recommendation.startswith("Excellent fit")


def test_missing_required_documents_lower_the_score():
    result = generate_evaluation(
        {
            "country": "United States",
            "visaType": "H1B Work",
            "uploadedDocuments": [{"name": "Passport", "type": "required"}],
            "name": "Jo",
            "email": "",
        }
    )
    # 10 required + 0 optional + 14 visa + 5 profile
    assert result.score == 29
    assert result.recommendation.startswith("Below threshold")
    assert any("critical to complete" in i for i in result.improvements)


def test_surplus_required_uploads_are_not_capped_at_forty():
    documents = [{"name": f"Scan {i}", "type": "required"} for i in range(6)]
    result = generate_evaluation(
        {
            "country": "United States",
            "visaType": "H1B Work",
            "uploadedDocuments": documents,
            "name": "Jo",
            "email": "",
        }
    )
    # 6/4 * 40 = 60 required + 0 optional + 14 visa + 5 profile
    assert result.score == 79


@pytest.mark.parametrize(
    "name,email,expected",
    [
        ("", "", 5),
        ("Jo", "jo@x.com", 10),
        ("Jane Doe", "jane@x.com", 15),
        ("Madonna", "", 7),
    ],
)
def test_profile_score(name, email, expected):
    assert profile_score(name, email) == expected


def test_generate_evaluation_is_deterministic():
    payload = {"country": "Germany", "visaType": "EU Blue Card", **JANE}
    assert generate_evaluation(payload) == generate_evaluation(payload)


def test_fallback_narrative():
    payload = {"country": "Test", "visaType": "X", **JANE}
    narrative = fallback_narrative(payload, generate_evaluation(payload))
    assert narrative.timeline == "1 week"
    assert len(narrative.nextSteps) == 4

    zero = generate_evaluation({"country": "Nowhere"})
    assert len(fallback_narrative({"country": "Nowhere"}, zero).nextSteps) == 2


def test_engine_without_provider_uses_fallback():
    engine = RuleBasedScoringEngine()
    result = asyncio.run(engine.evaluate(make_submission(), ValidationResult(ok=True)))

    assert result.score == 70
    assert result.timeline == "1 week"
    assert result.nextSteps[0] == "Review the detailed report attached"


def test_ai_narrative_never_changes_score():
    provider = MockProvider(chunk_size=7)
    engine = RuleBasedScoringEngine(NarrativeWriter(provider))
    baseline = generate_evaluation(make_submission().payload)

    result = asyncio.run(engine.evaluate(make_submission(), ValidationResult(ok=True)))

    assert len(provider.calls) == 1
    assert result.score == baseline.score
    assert result.recommendation == baseline.recommendation
    assert result.nextSteps[0] == "Review the attached report"
    assert result.additionalNotes == "Mock narrative generated without a language model."


def test_ai_failure_falls_back():
    class DownProvider:
        async def stream_chat(self, messages, **kwargs):
            raise AIProviderConnectionError("connection refused")
            yield  # pragma: no cover

    writer = NarrativeWriter(DownProvider())
    payload = {"country": "Test", "visaType": "X", **JANE}
    result = asyncio.run(writer.write(payload, generate_evaluation(payload)))

    assert result.nextSteps == fallback_narrative(payload, result).nextSteps


def test_ai_not_called_for_zero_score():
    provider = MockProvider()
    writer = NarrativeWriter(provider)
    asyncio.run(writer.write({"country": "Nowhere"}, generate_evaluation({"country": "Nowhere"})))
    assert provider.calls == []


def test_parse_narrative_response():
    reply = 'Sure!\n```json\n{"nextSteps": ["a", " ", "b", "c", "d", "e"], "timeline": " 2 weeks "}\n```'
    narrative = parse_narrative_response(reply)
    assert narrative.nextSteps == ["a", "b", "c", "d"]
    assert narrative.timeline == "2 weeks"
    assert narrative.additionalNotes == ""

    with pytest.raises(NarrativeParseError):
        parse_narrative_response("no json here")
