"""
Filename-based document validator.

Run with: pytest tests/test_document_validator.py
"""

import asyncio

from conftest import make_submission

from backend.visa_eval.services.validation import DefaultDocumentValidator, resolve_required_docs


def _validate(submission, max_files=6):
    return asyncio.run(DefaultDocumentValidator(max_files).validate(submission))


def _reasons(result):
    return [issue.reason for issue in result.issues]


def test_no_files():
    result = _validate(make_submission(filenames=()))
    assert not result.ok
    assert _reasons(result) == ["No files uploaded"]


def test_too_many_files():
    names = [f"doc{i}.pdf" for i in range(4)]
    result = _validate(make_submission(filenames=names), max_files=3)
    assert _reasons(result) == ["Too many files - max 3 allowed"]


def test_test_country_counts_only():
    assert _validate(make_submission(filenames=("a.pdf", "b.pdf"))).ok

    result = _validate(make_submission(filenames=("a.pdf",)))
    assert _reasons(result) == ["Not enough documents uploaded for Test Country"]


def test_required_names_matched_case_insensitively():
    submission = make_submission(
        country="United Kingdom",
        visa_type="Visitor Visa",
        filenames=("my_PASSPORT.pdf", "bank statement march.pdf"),
    )
    result = _validate(submission)

    assert result.ok
    assert result.details["score"] == 100
    assert [d["name"] for d in result.details["requiredDocs"]] == ["Passport", "Bank Statement"]
    assert result.details["uploadedFiles"][0]["name"] == "my_PASSPORT.pdf"


def test_missing_required_document():
    submission = make_submission(
        country="United Kingdom",
        visa_type="Visitor Visa",
        filenames=("passport.pdf",),
    )
    result = _validate(submission)

    assert not result.ok
    assert len(result.issues) == 1
    assert result.issues[0].fileName == "Bank Statement"
    assert result.issues[0].reason == "Required document not detected in uploaded files by name"


def test_docs_meta_overrides_catalogue():
    submission = make_submission(
        country="United Kingdom",
        visa_type="Visitor Visa",
        filenames=("visa_form.pdf",),
        docsMeta=[
            {"name": "Visa Form", "type": "required"},
            {"name": "Hotel", "type": "optional"},
        ],
    )
    # "Visa Form" does not appear in "visa_form.pdf"
    assert not _validate(submission).ok

    submission.payload["docsMeta"][0]["name"] = "visa_form"
    assert _validate(submission).ok


def test_unknown_visa_has_no_metadata():
    result = _validate(make_submission(country="Canada", visa_type="Space Visa", filenames=("x.pdf",)))
    assert _reasons(result) == ["Missing required documents metadata"]


def test_resolve_required_docs_falls_back_to_catalogue():
    docs = resolve_required_docs({"country": "Test", "visaType": "X", "docsMeta": []})
    assert docs == [
        {"name": "Resume", "type": "required"},
        {"name": "Passport", "type": "required"},
    ]
