"""
Document Validator - Checks uploaded files against visa requirements

Rules:
- At least one and at most `max_files` uploads
- Required documents come from the submission's docsMeta, falling back to
  the visa catalogue
- Test country: only the number of uploads is checked
- Other countries: each required document name must appear in the
  uploaded filenames (case-insensitive)
"""
import logging
from typing import Any, Dict, List

from ...common.visa_config import is_test_country, required_documents
from ..pipeline.contracts import Submission, ValidationIssue, ValidationResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILES = 6


def _doc_name(doc: Dict[str, Any]) -> str:
    return str(doc.get("name") or doc.get("fileName") or "")


def resolve_required_docs(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Required docs declared by the form, else the catalogue entry."""
    docs_meta = payload.get("docsMeta") or []
    required = [
        d for d in docs_meta
        if isinstance(d, dict) and d.get("type") == "required"
    ]
    if required:
        return required
    return [
        {"name": name, "type": "required"}
        for name in required_documents(payload.get("country"), payload.get("visaType"))
    ]


class DefaultDocumentValidator:
    """Filename-based validator. An `ok=False` verdict is a normal outcome."""

    def __init__(self, max_files: int = DEFAULT_MAX_FILES):
        self.max_files = max_files

    async def validate(self, submission: Submission) -> ValidationResult:
        files = submission.files
        payload = submission.payload

        if not files:
            return self._reject("No files uploaded")
        if len(files) > self.max_files:
            return self._reject(f"Too many files - max {self.max_files} allowed")

        test_country = is_test_country(submission.country)
        required = resolve_required_docs(payload)

        if not test_country and not required:
            return self._reject("Missing required documents metadata")

        if test_country:
            if len(files) < len(required):
                return self._reject("Not enough documents uploaded for Test Country")
            score = (
                round(min(100, len(files) / len(required) * 100)) if required else 100
            )
        else:
            filenames = " ".join(f.filename for f in files).lower()
            issues = [
                ValidationIssue(
                    fileName=_doc_name(req) or "required",
                    reason="Required document not detected in uploaded files by name",
                )
                for req in required
                if _doc_name(req).lower() not in filenames
            ]
            if issues:
                logger.info(
                    "Missing %d required document(s) for %s/%s",
                    len(issues),
                    submission.country,
                    submission.visa_type,
                )
                return ValidationResult(ok=False, issues=issues)
            score = 100

        details = {
            "score": score,
            "requiredDocs": required,
            "uploadedFiles": [{"name": f.filename, "size": f.size} for f in files],
        }
        return ValidationResult(ok=True, details=details)

    @staticmethod
    def _reject(reason: str) -> ValidationResult:
        logger.info("Document validation rejected: %s", reason)
        return ValidationResult(ok=False, issues=[ValidationIssue(reason=reason)])
