"""
Shared fixtures: stub collaborators and an app wired to a temporary database.
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import pytest
from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from backend.visa_eval.services.pipeline import (
    EvaluationPipeline,
    OutgoingReport,
    Submission,
    SubmissionFile,
)
from backend.visa_eval.services.scoring import RuleBasedScoringEngine
from backend.visa_eval.services.validation import DefaultDocumentValidator
from backend.visa_eval.web.config import AppConfig
from backend.visa_eval.web.main import Collaborators, create_app


class MemoryStore:
    """EvaluationStore kept in a dict."""

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}

    async def create(self, data):
        record = dict(data)
        record["id"] = f"eval_test_{len(self.records) + 1}"
        self.records[record["id"]] = record
        return dict(record)

    async def get(self, evaluation_id):
        record = self.records.get(evaluation_id)
        return dict(record) if record else None

    async def list(self, *, country=None, min_score=None, max_score=None, partner_id=None):
        return [dict(r) for r in self.records.values()]


class StaticRenderer:
    def __init__(self):
        self.rendered: List[str] = []

    async def render(self, record):
        self.rendered.append(record["id"])
        return b"%PDF-1.4 stub report"


class RecordingMailer:
    def __init__(self, result: bool = True):
        self.result = result
        self.sent: List[OutgoingReport] = []

    async def send(self, report: OutgoingReport) -> bool:
        self.sent.append(report)
        return self.result


def make_submission(
    country: str = "Test",
    visa_type: str = "X",
    filenames=("resume.pdf", "passport.pdf"),
    **extra: Any,
) -> Submission:
    payload = {
        "country": country,
        "visaType": visa_type,
        "name": "Jane Doe",
        "email": "jane@x.com",
    }
    payload.update(extra)
    files = [
        SubmissionFile(filename=name, content_type="application/pdf", content=b"%PDF-1.4 " + name.encode())
        for name in filenames
    ]
    return Submission(payload=payload, files=files)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def renderer() -> StaticRenderer:
    return StaticRenderer()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def make_pipeline(store, renderer, mailer):
    def factory(
        *,
        validator=None,
        scorer=None,
        store_override=None,
        renderer_override=None,
        mailer_override=None,
        stage_timeout_s: float = 0.0,
    ) -> EvaluationPipeline:
        return EvaluationPipeline(
            validator=validator or DefaultDocumentValidator(),
            scorer=scorer or RuleBasedScoringEngine(),
            store=store_override or store,
            renderer=renderer_override or renderer,
            mailer=mailer_override or mailer,
            stage_timeout_s=stage_timeout_s,
        )

    return factory


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        data_dir=tmp_path,
        db_path=tmp_path / "evaluations.db",
        rate_limit_enabled=False,
        email_host="",
        ai_provider="none",
    )


@pytest.fixture
def client(app_config: AppConfig, mailer: RecordingMailer) -> Iterator[TestClient]:
    app = create_app(app_config, Collaborators(mailer=mailer))
    with TestClient(app) as test_client:
        yield test_client


def parse_sse(body: str) -> List[Dict[str, Any]]:
    """Decode `data:` messages from an SSE body, skipping comments."""
    events = []
    for block in body.split("\n\n"):
        for line in block.splitlines():
            if line.startswith("data: "):
                events.append(json.loads(line[len("data: "):]))
    return events


def event_types(events: List[Dict[str, Any]]) -> List[str]:
    return [e["type"] for e in events]


def find_event(events: List[Dict[str, Any]], event_type: str) -> Optional[Dict[str, Any]]:
    for e in events:
        if e["type"] == event_type:
            return e
    return None
