"""
Partner API: key issuance, filtered listing, daily budget and per-evaluation keys.

Run with: pytest tests/test_partner_api.py
"""

import pytest
from fastapi.testclient import TestClient

from backend.visa_eval.web.main import create_app


def _seed(client, **data):
    store = client.app.state.store
    return client.portal.call(store.create, data)


def _partner_key(client, partner_id="p1"):
    resp = client.post(
        "/api/partner/auth", json={"partnerId": partner_id, "partnerName": "Partner One"}
    )
    assert resp.status_code == 200
    return resp.json()["apiKey"]


def test_auth_issues_key(client):
    resp = client.post("/api/partner/auth", json={"partnerId": "p1", "partnerName": "Partner One"})
    body = resp.json()

    assert resp.status_code == 200
    assert body["apiKey"].startswith("vak_")
    assert len(body["apiKey"]) == 4 + 64
    assert body["partnerId"] == "p1"
    assert body["rateLimit"] == 1000


def test_auth_requires_partner_fields(client):
    resp = client.post("/api/partner/auth", json={"partnerId": "p1"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "missing_partner"


def test_evaluations_requires_key(client):
    resp = client.get("/api/partner/evaluations")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "missing_api_key"

    resp = client.get("/api/partner/evaluations", headers={"x-api-key": "vak_nope"})
    assert resp.status_code == 403
    assert resp.json()["detail"] == "invalid_api_key"


def test_evaluations_visibility_and_filters(client):
    _seed(client, country="Canada", visaType="Visitor Visa", score=70, partnerId="p1")
    _seed(client, country="Canada", visaType="Study Permit", score=40, partnerId="p2")
    _seed(client, country="Germany", visaType="EU Blue Card", score=85)
    key = _partner_key(client, "p1")
    headers = {"x-api-key": key}

    body = client.get("/api/partner/evaluations", headers=headers).json()
    assert body["total"] == 2
    assert {e["country"] for e in body["evaluations"]} == {"Canada", "Germany"}
    assert all(e.get("partnerId") in (None, "p1") for e in body["evaluations"])
    assert body["rateLimitRemaining"] == 999

    body = client.get(
        "/api/partner/evaluations", params={"country": "Canada"}, headers=headers
    ).json()
    assert [e["score"] for e in body["evaluations"]] == [70]

    body = client.get(
        "/api/partner/evaluations", params={"minScore": 80}, headers=headers
    ).json()
    assert [e["country"] for e in body["evaluations"]] == ["Germany"]

    body = client.get(
        "/api/partner/evaluations", params={"maxScore": 50}, headers=headers
    ).json()
    assert body["total"] == 0


def test_daily_budget_is_enforced(app_config):
    app = create_app(app_config.model_copy(update={"partner_rate_limit": 2}))
    with TestClient(app) as client:
        headers = {"x-api-key": _partner_key(client)}
        first = client.get("/api/partner/evaluations", headers=headers)
        second = client.get("/api/partner/evaluations", headers=headers)
        third = client.get("/api/partner/evaluations", headers=headers)

    assert first.json()["rateLimitRemaining"] == 1
    assert second.json()["rateLimitRemaining"] == 0
    assert third.status_code == 403


def test_generate_key_is_idempotent(client):
    record = _seed(client, country="Test", visaType="X", name="Jane Doe", score=70)

    first = client.post("/api/partner/generate-key", json={"evaluationId": record["id"]})
    second = client.post("/api/partner/generate-key", json={"jobId": record["id"]})

    assert first.status_code == 200
    assert first.json()["message"] == "API key created successfully"
    assert second.json()["apiKey"] == first.json()["apiKey"]
    assert second.json()["message"] == "API key already exists for this evaluation"


@pytest.mark.parametrize(
    "body,status,detail",
    [
        ({}, 400, "missing_evaluationId"),
        ({"evaluationId": "eval_missing"}, 404, "not_found"),
    ],
)
def test_generate_key_errors(client, body, status, detail):
    resp = client.post("/api/partner/generate-key", json=body)
    assert resp.status_code == status
    assert resp.json()["detail"] == detail


def test_get_evaluation_by_key(client):
    record = _seed(
        client,
        country="Test",
        visaType="X",
        name="Jane Doe",
        email="jane@x.com",
        score=70,
        strengths=["Complete documents"],
    )
    api_key = client.post(
        "/api/partner/generate-key", json={"evaluationId": record["id"]}
    ).json()["apiKey"]

    resp = client.get("/api/partner", params={"apiKey": api_key})
    body = resp.json()
    assert resp.status_code == 200
    assert body["success"] is True
    assert body["data"]["id"] == record["id"]
    assert body["data"]["score"] == 70
    assert body["data"]["strengths"] == ["Complete documents"]

    assert client.get("/api/partner").status_code == 401
    assert client.get("/api/partner", params={"apiKey": "vak_wrong"}).status_code == 403
