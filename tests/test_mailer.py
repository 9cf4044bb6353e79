"""
SMTP mailer: message composition and failure reporting.

Run with: pytest tests/test_mailer.py
"""

import asyncio
import smtplib

from backend.visa_eval.services.mail import (
    SmtpMailer,
    SmtpSettings,
    email_subject,
    render_email_html,
    result_url,
)
from backend.visa_eval.services.pipeline import OutgoingReport, SubmissionFile

RECORD = {
    "id": "eval_1",
    "name": "Jane <Doe>",
    "email": "jane@x.com",
    "country": "Test",
    "visaType": "X",
    "score": 70,
    "summary": "Solid",
    "strengths": ["Complete documents"],
    "improvements": ["Expected processing time: 1 week"],
}


def _report(record=RECORD):
    return OutgoingReport(
        record=record,
        report_filename="Evaluation-Report-eval_1.pdf",
        report_pdf=b"%PDF-1.4 report",
        documents=[SubmissionFile("resume.pdf", "application/pdf", b"resume")],
    )


def _mailer(**overrides):
    settings = SmtpSettings(
        host="smtp.example.com",
        sender="noreply@example.com",
        public_base_url="https://visa.example.com/",
    )
    for key, value in overrides.items():
        setattr(settings, key, value)
    return SmtpMailer(settings)


def test_subject_and_url():
    assert email_subject(RECORD) == "Your Visa Evaluation Results - Test X"
    assert result_url("https://visa.example.com/", "eval_1") == (
        "https://visa.example.com/api/evaluate/result?evaluationId=eval_1"
    )
    assert result_url("", "eval_1") == ""


def test_html_is_escaped():
    body = render_email_html(RECORD)
    assert "Jane &lt;Doe&gt;" in body
    assert "<Doe>" not in body


def test_build_message():
    msg = _mailer().build_message(_report())

    assert msg["To"] == "jane@x.com"
    assert msg["From"] == "noreply@example.com"
    assert msg["Subject"] == "Your Visa Evaluation Results - Test X"

    attachments = list(msg.iter_attachments())
    assert [a.get_filename() for a in attachments] == ["Evaluation-Report-eval_1.pdf", "resume.pdf"]
    assert attachments[0].get_content_type() == "application/pdf"

    text = msg.get_body(preferencelist=("plain",)).get_content()
    assert "Evaluation ID: eval_1" in text
    assert "https://visa.example.com/api/evaluate/result?evaluationId=eval_1" in text


def test_send_without_host_returns_false():
    mailer = _mailer(host="")
    assert asyncio.run(mailer.send(_report())) is False


def test_send_without_recipient_returns_false():
    record = dict(RECORD, email="")
    assert asyncio.run(_mailer().send(_report(record))) is False


def test_send_success(monkeypatch):
    delivered = []
    mailer = _mailer()
    monkeypatch.setattr(mailer, "_deliver", delivered.append)

    assert asyncio.run(mailer.send(_report())) is True
    assert delivered[0]["To"] == "jane@x.com"


def test_send_failure_is_reported(monkeypatch):
    mailer = _mailer()

    def refuse(msg):
        raise smtplib.SMTPRecipientsRefused({"jane@x.com": (550, b"no such user")})

    monkeypatch.setattr(mailer, "_deliver", refuse)
    assert asyncio.run(mailer.send(_report())) is False


def test_connection_error_is_reported(monkeypatch):
    mailer = _mailer()

    def unreachable(msg):
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr(mailer, "_deliver", unreachable)
    assert asyncio.run(mailer.send(_report())) is False
