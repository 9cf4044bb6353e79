"""
Mailer - SMTP delivery of evaluation reports
"""
import asyncio
import html
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Any, Iterable, Mapping

from ..pipeline.ports import OutgoingReport

logger = logging.getLogger(__name__)


@dataclass
class SmtpSettings:
    host: str = ""
    port: int = 587
    secure: bool = False  # implicit TLS (SMTPS) instead of STARTTLS
    user: str = ""
    password: str = ""
    sender: str = ""
    timeout: float = 30.0
    public_base_url: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.host)


def email_subject(record: Mapping[str, Any]) -> str:
    return f"Your Visa Evaluation Results - {record.get('country', '')} {record.get('visaType', '')}"


def result_url(base_url: str, evaluation_id: str) -> str:
    if not base_url:
        return ""
    return f"{base_url.rstrip('/')}/api/evaluate/result?evaluationId={evaluation_id}"


def _score_color(score: int) -> str:
    if score >= 80:
        return "#10b981"
    if score >= 60:
        return "#3b82f6"
    if score >= 40:
        return "#f59e0b"
    return "#ef4444"


def _items(values: Iterable[Any], css_class: str) -> str:
    return "".join(
        f'<div class="item {css_class}">{html.escape(str(v))}</div>' for v in values or []
    )


def render_email_html(record: Mapping[str, Any], url: str = "") -> str:
    def e(key: str) -> str:
        return html.escape(str(record.get(key) or ""))

    score = int(record.get("score") or 0)
    color = _score_color(score)
    link = f'<p><a href="{html.escape(url)}">View your evaluation online</a></p>' if url else ""
    return f"""<!DOCTYPE html>
<html>
  <head>
    <style>
      body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
      .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
      .header {{ background: #1f2937; color: white; padding: 20px; border-radius: 8px 8px 0 0; }}
      .score-box {{ background: {color}20; border-left: 4px solid {color}; padding: 20px; margin: 20px 0; }}
      .score-number {{ font-size: 48px; font-weight: bold; color: {color}; text-align: center; }}
      .item {{ margin: 8px 0; padding: 8px; background: #f9fafb; border-radius: 4px; }}
      .strength {{ border-left: 3px solid #10b981; }}
      .improvement {{ border-left: 3px solid #f59e0b; }}
      .footer {{ background: #f3f4f6; padding: 20px; text-align: center; font-size: 12px; color: #666; }}
    </style>
  </head>
  <body>
    <div class="container">
      <div class="header">
        <h1>Global Visa Evaluation Results</h1>
        <p>Evaluation for {e('country')} - {e('visaType')}</p>
      </div>
      <div class="score-box">
        <div class="score-number">{score}%</div>
        <div>{e('recommendation')}</div>
      </div>
      <h3>Summary</h3>
      <p>{e('summary')}</p>
      <h3>Your Strengths</h3>
      {_items(record.get('strengths'), 'strength')}
      <h3>Areas for Improvement</h3>
      {_items(record.get('improvements'), 'improvement')}
      <p><strong>Application Details:</strong></p>
      <ul>
        <li>Name: {e('name')}</li>
        <li>Country: {e('country')}</li>
        <li>Visa Type: {e('visaType')}</li>
        <li>Evaluation ID: {e('id')}</li>
      </ul>
      {link}
      <div class="footer">
        <p>This is an automated evaluation. For legal advice, please consult with an immigration professional.</p>
      </div>
    </div>
  </body>
</html>
"""


def render_email_text(record: Mapping[str, Any], url: str = "") -> str:
    lines = [
        "Global Visa Evaluation Results",
        "",
        f"Evaluation for: {record.get('country', '')} - {record.get('visaType', '')}",
        "",
        f"Your Score: {record.get('score', 0)}%",
        str(record.get("recommendation") or ""),
        "",
        "Summary:",
        str(record.get("summary") or ""),
        "",
        "Your Strengths:",
        *[f"- {s}" for s in record.get("strengths") or []],
        "",
        "Areas for Improvement:",
        *[f"- {i}" for i in record.get("improvements") or []],
        "",
        "Application Details:",
        f"Name: {record.get('name', '')}",
        f"Country: {record.get('country', '')}",
        f"Visa Type: {record.get('visaType', '')}",
        f"Evaluation ID: {record.get('id', '')}",
    ]
    if url:
        lines += ["", f"View online: {url}"]
    lines += [
        "",
        "This is an automated evaluation. For legal advice, please consult with an immigration professional.",
    ]
    return "\n".join(lines) + "\n"


class SmtpMailer:
    """
    Mailer implementation over smtplib.

    Delivery runs in a worker thread. Failures are logged and reported as
    False; nothing is raised to the pipeline.
    """

    def __init__(self, settings: SmtpSettings):
        self.settings = settings

    def build_message(self, report: OutgoingReport) -> EmailMessage:
        record = report.record
        url = result_url(self.settings.public_base_url, str(record.get("id", "")))

        msg = EmailMessage()
        msg["Subject"] = email_subject(record)
        msg["From"] = self.settings.sender or self.settings.user
        msg["To"] = str(record.get("email") or "")
        msg.set_content(render_email_text(record, url))
        msg.add_alternative(render_email_html(record, url), subtype="html")

        for attachment in report.attachments():
            maintype, _, subtype = attachment.content_type.partition("/")
            if not subtype:
                maintype, subtype = "application", "octet-stream"
            msg.add_attachment(
                attachment.content,
                maintype=maintype,
                subtype=subtype,
                filename=attachment.filename,
            )
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        s = self.settings
        if s.secure:
            smtp = smtplib.SMTP_SSL(s.host, s.port, timeout=s.timeout)
        else:
            smtp = smtplib.SMTP(s.host, s.port, timeout=s.timeout)
        with smtp:
            if not s.secure:
                smtp.ehlo()
                if smtp.has_extn("starttls"):
                    smtp.starttls()
                    smtp.ehlo()
            if s.user:
                smtp.login(s.user, s.password)
            smtp.send_message(msg)

    async def send(self, report: OutgoingReport) -> bool:
        recipient = str(report.record.get("email") or "")
        if not self.settings.enabled:
            logger.warning("EMAIL_HOST not configured; skipping email to %s", recipient)
            return False
        if not recipient:
            logger.warning("Evaluation %s has no email address", report.record.get("id"))
            return False

        msg = self.build_message(report)
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Error sending email to %s: %s", recipient, e)
            return False

        logger.info("Email sent successfully to %s", recipient)
        return True
