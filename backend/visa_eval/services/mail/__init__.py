"""
Email delivery of evaluation reports.
"""

from .mailer import (
    SmtpMailer,
    SmtpSettings,
    email_subject,
    render_email_html,
    render_email_text,
    result_url,
)

__all__ = [
    "SmtpMailer",
    "SmtpSettings",
    "email_subject",
    "render_email_html",
    "render_email_text",
    "result_url",
]
