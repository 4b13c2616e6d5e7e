"""Escalation e-mail rendering and delivery."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from email.utils import make_msgid
from typing import Any, Optional, Sequence

import emails  # type: ignore
from jinja2 import Template

from config.escalation import EMAIL_LAYOUT, EscalationLevel

logger = logging.getLogger(__name__)


class MailDeliveryError(RuntimeError):
    """Raised when the SMTP server does not accept a message."""


@dataclass(frozen=True)
class SmtpSettings:
    host: Optional[str] = None
    port: int = 587
    user: Optional[str] = None
    password: Optional[str] = None
    tls: bool = True
    ssl: bool = False
    from_email: Optional[str] = None
    from_name: str = "Service qualité"

    @classmethod
    def from_env(cls) -> "SmtpSettings":
        return cls(
            host=os.getenv("SMTP_HOST"),
            port=int(os.getenv("SMTP_PORT", "587")),
            user=os.getenv("SMTP_USER"),
            password=os.getenv("SMTP_PASSWORD"),
            tls=os.getenv("SMTP_TLS", "true").lower() in {"1", "true", "yes"},
            ssl=os.getenv("SMTP_SSL", "false").lower() in {"1", "true", "yes"},
            from_email=os.getenv("EMAILS_FROM_EMAIL") or os.getenv("SMTP_USER"),
            from_name=os.getenv("EMAILS_FROM_NAME", "Service qualité"),
        )

    @property
    def enabled(self) -> bool:
        return bool(self.host and self.from_email)

    def smtp_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"host": self.host, "port": self.port}
        if self.tls:
            options["tls"] = True
        elif self.ssl:
            options["ssl"] = True
        if self.user:
            options["user"] = self.user
        if self.password:
            options["password"] = self.password
        return options


@dataclass
class EmailData:
    subject: str
    html_content: str


def render_escalation_email(level: EscalationLevel, context: dict[str, Any]) -> EmailData:
    """Render the subject and HTML body for ``level``.

    ``context`` supplies ``operator_name``, ``defect_count``,
    ``defect_type`` and ``timestamp``.
    """

    values = {"level": level.threshold, "badge_color": level.badge_color, **context}
    subject = Template(level.subject).render(values).strip()
    body = Template(level.body).render(values)
    html_content = Template(EMAIL_LAYOUT).render({**values, "body": body})
    return EmailData(subject=subject, html_content=html_content)


def send_email(
    *,
    email_to: Sequence[str],
    subject: str,
    html_content: str,
    settings: Optional[SmtpSettings] = None,
) -> str:
    """Send one message to every address in ``email_to`` and return its id."""

    settings = settings or SmtpSettings.from_env()
    if not settings.enabled:
        raise MailDeliveryError("no provided configuration for email variables")

    message_id = make_msgid(domain=settings.from_email.split("@")[-1])
    message = emails.Message(
        subject=subject,
        html=html_content,
        mail_from=(settings.from_name, settings.from_email),
        message_id=message_id,
    )
    response = message.send(to=list(email_to), smtp=settings.smtp_options())
    logger.info("send email result: %s", response)
    if getattr(response, "status_code", None) != 250:
        error = getattr(response, "error", None) or getattr(response, "status_text", None)
        raise MailDeliveryError(f"SMTP delivery failed: {error}")
    return message_id


__all__ = [
    "EmailData",
    "MailDeliveryError",
    "SmtpSettings",
    "render_escalation_email",
    "send_email",
]
