# PURPOSE: outgoing mail (OTP codes and the welcome message) rendered from Jinja2 templates.
# Delivery is best effort: a failed or unconfigured relay is logged and reported as False,
# never raised. Outside production the OTP is also written to the log.

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from importlib import resources as ilres

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .config import Settings, settings

logger = logging.getLogger(__name__)

templates_dir = ilres.files("todoapp").joinpath("templates").joinpath("email")
templates = Environment(
    loader=FileSystemLoader(str(templates_dir)),
    autoescape=select_autoescape(["html"]),
)

SUBJECTS = {
    "registration": "Account Registration Confirmation - TodoApp",
    "password_reset": "Password Reset - TodoApp",
    "welcome": "Welcome to TodoApp!",
}


class Mailer:
    def __init__(self, config: Settings) -> None:
        self.config = config

    @property
    def configured(self) -> bool:
        return bool(self.config.SMTP_HOST)

    def render(self, template: str, **context) -> str:
        return templates.get_template(template).render(**context)

    def deliver(self, recipient: str, subject: str, html: str) -> None:
        """Send one HTML message through the SMTP relay. Raises on failure."""
        msg = EmailMessage()
        msg["From"] = self.config.MAIL_FROM
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")

        smtp_cls = smtplib.SMTP_SSL if self.config.SMTP_SSL else smtplib.SMTP
        with smtp_cls(self.config.SMTP_HOST, self.config.SMTP_PORT, timeout=self.config.SMTP_TIMEOUT) as smtp:
            if self.config.SMTP_STARTTLS and not self.config.SMTP_SSL:
                smtp.starttls()
            if self.config.SMTP_USERNAME:
                smtp.login(self.config.SMTP_USERNAME, self.config.SMTP_PASSWORD)
            smtp.send_message(msg)

    def _send_quietly(self, recipient: str, subject: str, html: str) -> bool:
        if not self.configured:
            logger.warning("mail disabled (SMTP_HOST unset) to=%s subject=%r", recipient, subject)
            return False
        try:
            self.deliver(recipient, subject, html)
        except (smtplib.SMTPException, OSError):
            logger.exception("mail delivery failed to=%s subject=%r", recipient, subject)
            return False
        logger.info("mail sent to=%s subject=%r", recipient, subject)
        return True

    def send_otp(self, email: str, code: str, purpose: str) -> bool:
        html = self.render(
            "otp.html",
            code=code,
            purpose=purpose,
            ttl_minutes=self.config.OTP_TTL_MINUTES,
        )
        delivered = self._send_quietly(email, SUBJECTS[purpose], html)
        if not delivered and not self.config.is_production:
            logger.warning("[fallback] otp for %s (%s): %s", email, purpose, code)
        return delivered

    def send_welcome(self, email: str, name: str) -> bool:
        html = self.render("welcome.html", name=name, frontend_url=self.config.FRONTEND_URL)
        return self._send_quietly(email, SUBJECTS["welcome"], html)


mailer = Mailer(settings)


def get_mailer() -> Mailer:
    """FastAPI dependency; tests override it with a recording mailer."""
    return mailer
