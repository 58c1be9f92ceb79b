"""Email delivery for account notifications (SMTP)."""

from __future__ import annotations

import asyncio
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import structlog

from app.core.config import Settings, get_settings

log = structlog.get_logger()


@dataclass
class EmailConfig:
    smtp_host: str
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    from_email: str = "noreply@nexposit.com"
    from_name: str = "NexPosit"
    use_tls: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailConfig":
        return cls(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_user=settings.smtp_user or None,
            smtp_password=settings.smtp_password or None,
            from_email=settings.email_from,
            from_name=settings.email_from_name,
            use_tls=settings.smtp_use_tls,
        )


class EmailNotifier:
    """Sends email over SMTP. ``send`` blocks; use ``asend`` from async code."""

    def __init__(self, config: EmailConfig):
        self.config = config

    def send(
        self,
        to_emails: list[str],
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> bool:
        """Returns True if the message was handed to the SMTP server."""
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.config.from_name} <{self.config.from_email}>"
        msg["To"] = ", ".join(to_emails)
        if body_text:
            msg.attach(MIMEText(body_text, "plain"))
        msg.attach(MIMEText(body_html, "html"))

        try:
            with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port) as server:
                if self.config.use_tls:
                    server.starttls()
                if self.config.smtp_user and self.config.smtp_password:
                    server.login(self.config.smtp_user, self.config.smtp_password)
                server.sendmail(self.config.from_email, to_emails, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            log.error("email.send_failed", to=to_emails, subject=subject, error=str(e))
            return False

        log.info("email.sent", to=to_emails, subject=subject)
        return True

    async def asend(self, *args, **kwargs) -> bool:
        return await asyncio.to_thread(self.send, *args, **kwargs)

    async def send_password_reset(self, to_email: str, full_name: str, reset_url: str) -> bool:
        subject = "Reset your NexPosit password"
        body_html = f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <h2>Password reset</h2>
            <p>Hi {full_name},</p>
            <p>We received a request to reset your password. This link expires in one hour.</p>
            <p><a href="{reset_url}">Reset password</a></p>
            <p style="color: #666; font-size: 12px;">
                If you did not request this, you can ignore this email.
            </p>
        </body>
        </html>
        """
        body_text = f"""
Hi {full_name},

Reset your password (link expires in one hour):
{reset_url}

If you did not request this, you can ignore this email.
        """
        return await self.asend([to_email], subject, body_html, body_text)


def get_notifier() -> Optional[EmailNotifier]:
    """Configured notifier, or None when SMTP settings are absent (dev mode)."""
    settings = get_settings()
    if not settings.email_configured:
        return None
    return EmailNotifier(EmailConfig.from_settings(settings))
