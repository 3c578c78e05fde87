"""Outbound mail over SMTP."""

from __future__ import annotations

import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage

from app.config import Settings, settings

logger = logging.getLogger(__name__)

RESET_SUBJECT = "Password Reset Request - Voting Platform"

RESET_TEXT = """Hello {name},

We received a request to reset your password for your Voting Platform account.

Open this link to choose a new password:
{reset_url}

This link will expire in 1 hour. If you didn't request a reset, you can ignore
this email and your password will remain unchanged.
"""

RESET_HTML = """<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
      <h1 style="color: #007bff;">Password Reset Request</h1>
      <p>Hello {name},</p>
      <p>We received a request to reset your password for your Voting Platform account.</p>
      <p><a href="{reset_url}">Reset Password</a></p>
      <p>Or copy and paste this link into your browser:</p>
      <p style="word-break: break-all;">{reset_url}</p>
      <p><strong>This link will expire in 1 hour.</strong></p>
      <p>If you didn't request this password reset, please ignore this email.</p>
      <p style="color: #666; font-size: 12px;">Voting Platform &copy; {year}</p>
    </div>
  </body>
</html>
"""


class MailService:
    """Send transactional mail, falling back to the log when SMTP is unavailable."""

    def __init__(self, config: Settings | None = None) -> None:
        self.config = config or settings

    @property
    def configured(self) -> bool:
        return self.config.mail_configured

    def send(self, recipient: str, subject: str, text: str, html: str | None = None) -> None:
        """Send one message. Raises ``smtplib.SMTPException`` or ``OSError`` on failure."""
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f"Voting Platform <{self.config.email_user}>"
        msg["To"] = recipient
        msg.set_content(text)
        if html:
            msg.add_alternative(html, subtype="html")

        with smtplib.SMTP(
            self.config.email_host,
            self.config.email_port,
            timeout=self.config.email_timeout_seconds,
        ) as smtp:
            smtp.starttls()
            smtp.login(self.config.email_user, self.config.email_password)
            smtp.send_message(msg)

    def send_password_reset(self, recipient: str, name: str, reset_url: str) -> bool:
        """Mail a reset link and return True when it was handed to SMTP.

        When mail is unconfigured or the send fails, the link is written to
        the log so an operator can still complete the flow.
        """
        if not self.configured:
            logger.warning(
                "Email credentials not configured; password reset URL for %s: %s",
                recipient,
                reset_url,
            )
            return False

        try:
            self.send(
                recipient,
                RESET_SUBJECT,
                RESET_TEXT.format(name=name, reset_url=reset_url),
                RESET_HTML.format(name=name, reset_url=reset_url, year=datetime.now().year),
            )
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send password reset email to %s", recipient)
            logger.warning("Fallback password reset URL for %s: %s", recipient, reset_url)
            return False

        logger.info("Password reset email sent to %s", recipient)
        return True
