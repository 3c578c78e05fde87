"""Send a test message with the configured SMTP settings."""

from __future__ import annotations

import argparse
import smtplib
import sys
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def parse_args() -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Verify outbound email configuration.")
    parser.add_argument(
        "--to",
        type=str,
        default=None,
        help="Recipient (default: EMAIL_USER).",
    )
    return parser.parse_args()


def main() -> None:
    """CLI entry point."""
    args = parse_args()

    from app.config import settings
    from app.services.mail_service import MailService

    masked = f"{settings.email_password[:4]}****" if settings.email_password else "NOT SET"
    print(f"EMAIL_HOST: {settings.email_host}")
    print(f"EMAIL_PORT: {settings.email_port}")
    print(f"EMAIL_USER: {settings.email_user or 'NOT SET'}")
    print(f"EMAIL_PASSWORD: {masked}")

    mailer = MailService(settings)
    if not mailer.configured:
        print("Email credentials not configured: set EMAIL_USER and EMAIL_PASSWORD.")
        sys.exit(1)

    recipient = args.to or settings.email_user
    try:
        mailer.send(
            recipient,
            "Test Email - Voting Platform",
            f"Email configuration is working.\nSent at: {datetime.now():%Y-%m-%d %H:%M:%S}\n",
        )
    except smtplib.SMTPAuthenticationError as exc:
        print(f"Authentication failed: {exc}")
        sys.exit(1)
    except (smtplib.SMTPException, OSError) as exc:
        print(f"Send failed: {exc}")
        sys.exit(1)

    print(f"Test email sent to {recipient}")


if __name__ == "__main__":
    main()
