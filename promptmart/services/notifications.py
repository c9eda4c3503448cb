"""
Outbound email used to carry one-time passcodes.

``SendGridNotifier`` sends through the SendGrid API; ``ConsoleNotifier``
logs the message instead and is used whenever SendGrid is not configured.
Delivery failures surface as ``NotificationError`` so the caller can roll
back.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from python_http_client.exceptions import HTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when a message could not be handed to the mail provider."""


class Notifier(Protocol):
    async def deliver(self, recipient: str, subject: str, body: str) -> None:
        ...


class ConsoleNotifier:
    async def deliver(self, recipient: str, subject: str, body: str) -> None:
        logger.info("Email to %s | %s\n%s", recipient, subject, body)


class SendGridNotifier:
    def __init__(self, api_key: str, sender: str, client: Any = None) -> None:
        self.sender = sender
        self.client = client or SendGridAPIClient(api_key)

    async def deliver(self, recipient: str, subject: str, body: str) -> None:
        message = Mail(
            from_email=self.sender,
            to_emails=recipient,
            subject=subject,
            plain_text_content=body,
        )
        # The SDK is blocking
        try:
            response = await run_in_threadpool(self.client.send, message)
        except (HTTPError, OSError) as exc:
            logger.error("SendGrid delivery to %s failed: %s", recipient, exc)
            raise NotificationError(str(exc)) from exc

        if response.status_code >= 400:
            logger.error("SendGrid rejected mail to %s: HTTP %s", recipient, response.status_code)
            raise NotificationError(f"SendGrid returned HTTP {response.status_code}")
        logger.info("Sent '%s' to %s (HTTP %s)", subject, recipient, response.status_code)


def otp_email(name: str, code: str, purpose: str, ttl_minutes: int) -> tuple[str, str]:
    """Return ``(subject, body)`` for a verification or password-reset code."""
    if purpose == "reset":
        subject = "Password Reset OTP"
        intro = "You are receiving this email because you requested a password reset."
    else:
        subject = "Email Verification OTP"
        intro = "Use the code below to verify your email address."
    body = (
        f"Hello {name},\n\n"
        f"{intro}\n\n"
        f"Your OTP is: {code}\n\n"
        f"This OTP will expire in {ttl_minutes} minutes.\n"
        "If you didn't request this, please ignore this email.\n"
    )
    return subject, body
