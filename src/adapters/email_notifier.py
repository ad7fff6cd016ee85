"""SMTP email notification adapter.

Sends a multipart (text + HTML) summary of pending reviews to the user.
"""

from __future__ import annotations

import asyncio
import smtplib
from email.message import EmailMessage
from typing import Callable, Optional

from adapters.notification_formatting import format_notification, format_subject
from core.config import EmailConfig
from core.errors import NotificationDeliveryError
from core.models import User

SmtpFactory = Callable[..., smtplib.SMTP]


class EmailNotifier:
    """Notifier adapter that emails review summaries over SMTP."""

    def __init__(
        self,
        config: EmailConfig,
        password: Optional[str],
        application_url: Optional[str] = None,
        smtp_factory: SmtpFactory = smtplib.SMTP,
    ) -> None:
        self._config = config
        self._password = password
        self._application_url = application_url
        self._smtp_factory = smtp_factory

    def build_message(self, user: User, pending_commit_count: int, followup_count: int) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = format_subject(pending_commit_count, followup_count)
        message["From"] = self._config.sender
        message["To"] = user.email
        message.set_content(
            format_notification(user, pending_commit_count, followup_count, self._application_url, mode="text")
        )
        message.add_alternative(
            format_notification(user, pending_commit_count, followup_count, self._application_url, mode="html"),
            subtype="html",
        )
        return message

    def _deliver(self, message: EmailMessage) -> None:
        with self._smtp_factory(self._config.smtp_host, self._config.smtp_port, timeout=self._config.timeout) as smtp:
            if self._config.use_tls:
                smtp.starttls()
            if self._config.username and self._password:
                smtp.login(self._config.username, self._password)
            smtp.send_message(message)

    async def send_commits_or_followup_notification(
        self, user: User, pending_commit_count: int, followup_count: int
    ) -> None:
        """Send the summary email; delivery problems surface as NotificationDeliveryError."""

        if not user.email:
            raise NotificationDeliveryError(f"User {user.id} has no email address")

        message = self.build_message(user, pending_commit_count, followup_count)
        # smtplib blocks, so the session runs in a worker thread.
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationDeliveryError(f"SMTP delivery to {user.email} failed: {e}") from e
