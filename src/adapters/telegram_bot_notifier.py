"""Telegram Bot API notification adapter.

Uses the Bot API for delivery so notifications can be routed via a bot chat.
"""

from __future__ import annotations

import asyncio
import json
import urllib.error
import urllib.request
from typing import Optional

from adapters.notification_formatting import format_notification
from core.errors import NotificationDeliveryError
from core.models import User


class TelegramBotNotifier:
    """Notifier adapter that sends review summaries via the Telegram Bot API."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        application_url: Optional[str] = None,
        timeout: float = 10,
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._application_url = application_url
        self._timeout = timeout

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/sendMessage"

    def _build_request(self, user: User, pending_commit_count: int, followup_count: int) -> urllib.request.Request:
        message = format_notification(
            user, pending_commit_count, followup_count, self._application_url, mode="html"
        )
        payload = {
            "chat_id": self._chat_id,
            "text": message,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(self._endpoint(), data=data, method="POST")
        request.add_header("Content-Type", "application/json")
        return request

    def _post(self, request: urllib.request.Request) -> None:
        with urllib.request.urlopen(request, timeout=self._timeout):
            pass

    async def send_commits_or_followup_notification(
        self, user: User, pending_commit_count: int, followup_count: int
    ) -> None:
        """Send the formatted summary via the Bot API."""

        request = self._build_request(user, pending_commit_count, followup_count)
        try:
            await asyncio.to_thread(self._post, request)
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            raise NotificationDeliveryError(f"Bot API error {e.code}: {body}") from e
        except urllib.error.URLError as e:
            raise NotificationDeliveryError(f"Bot API unreachable: {e.reason}") from e
        except OSError as e:
            # Read timeouts and resets after the request was sent are not wrapped by urllib.
            raise NotificationDeliveryError(f"Bot API request failed: {e}") from e
