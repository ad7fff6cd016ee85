from __future__ import annotations

import asyncio
import json
import smtplib
import urllib.error
from datetime import datetime, timedelta, timezone

import pytest

from adapters import telegram_bot_notifier
from adapters.email_notifier import EmailNotifier
from adapters.telegram_bot_notifier import TelegramBotNotifier
from core.config import EmailConfig
from core.errors import NotificationDeliveryError
from core.dispatch import NotificationDispatcher
from core.models import Heartbeat, LastNotificationDispatch, NotificationCounters, User

EMAIL_CONFIG = EmailConfig(
    smtp_host="smtp.example.com",
    smtp_port=587,
    use_tls=True,
    sender="reviewmail@example.com",
    username="reviewmail",
)
ALICE = User(id="u1", name="Alice", email="alice@example.com")
NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeSMTP:
    instances: list["FakeSMTP"] = []

    def __init__(self, host: str, port: int, timeout: float) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.calls: list[str] = []
        self.messages = []
        FakeSMTP.instances.append(self)

    def __enter__(self) -> "FakeSMTP":
        return self

    def __exit__(self, *exc) -> None:
        self.calls.append("quit")

    def starttls(self) -> None:
        self.calls.append("starttls")

    def login(self, username: str, password: str) -> None:
        self.calls.append(f"login:{username}")

    def send_message(self, message) -> None:
        self.messages.append(message)


class BrokenSMTP(FakeSMTP):
    def send_message(self, message) -> None:
        raise smtplib.SMTPRecipientsRefused({message["To"]: (550, b"no such user")})


def test_email_notifier_sends_multipart_message() -> None:
    FakeSMTP.instances.clear()
    notifier = EmailNotifier(EMAIL_CONFIG, "secret", "https://review.example.com", smtp_factory=FakeSMTP)

    asyncio.run(notifier.send_commits_or_followup_notification(ALICE, 3, 0))

    smtp = FakeSMTP.instances[0]
    assert (smtp.host, smtp.port) == ("smtp.example.com", 587)
    assert smtp.timeout == 10
    assert smtp.calls == ["starttls", "login:reviewmail", "quit"]
    message = smtp.messages[0]
    assert message["To"] == "alice@example.com"
    assert message["Subject"] == "[reviewmail] You have 3 commits to review"
    assert message.is_multipart()


def test_email_notifier_wraps_smtp_errors() -> None:
    notifier = EmailNotifier(EMAIL_CONFIG, None, smtp_factory=BrokenSMTP)

    with pytest.raises(NotificationDeliveryError):
        asyncio.run(notifier.send_commits_or_followup_notification(ALICE, 1, 0))


def test_email_notifier_requires_address() -> None:
    notifier = EmailNotifier(EMAIL_CONFIG, None, smtp_factory=FakeSMTP)

    with pytest.raises(NotificationDeliveryError):
        asyncio.run(notifier.send_commits_or_followup_notification(User(id="u2"), 1, 0))


class FakeResponse:
    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc) -> None:
        return None


def test_bot_notifier_posts_html_message(monkeypatch) -> None:
    requests = []

    def fake_urlopen(request, timeout):
        requests.append(request)
        return FakeResponse()

    monkeypatch.setattr(telegram_bot_notifier.urllib.request, "urlopen", fake_urlopen)
    notifier = TelegramBotNotifier(bot_token="TOKEN", chat_id="42")

    asyncio.run(notifier.send_commits_or_followup_notification(ALICE, 0, 2))

    request = requests[0]
    assert request.full_url == "https://api.telegram.org/botTOKEN/sendMessage"
    payload = json.loads(request.data.decode("utf-8"))
    assert payload["chat_id"] == "42"
    assert payload["parse_mode"] == "HTML"
    assert "2 followups" in payload["text"]


def test_bot_notifier_wraps_network_errors(monkeypatch) -> None:
    def fake_urlopen(request, timeout):
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr(telegram_bot_notifier.urllib.request, "urlopen", fake_urlopen)
    notifier = TelegramBotNotifier(bot_token="TOKEN", chat_id="42")

    with pytest.raises(NotificationDeliveryError):
        asyncio.run(notifier.send_commits_or_followup_notification(ALICE, 1, 0))


def test_email_notifier_passes_configured_timeout() -> None:
    FakeSMTP.instances.clear()
    config = EmailConfig(
        smtp_host="smtp.example.com",
        smtp_port=25,
        use_tls=False,
        sender="reviewmail@example.com",
        username="",
        timeout=2.5,
    )
    notifier = EmailNotifier(config, None, smtp_factory=FakeSMTP)

    asyncio.run(notifier.send_commits_or_followup_notification(ALICE, 1, 0))

    assert FakeSMTP.instances[0].timeout == 2.5
    assert FakeSMTP.instances[0].calls == ["quit"]


def test_email_notifier_wraps_connection_timeout() -> None:
    def timing_out_factory(host: str, port: int, timeout: float):
        raise TimeoutError("timed out")

    notifier = EmailNotifier(EMAIL_CONFIG, None, smtp_factory=timing_out_factory)

    with pytest.raises(NotificationDeliveryError):
        asyncio.run(notifier.send_commits_or_followup_notification(ALICE, 1, 0))


def test_bot_notifier_passes_timeout(monkeypatch) -> None:
    timeouts = []

    def fake_urlopen(request, timeout):
        timeouts.append(timeout)
        return FakeResponse()

    monkeypatch.setattr(telegram_bot_notifier.urllib.request, "urlopen", fake_urlopen)
    notifier = TelegramBotNotifier(bot_token="TOKEN", chat_id="42", timeout=3)

    asyncio.run(notifier.send_commits_or_followup_notification(ALICE, 1, 0))

    assert timeouts == [3]


def test_bot_notifier_wraps_read_timeout(monkeypatch) -> None:
    def fake_urlopen(request, timeout):
        raise TimeoutError("The read operation timed out")

    monkeypatch.setattr(telegram_bot_notifier.urllib.request, "urlopen", fake_urlopen)
    notifier = TelegramBotNotifier(bot_token="TOKEN", chat_id="42")

    with pytest.raises(NotificationDeliveryError):
        asyncio.run(notifier.send_commits_or_followup_notification(ALICE, 1, 0))


class FixedClock:
    def now_utc(self) -> datetime:
        return NOW


class StaticCounters:
    def get_counters_since(self, since: datetime, user_id: str) -> NotificationCounters:
        return NotificationCounters(1, 0)


class StaticUsers:
    def __init__(self) -> None:
        self.remembered: list[str] = []

    def find_user_by_id(self, user_id: str) -> User:
        return User(id=user_id, email=f"{user_id}@example.com")

    def remember_notifications(self, user_id: str, dispatch: LastNotificationDispatch) -> None:
        self.remembered.append(user_id)


def test_bot_read_timeout_only_skips_that_user(monkeypatch) -> None:
    calls = []

    def fake_urlopen(request, timeout):
        calls.append(request)
        if len(calls) == 1:
            raise TimeoutError("The read operation timed out")
        return FakeResponse()

    monkeypatch.setattr(telegram_bot_notifier.urllib.request, "urlopen", fake_urlopen)
    users = StaticUsers()
    dispatcher = NotificationDispatcher(
        counters=StaticCounters(),
        users=users,
        notifier=TelegramBotNotifier(bot_token="TOKEN", chat_id="42"),
        clock=FixedClock(),
        offline_period=timedelta(hours=1),
    )
    last_seen = NOW - timedelta(hours=2)

    notified = asyncio.run(dispatcher.evaluate([Heartbeat("u1", last_seen), Heartbeat("u2", last_seen)]))

    assert notified == 1
    assert users.remembered == ["u2"]
