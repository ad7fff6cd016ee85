from __future__ import annotations

import pytest

from adapters.notification_formatting import format_notification, format_subject, summarize_counts
from core.models import User


def test_summary_omits_zero_counts() -> None:
    assert summarize_counts(2, 0) == "2 commits to review"
    assert summarize_counts(0, 1) == "1 followup"
    assert summarize_counts(1, 3) == "1 commit to review and 3 followups"


def test_subject_mentions_counts() -> None:
    assert format_subject(0, 2) == "[reviewmail] You have 2 followups"


def test_text_body_greets_user_and_links_app() -> None:
    user = User(id="u1", name="Alice", email="alice@example.com")
    body = format_notification(user, 2, 0, "https://review.example.com", mode="text")
    assert body.startswith("Hi Alice,")
    assert "2 commits to review" in body
    assert "followup" not in body
    assert "https://review.example.com" in body


def test_html_body_escapes_name() -> None:
    user = User(id="u1", name="<Bob>", email="bob@example.com")
    body = format_notification(user, 1, 1, None, mode="html")
    assert "&lt;Bob&gt;" in body
    assert "<a href" not in body


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ValueError):
        format_notification(User(id="u1"), 1, 0, None, mode="markdown")
