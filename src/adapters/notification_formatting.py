"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
from typing import Optional

from core.models import User


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def summarize_counts(pending_commit_count: int, followup_count: int) -> str:
    """Return a short phrase describing the non-zero counts."""

    parts = []
    if pending_commit_count > 0:
        parts.append(_plural(pending_commit_count, "commit to review", "commits to review"))
    if followup_count > 0:
        parts.append(_plural(followup_count, "followup", "followups"))
    if not parts:
        return "nothing new"
    return " and ".join(parts)


def format_subject(pending_commit_count: int, followup_count: int) -> str:
    return f"[reviewmail] You have {summarize_counts(pending_commit_count, followup_count)}"


def _greeting(user: User) -> str:
    return f"Hi {user.name}," if user.name else "Hi,"


def _format_text(
    user: User,
    pending_commit_count: int,
    followup_count: int,
    application_url: Optional[str],
) -> str:
    """Create the plain text body used by email."""

    lines = [
        _greeting(user),
        "",
        f"While you were away you got {summarize_counts(pending_commit_count, followup_count)}.",
    ]
    if application_url:
        lines.extend(["", f"Catch up at {application_url}"])
    return "\n".join(lines)


def _format_html(
    user: User,
    pending_commit_count: int,
    followup_count: int,
    application_url: Optional[str],
) -> str:
    """Create the HTML body used by email and the Bot API adapter."""

    summary = html.escape(summarize_counts(pending_commit_count, followup_count))
    parts = [
        html.escape(_greeting(user)),
        "",
        f"While you were away you got <b>{summary}</b>.",
    ]
    if application_url:
        safe_link = html.escape(application_url)
        parts.extend(["", f"<a href=\"{safe_link}\">Catch up</a>"])
    return "\n".join(parts)


def format_notification(
    user: User,
    pending_commit_count: int,
    followup_count: int,
    application_url: Optional[str],
    mode: str,
) -> str:
    """Return the notification body formatted for the requested mode."""

    if mode == "text":
        return _format_text(user, pending_commit_count, followup_count, application_url)
    if mode == "html":
        return _format_html(user, pending_commit_count, followup_count, application_url)
    raise ValueError(f"Unsupported notification format: {mode}")
