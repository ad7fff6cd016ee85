"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any storage or transport-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Heartbeat:
    """Last time a user was seen active in the application."""

    user_id: str
    last_seen: datetime


@dataclass(frozen=True)
class NotificationCounters:
    """Work accumulated for a user since a given point in time."""

    pending_commit_count: int
    followup_count: int


def _later(current: Optional[datetime], candidate: Optional[datetime]) -> Optional[datetime]:
    if candidate is None:
        return current
    if current is None or candidate > current:
        return candidate
    return current


@dataclass(frozen=True)
class LastNotificationDispatch:
    """When each kind of notification was last sent to a user.

    A missing timestamp means that kind of notification was never sent,
    which is not the same as one sent long ago.
    """

    commit_notified_at: Optional[datetime] = None
    followup_notified_at: Optional[datetime] = None

    def is_empty(self) -> bool:
        return self.commit_notified_at is None and self.followup_notified_at is None

    def merged_with(self, update: LastNotificationDispatch) -> LastNotificationDispatch:
        """Apply a partial update; timestamps only ever move forward."""

        return LastNotificationDispatch(
            commit_notified_at=_later(self.commit_notified_at, update.commit_notified_at),
            followup_notified_at=_later(self.followup_notified_at, update.followup_notified_at),
        )


@dataclass(frozen=True)
class User:
    """User as seen by the notification engine."""

    id: str
    name: str = ""
    email: str = ""
    notifications: Optional[LastNotificationDispatch] = None


@dataclass(frozen=True)
class PartialCommitInfo:
    """Commit metadata carried by repository synchronisation events."""

    sha: str
    message: str
    author_name: str
    author_email: str
    authored_at: datetime


@dataclass(frozen=True)
class NewCommitsLoadedEvent:
    """Repository was synchronised and new commits appeared.

    ``first_time`` is set for the initial import of a repository, where every
    commit is new and reviewers usually should not be flooded.
    """

    first_time: bool
    repo_name: str
    current_sha: str
    new_commits: list[PartialCommitInfo] = field(default_factory=list)
    timestamp: Optional[datetime] = None

    @property
    def user_id(self) -> Optional[str]:
        # Produced by the repository poller, never by a user.
        return None

    def to_event_stream(self) -> str:
        return f"Number of new commits: {len(self.new_commits)}"
