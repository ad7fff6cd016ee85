"""Ports (interfaces) used by the notification engine.

Ports define the minimal contracts for storage, clock, and notification
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from core.models import Heartbeat, LastNotificationDispatch, NotificationCounters, User


class HeartbeatStorePort(Protocol):
    """Read access to the last-seen heartbeats of all users."""

    def load_all_heartbeats(self) -> list[Heartbeat]:
        ...


class NotificationCountPort(Protocol):
    """Counts of work that accumulated for a user since a timestamp."""

    def get_counters_since(self, since: datetime, user_id: str) -> NotificationCounters:
        ...


class UserStorePort(Protocol):
    """User lookups and dispatch bookkeeping."""

    def find_user_by_id(self, user_id: str) -> Optional[User]:
        ...

    def remember_notifications(self, user_id: str, dispatch: LastNotificationDispatch) -> None:
        ...


class NotifierPort(Protocol):
    """Notification transport used by the dispatcher."""

    async def send_commits_or_followup_notification(
        self, user: User, pending_commit_count: int, followup_count: int
    ) -> None:
        ...


class ClockPort(Protocol):
    def now_utc(self) -> datetime:
        ...
