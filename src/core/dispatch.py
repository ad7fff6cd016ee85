"""Notification dispatch decisions.

This module is integration-agnostic. It only relies on ports for storage,
counters, time and notifications, so the same rules apply whatever the
backend or delivery channel is.

Order of checks per heartbeat:
1) Offline test against the configured offline period
2) Counters accumulated since the heartbeat
3) User lookup (missing users are skipped)
4) Per-category dedup against the last dispatch record
5) One combined send, then record the dispatch
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from core.errors import NotificationDeliveryError
from core.models import Heartbeat, LastNotificationDispatch, NotificationCounters, User
from core.ports import ClockPort, NotificationCountPort, NotifierPort, UserStorePort

LOGGER = logging.getLogger(__name__)


def user_is_offline(last_seen: datetime, now: datetime, offline_period: timedelta) -> bool:
    return last_seen < now - offline_period


def category_needs_notification(
    pending_count: int, notified_at: Optional[datetime], last_seen: datetime
) -> bool:
    """Return True when pending work of one kind was not yet notified for this excursion.

    The dispatch timestamp is compared with ``last_seen``, not with the current
    time: a notification sent during the current excursion is always at or
    after ``last_seen``, while one from an earlier excursion is before it.
    """

    if pending_count <= 0:
        return False
    return notified_at is None or notified_at < last_seen


def user_should_be_notified(last_seen: datetime, user: User, counters: NotificationCounters) -> bool:
    dispatch = user.notifications or LastNotificationDispatch()
    needs_commit_notification = category_needs_notification(
        counters.pending_commit_count, dispatch.commit_notified_at, last_seen
    )
    needs_followup_notification = category_needs_notification(
        counters.followup_count, dispatch.followup_notified_at, last_seen
    )
    return needs_commit_notification or needs_followup_notification


def build_dispatch_update(counters: NotificationCounters, now: datetime) -> Optional[LastNotificationDispatch]:
    """Return the record update for a sent notification, or None if nothing to record."""

    update = LastNotificationDispatch(
        commit_notified_at=now if counters.pending_commit_count > 0 else None,
        followup_notified_at=now if counters.followup_count > 0 else None,
    )
    if update.is_empty():
        return None
    return update


class NotificationDispatcher:
    """Decides which offline users get notified and records what was sent."""

    def __init__(
        self,
        counters: NotificationCountPort,
        users: UserStorePort,
        notifier: NotifierPort,
        clock: ClockPort,
        offline_period: timedelta,
    ) -> None:
        self._counters = counters
        self._users = users
        self._notifier = notifier
        self._clock = clock
        self._offline_period = offline_period

    async def evaluate(self, heartbeats: Iterable[Heartbeat]) -> int:
        """Run one dispatch pass over a heartbeat snapshot.

        Returns the number of users notified. Store errors propagate and abort
        the pass; the next pass re-evaluates the same users.
        """

        notified = 0
        for heartbeat in heartbeats:
            if await self._evaluate_one(heartbeat):
                notified += 1
        return notified

    async def _evaluate_one(self, heartbeat: Heartbeat) -> bool:
        now = self._clock.now_utc()
        if not user_is_offline(heartbeat.last_seen, now, self._offline_period):
            return False

        counters = self._counters.get_counters_since(heartbeat.last_seen, heartbeat.user_id)
        user = self._users.find_user_by_id(heartbeat.user_id)
        if user is None:
            LOGGER.debug("Skipping heartbeat of unknown user %s", heartbeat.user_id)
            return False

        if not user_should_be_notified(heartbeat.last_seen, user, counters):
            return False

        try:
            await self._notifier.send_commits_or_followup_notification(
                user, counters.pending_commit_count, counters.followup_count
            )
        except NotificationDeliveryError:
            # Nothing is recorded, so the next pass retries this user.
            LOGGER.exception("Failed to notify user %s", user.id)
            return False

        self._remember_dispatch(user, counters)
        LOGGER.info(
            "Notified user %s (commits=%s, followups=%s)",
            user.id,
            counters.pending_commit_count,
            counters.followup_count,
        )
        return True

    def _remember_dispatch(self, user: User, counters: NotificationCounters) -> None:
        update = build_dispatch_update(counters, self._clock.now_utc())
        if update is None:
            return
        self._users.remember_notifications(user.id, update)
