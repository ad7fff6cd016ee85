"""SQLite storage adapter.

Implements the heartbeat, counter, and user ports using a simple SQLite
database.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Iterable, Optional

from core.models import (
    Heartbeat,
    LastNotificationDispatch,
    NewCommitsLoadedEvent,
    NotificationCounters,
    User,
)


def _to_db(value: Optional[datetime]) -> Optional[str]:
    # Stored as UTC ISO strings so lexical order matches time order.
    # Naive datetimes are taken to be UTC already.
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_db(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the storage ports."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - users: notification recipients and their last dispatch record
        - heartbeats: last time each user was seen active
        - pending_commits: commits waiting for a user's review
        - followups: discussion replies waiting for a user
        """

        with self._connect() as conn:
            # The two *_notified_at columns are the dispatch record; NULL means
            # that kind of notification was never sent.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL DEFAULT '',
                    email TEXT NOT NULL DEFAULT '',
                    commit_notified_at TIMESTAMP,
                    followup_notified_at TIMESTAMP
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS heartbeats (
                    user_id TEXT PRIMARY KEY,
                    last_seen TIMESTAMP NOT NULL
                )
                """
            )
            # Fields:
            # - user_id: reviewer the commit waits for
            # - repo_name/sha: commit identity within a repository
            # - created_at: when the commit became pending for the reviewer
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS pending_commits (
                    user_id TEXT NOT NULL,
                    repo_name TEXT NOT NULL,
                    sha TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    PRIMARY KEY (user_id, repo_name, sha)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS followups (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL
                )
                """
            )

    def add_user(self, user: User) -> None:
        """Insert or update a user's contact details."""

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO users (id, name, email) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET name = excluded.name, email = excluded.email
                """,
                (user.id, user.name, user.email),
            )

    def find_user_by_id(self, user_id: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None

        dispatch = LastNotificationDispatch(
            commit_notified_at=_from_db(row["commit_notified_at"]),
            followup_notified_at=_from_db(row["followup_notified_at"]),
        )
        return User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            notifications=None if dispatch.is_empty() else dispatch,
        )

    def remember_notifications(self, user_id: str, dispatch: LastNotificationDispatch) -> None:
        """Merge a dispatch update into the stored record.

        Categories absent from the update are left untouched and stored
        timestamps never move backwards.
        """

        with self._connect() as conn:
            # Hold the write lock across the read-merge-write.
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT commit_notified_at, followup_notified_at FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
            if row is None:
                return
            current = LastNotificationDispatch(
                commit_notified_at=_from_db(row["commit_notified_at"]),
                followup_notified_at=_from_db(row["followup_notified_at"]),
            )
            merged = current.merged_with(dispatch)
            conn.execute(
                "UPDATE users SET commit_notified_at = ?, followup_notified_at = ? WHERE id = ?",
                (_to_db(merged.commit_notified_at), _to_db(merged.followup_notified_at), user_id),
            )

    def record_heartbeat(self, user_id: str, seen_at: Optional[datetime] = None) -> None:
        """Upsert the last-seen timestamp for a user."""

        seen_at = seen_at or datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO heartbeats (user_id, last_seen) VALUES (?, ?)
                ON CONFLICT(user_id) DO UPDATE SET last_seen = excluded.last_seen
                """,
                (user_id, _to_db(seen_at)),
            )

    def load_all_heartbeats(self) -> list[Heartbeat]:
        with self._connect() as conn:
            rows = conn.execute("SELECT user_id, last_seen FROM heartbeats").fetchall()
        return [Heartbeat(user_id=row["user_id"], last_seen=_from_db(row["last_seen"])) for row in rows]

    def register_new_commits(self, event: NewCommitsLoadedEvent, reviewer_ids: Iterable[str]) -> int:
        """Mark the event's commits as pending for each reviewer.

        Returns the number of rows inserted. Commits authored by a reviewer are
        not pending for that reviewer when their email matches.
        """

        created_at = _to_db(event.timestamp or datetime.now(timezone.utc))
        inserted = 0
        with self._connect() as conn:
            for reviewer_id in reviewer_ids:
                row = conn.execute("SELECT email FROM users WHERE id = ?", (reviewer_id,)).fetchone()
                reviewer_email = row["email"] if row else ""
                for commit in event.new_commits:
                    if reviewer_email and commit.author_email == reviewer_email:
                        continue
                    cur = conn.execute(
                        """
                        INSERT OR IGNORE INTO pending_commits (user_id, repo_name, sha, created_at)
                        VALUES (?, ?, ?, ?)
                        """,
                        (reviewer_id, event.repo_name, commit.sha, created_at),
                    )
                    inserted += cur.rowcount
        return inserted

    def mark_commit_reviewed(self, user_id: str, repo_name: str, sha: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM pending_commits WHERE user_id = ? AND repo_name = ? AND sha = ?",
                (user_id, repo_name, sha),
            )

    def add_followup(self, user_id: str, created_at: Optional[datetime] = None) -> None:
        created_at = created_at or datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO followups (user_id, created_at) VALUES (?, ?)",
                (user_id, _to_db(created_at)),
            )

    def get_counters_since(self, since: datetime, user_id: str) -> NotificationCounters:
        """Count pending commits and followups created after ``since``."""

        since_db = _to_db(since)
        with self._connect() as conn:
            commits = conn.execute(
                "SELECT COUNT(*) AS n FROM pending_commits WHERE user_id = ? AND created_at > ?",
                (user_id, since_db),
            ).fetchone()
            followups = conn.execute(
                "SELECT COUNT(*) AS n FROM followups WHERE user_id = ? AND created_at > ?",
                (user_id, since_db),
            ).fetchone()
        return NotificationCounters(
            pending_commit_count=int(commits["n"]),
            followup_count=int(followups["n"]),
        )
