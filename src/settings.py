"""Static configuration for reviewmail.

All user-editable settings (timing, storage, notifications, logging) live in
a single JSON file for quick edits without touching Python. Secrets such as
SMTP_PASSWORD and BOT_API come from the environment (.env supported).
"""

import json
import os
from datetime import timedelta

from dotenv import load_dotenv

from core.config import EmailConfig, SchedulerConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

load_dotenv()

# REVIEWMAIL_CONFIG points at an alternative config file, e.g. per environment.
CONFIG_PATH = os.getenv("REVIEWMAIL_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


def build_scheduler_config(raw: dict) -> SchedulerConfig:
    """Build the scheduler timing config from the ``scheduler`` section."""

    offline_minutes = float(raw.get("offline_period_minutes", 60))
    interval_seconds = float(raw.get("check_interval_seconds", 900))
    if offline_minutes < 0:
        raise ValueError("scheduler.offline_period_minutes must not be negative")
    if interval_seconds <= 0:
        raise ValueError("scheduler.check_interval_seconds must be positive")
    return SchedulerConfig(
        offline_period=timedelta(minutes=offline_minutes),
        check_interval=timedelta(seconds=interval_seconds),
    )


def build_email_config(raw: dict) -> EmailConfig:
    """Build SMTP settings from the ``notifications.email`` section."""

    return EmailConfig(
        smtp_host=raw.get("smtp_host", "localhost"),
        smtp_port=int(raw.get("smtp_port", 25)),
        use_tls=bool(raw.get("use_tls", False)),
        sender=raw.get("sender", "reviewmail@localhost"),
        username=raw.get("username", ""),
        timeout=float(raw.get("timeout_seconds", 10)),
    )


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Offline period and check interval drive the dispatcher and scheduler loop.
SCHEDULER = build_scheduler_config(_CONFIG.get("scheduler", {}))

_storage = _CONFIG.get("storage", {})
DB_PATH = _resolve_path(_storage.get("db_path", "reviewmail.db"))

# Notification method switches adapters without changing core logic.
_notifications = _CONFIG.get("notifications", {})
NOTIFICATION_METHOD = _notifications.get("notification_method", "email")
APPLICATION_URL = _notifications.get("application_url")
EMAIL = build_email_config(_notifications.get("email", {}))
# Bot chat id is only required when notification_method=bot.
BOT_CHAT_ID = _notifications.get("bot_chat_id")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
