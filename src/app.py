"""Application entry point for the reviewmail notification engine."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint

import settings
from adapters.email_notifier import EmailNotifier
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_bot_notifier import TelegramBotNotifier
from core.clock import SystemClock
from core.dispatch import NotificationDispatcher
from core.ports import NotifierPort
from core.scheduler import NotificationScheduler

NAME = "REVIEWMAIL"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/reviewmail.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _build_notifier() -> NotifierPort:
    """Select the notification adapter based on configuration."""

    if settings.NOTIFICATION_METHOD == "email":
        return EmailNotifier(
            config=settings.EMAIL,
            password=os.getenv("SMTP_PASSWORD"),
            application_url=settings.APPLICATION_URL,
        )
    if settings.NOTIFICATION_METHOD == "bot":
        bot_token = os.getenv("BOT_API")
        if not bot_token:
            raise RuntimeError("BOT_API is required when notification_method=bot")
        if not settings.BOT_CHAT_ID:
            raise RuntimeError("notifications.bot_chat_id is required for bot notifications")
        return TelegramBotNotifier(
            bot_token=bot_token,
            chat_id=str(settings.BOT_CHAT_ID),
            application_url=settings.APPLICATION_URL,
        )
    raise RuntimeError("notification_method must be 'email' or 'bot'")


def _build_scheduler() -> NotificationScheduler:
    logger = logging.getLogger(__name__)

    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()

    notifier = _build_notifier()
    logger.info("Selected notification method - %s", settings.NOTIFICATION_METHOD)

    dispatcher = NotificationDispatcher(
        counters=storage,
        users=storage,
        notifier=notifier,
        clock=SystemClock(),
        offline_period=settings.SCHEDULER.offline_period,
    )
    return NotificationScheduler(
        heartbeats=storage,
        dispatcher=dispatcher,
        check_interval=settings.SCHEDULER.check_interval,
    )


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Initializing user notification system")
    scheduler = _build_scheduler()
    try:
        asyncio.run(scheduler.run())
    except KeyboardInterrupt:
        logger.info("Shutting down")


def _check() -> None:
    _configure_logging()
    scheduler = _build_scheduler()
    notified = asyncio.run(scheduler.run_once())
    print(f"Users notified: {notified}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="reviewmail")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the notification loop")
    subparsers.add_parser("check", help="Run a single notification pass and exit")

    args = parser.parse_args(argv)
    if args.command == "check":
        _check()
        return
    _run()


if __name__ == "__main__":
    main()
