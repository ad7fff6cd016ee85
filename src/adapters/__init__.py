"""Adapters implementing the core ports (SQLite storage, SMTP, Telegram Bot API)."""
