"""Errors shared between the core and adapters."""

from __future__ import annotations


class NotificationDeliveryError(RuntimeError):
    """Raised by notifier adapters when a notification could not be delivered."""
