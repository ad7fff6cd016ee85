"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class SchedulerConfig:
    """Timing settings for the notification scheduler and dispatcher."""

    offline_period: timedelta
    check_interval: timedelta


@dataclass(frozen=True)
class EmailConfig:
    """SMTP settings consumed by the email notifier adapter."""

    smtp_host: str
    smtp_port: int
    use_tls: bool
    sender: str
    username: str
    timeout: float = 10
