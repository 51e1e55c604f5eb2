"""
Application Settings

Explicit settings objects read from environment variables once at startup
and passed into the services and workers that need them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

REDIS_DISABLED_URL = "memory://"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    if value.lstrip("-").isdigit():
        return int(value)
    return default


@dataclass
class CacheSettings:
    """Slot cache backend selection and TTL."""

    redis_url: Optional[str] = None
    ttl_seconds: int = 300
    max_connections: int = 20

    @classmethod
    def from_env(cls) -> "CacheSettings":
        url = os.getenv("REDIS_URL")
        if not url or url.strip().lower() == REDIS_DISABLED_URL:
            url = None
        return cls(
            redis_url=url.strip() if url else None,
            ttl_seconds=_env_int("SLOT_CACHE_TTL_SECONDS", 300),
            max_connections=_env_int("REDIS_MAX_CONNECTIONS", 20),
        )


@dataclass
class SchedulingSettings:
    """
    Booking window used for availability.

    Shop opening hours are not consulted; every barber is offered the
    same UTC day window.
    """

    open_hour: int = 9
    close_hour: int = 17
    default_duration_minutes: int = 30

    @classmethod
    def from_env(cls) -> "SchedulingSettings":
        return cls(
            open_hour=_env_int("BUSINESS_OPEN_HOUR", 9),
            close_hour=_env_int("BUSINESS_CLOSE_HOUR", 17),
            default_duration_minutes=_env_int("DEFAULT_SLOT_MINUTES", 30),
        )


@dataclass
class NotificationSettings:
    """Dispatcher and reminder scanner tuning."""

    enabled: bool = True
    interval_seconds: float = 30.0
    batch_size: int = 10
    max_retries: int = 3
    stale_after_seconds: int = 600
    reminder_hours: int = 24
    reminder_interval_seconds: float = 3600.0
    reminder_startup_delay_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "NotificationSettings":
        return cls(
            enabled=_env_bool("NOTIFICATIONS_WORKERS_ENABLED", "true"),
            interval_seconds=float(os.getenv("NOTIFICATION_INTERVAL_SECONDS", "30")),
            batch_size=_env_int("NOTIFICATION_BATCH_SIZE", 10),
            max_retries=_env_int("NOTIFICATION_MAX_RETRIES", 3),
            stale_after_seconds=_env_int("NOTIFICATION_STALE_AFTER_SECONDS", 600),
            reminder_hours=_env_int("REMINDER_HOURS", 24),
            reminder_interval_seconds=float(os.getenv("REMINDER_INTERVAL_SECONDS", "3600")),
            reminder_startup_delay_seconds=float(os.getenv("REMINDER_STARTUP_DELAY_SECONDS", "10")),
        )


@dataclass
class SmtpSettings:
    host: str = ""
    port: int = 587
    username: str = ""
    password: str = ""
    from_email: str = ""
    from_name: str = "Barberly"
    use_tls: bool = True

    @classmethod
    def from_env(cls) -> "SmtpSettings":
        return cls(
            host=os.getenv("SMTP_HOST", ""),
            port=_env_int("SMTP_PORT", 587),
            username=os.getenv("SMTP_USERNAME", ""),
            password=os.getenv("SMTP_PASSWORD", ""),
            from_email=os.getenv("SMTP_FROM_EMAIL", ""),
            from_name=os.getenv("SMTP_FROM_NAME", "Barberly"),
            use_tls=_env_bool("SMTP_USE_TLS", "true"),
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.host and self.from_email)


@dataclass
class ObservabilitySettings:
    service_name: str = "barberly-backend"
    log_level: str = "INFO"
    structured_logs: bool = True
    otlp_endpoint: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ObservabilitySettings":
        return cls(
            service_name=os.getenv("OTEL_SERVICE_NAME", "barberly-backend"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            structured_logs=_env_bool("LOG_STRUCTURED", "true"),
            otlp_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT") or None,
        )


@dataclass
class AppSettings:
    """All settings for one process."""

    cache: CacheSettings = field(default_factory=CacheSettings)
    scheduling: SchedulingSettings = field(default_factory=SchedulingSettings)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    smtp: SmtpSettings = field(default_factory=SmtpSettings)
    observability: ObservabilitySettings = field(default_factory=ObservabilitySettings)

    @classmethod
    def from_env(cls) -> "AppSettings":
        return cls(
            cache=CacheSettings.from_env(),
            scheduling=SchedulingSettings.from_env(),
            notifications=NotificationSettings.from_env(),
            smtp=SmtpSettings.from_env(),
            observability=ObservabilitySettings.from_env(),
        )
