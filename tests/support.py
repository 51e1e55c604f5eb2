"""Test doubles and time helpers shared across the suite."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Set, Tuple

from barberly.core.cache import CacheBackend
from barberly.core.notifications import EmailSender

# Friday noon UTC; the next business day starts 2024-06-01 09:00
NOW = datetime(2024, 5, 31, 12, 0, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0, day: int = 1) -> datetime:
    """A UTC instant in June 2024."""
    return datetime(2024, 6, day, hour, minute, tzinfo=timezone.utc)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeEmailSender(EmailSender):
    """Records every send; fails for listed recipients."""

    def __init__(self):
        self.sent: List[Tuple[str, str, str]] = []
        self.fail_for: Set[str] = set()
        self.raise_for: Set[str] = set()

    async def send_email(self, to: str, subject: str, html_body: str) -> bool:
        if to in self.raise_for:
            raise TimeoutError("SMTP timed out")
        if to in self.fail_for:
            return False
        self.sent.append((to, subject, html_body))
        return True


class FailingCacheBackend(CacheBackend):
    """Every call raises, as an unreachable Redis would."""

    def __init__(self):
        self.calls = 0

    async def get(self, key: str) -> Optional[str]:
        self.calls += 1
        raise ConnectionError("cache unavailable")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.calls += 1
        raise ConnectionError("cache unavailable")

    async def delete(self, *keys: str) -> None:
        self.calls += 1
        raise ConnectionError("cache unavailable")
