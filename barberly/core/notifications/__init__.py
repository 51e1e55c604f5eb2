from .dispatcher import NotificationDispatcher
from .email import EmailSender, SmtpEmailSender
from .handlers import NotificationComposer, OutboxEventHandlers, reminder_dedupe_key
from .lifecycle import notification_workers
from .models import NotificationEventType, NotificationOutbox, NotificationStatus
from .reminders import ReminderScanner
from .repository import NotificationOutboxRepository, SqlNotificationOutboxRepository
from .worker import PeriodicWorker

__all__ = [
    "EmailSender",
    "NotificationComposer",
    "NotificationDispatcher",
    "NotificationEventType",
    "NotificationOutbox",
    "NotificationOutboxRepository",
    "NotificationStatus",
    "OutboxEventHandlers",
    "PeriodicWorker",
    "ReminderScanner",
    "SmtpEmailSender",
    "SqlNotificationOutboxRepository",
    "notification_workers",
    "reminder_dedupe_key",
]
