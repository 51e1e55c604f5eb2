"""
Service Container

Builds every repository, service and worker for one process from a
connected database and the settings. The API and the standalone worker
runner both start from here, and tests build one over in-memory SQLite.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .cache import CacheBackend, create_cache_backend
from .clock import Clock, utc_now
from .config import AppSettings
from .database import DatabaseAdapter
from .directory import BarberRepository, BarberShopRepository, ServiceRepository, UserRepository
from .events import EventDispatcher
from .notifications import (
    EmailSender,
    NotificationComposer,
    NotificationDispatcher,
    OutboxEventHandlers,
    ReminderScanner,
    SmtpEmailSender,
    SqlNotificationOutboxRepository,
)
from .scheduling import (
    AvailabilityCalculator,
    AvailabilityService,
    BookingService,
    CancellationService,
    RescheduleService,
    SlotCache,
    SqlAppointmentRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class Container:
    db: DatabaseAdapter
    settings: AppSettings
    cache_backend: CacheBackend

    users: UserRepository
    shops: BarberShopRepository
    barbers: BarberRepository
    services: ServiceRepository
    appointments: SqlAppointmentRepository
    outbox: SqlNotificationOutboxRepository

    slot_cache: SlotCache
    events: EventDispatcher
    availability: AvailabilityService
    booking: BookingService
    cancellation: CancellationService
    reschedule: RescheduleService

    composer: NotificationComposer
    dispatcher: NotificationDispatcher
    reminders: ReminderScanner

    @classmethod
    def build(
        cls,
        db: DatabaseAdapter,
        settings: Optional[AppSettings] = None,
        cache_backend: Optional[CacheBackend] = None,
        email_sender: Optional[EmailSender] = None,
        clock: Clock = utc_now,
    ) -> "Container":
        settings = settings or AppSettings()
        cache_backend = cache_backend or create_cache_backend(settings.cache)
        email_sender = email_sender or SmtpEmailSender(settings.smtp)

        users = UserRepository(db)
        shops = BarberShopRepository(db)
        barbers = BarberRepository(db)
        services = ServiceRepository(db)
        appointments = SqlAppointmentRepository(db)
        outbox = SqlNotificationOutboxRepository(db)

        slot_cache = SlotCache(cache_backend, settings.cache.ttl_seconds)
        events = EventDispatcher()

        composer = NotificationComposer(
            users, barbers, services, shops,
            max_retries=settings.notifications.max_retries,
            clock=clock,
        )
        OutboxEventHandlers(composer, outbox).register(events)

        calculator = AvailabilityCalculator(appointments, settings.scheduling)

        return cls(
            db=db,
            settings=settings,
            cache_backend=cache_backend,
            users=users,
            shops=shops,
            barbers=barbers,
            services=services,
            appointments=appointments,
            outbox=outbox,
            slot_cache=slot_cache,
            events=events,
            availability=AvailabilityService(barbers, services, calculator, slot_cache),
            booking=BookingService(appointments, barbers, services, slot_cache, events, clock),
            cancellation=CancellationService(appointments, slot_cache, events, clock),
            reschedule=RescheduleService(appointments, slot_cache, events, clock),
            composer=composer,
            dispatcher=NotificationDispatcher(outbox, email_sender, settings.notifications, clock),
            reminders=ReminderScanner(appointments, outbox, composer, settings.notifications, clock),
        )

    async def close(self) -> None:
        await self.cache_backend.close()
