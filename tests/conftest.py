"""
Shared fixtures: an in-memory SQLite database per test, a controllable
clock, a seeded directory, and fakes for the e-mail and cache backends.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

import pytest
import pytest_asyncio

from barberly.core.cache import CacheBackend, MemoryCacheBackend
from barberly.core.config import AppSettings
from barberly.core.container import Container
from barberly.core.database import DatabaseAdapter, DatabaseConfig, init_schema
from barberly.core.directory import Barber, BarberShop, Service, User
from tests.support import FakeEmailSender, FixedClock


@dataclass
class Directory:
    user: User
    shop: BarberShop
    barber: Barber
    service: Service
    long_service: Service
    others: List[Barber] = field(default_factory=list)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings()


@pytest_asyncio.fixture
async def db():
    adapter = DatabaseAdapter(DatabaseConfig.sqlite_memory())
    await adapter.connect()
    await init_schema(adapter)
    yield adapter
    await adapter.disconnect()


@pytest.fixture
def cache_backend() -> CacheBackend:
    return MemoryCacheBackend()


@pytest.fixture
def container(db, settings, cache_backend, email_sender, clock) -> Container:
    return Container.build(
        db,
        settings,
        cache_backend=cache_backend,
        email_sender=email_sender,
        clock=clock,
    )


@pytest_asyncio.fixture
async def directory(container) -> Directory:
    user = User(email="ali@example.com", full_name="Ali Customer")
    shop = BarberShop(name="Corner Cuts", street="1 Main St", city="Springfield")
    barber = Barber(barber_shop_id=shop.id, full_name="Bob Barber", email="bob@example.com")
    other = Barber(barber_shop_id=shop.id, full_name="Cem Barber", email="cem@example.com")
    service = Service(
        barber_shop_id=shop.id, name="Haircut", duration_minutes=30, price=Decimal("25.00")
    )
    long_service = Service(
        barber_shop_id=shop.id, name="Cut and Beard", duration_minutes=60, price=Decimal("40.00")
    )

    await container.users.add(user)
    await container.shops.add(shop)
    await container.barbers.add(barber)
    await container.barbers.add(other)
    await container.services.add(service)
    await container.services.add(long_service)

    return Directory(
        user=user,
        shop=shop,
        barber=barber,
        service=service,
        long_service=long_service,
        others=[other],
    )
