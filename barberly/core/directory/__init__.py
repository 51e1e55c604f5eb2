from .models import Barber, BarberShop, Service, User
from .repository import (
    BarberRepository,
    BarberShopRepository,
    DirectoryRepository,
    ServiceRepository,
    UserRepository,
)

__all__ = [
    "Barber",
    "BarberShop",
    "Service",
    "User",
    "BarberRepository",
    "BarberShopRepository",
    "DirectoryRepository",
    "ServiceRepository",
    "UserRepository",
]
