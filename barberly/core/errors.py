"""
Domain Exceptions

Raised at the point an invariant is violated and propagated unchanged to
the HTTP boundary, which maps each class to a status code.
"""

from typing import Optional


class DomainError(Exception):
    """Base class for every error the domain raises on purpose."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(DomainError):
    """A referenced barber, service or appointment does not exist."""

    def __init__(self, resource: str, resource_id: Optional[object] = None):
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(DomainError):
    """The requested window overlaps a live booking for the same barber."""


class ConcurrencyError(ConflictError):
    """The row changed between read and write; the caller should re-read."""

    def __init__(self, message: str = "Appointment was modified concurrently"):
        super().__init__(message)


class InvalidStateError(DomainError):
    """The operation is not allowed in the entity's current lifecycle state."""


class ValidationError(DomainError):
    """Malformed input rejected when an entity is built or mutated."""
