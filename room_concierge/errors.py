"""Error taxonomy for the booking engine.

Conflicts are not errors: resolvers and transactions return them as regular
result variants. The exceptions below cover the terminal and infrastructure
failures that callers must be able to tell apart.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for all booking engine errors."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(BookingError):
    """A room, meeting or user id does not resolve."""

    kind = "not_found"

    def __init__(self, entity: str, entity_id: object):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class UnauthorizedError(BookingError):
    """The caller does not own the meeting, or no user was supplied."""

    kind = "unauthorized"


class ValidationError(BookingError):
    """Malformed input rejected before any store access."""

    kind = "invalid"


class StoreError(BookingError):
    """The reservation store failed; availability is unknown."""

    kind = "store_error"
    retryable = False

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class StoreTimeoutError(StoreError):
    """A store call exceeded its time budget. Safe to retry."""

    kind = "retryable"
    retryable = True


class BookingOverlapError(BookingError):
    """The store refused a write because it overlaps an existing meeting."""

    kind = "conflict"

    def __init__(self, room_id: int, message: Optional[str] = None):
        super().__init__(message or f"Room {room_id} is already booked in that window")
        self.room_id = room_id
