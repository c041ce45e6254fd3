from room_concierge.booking.catalog import RoomCatalog
from room_concierge.booking.instant import InstantFinder
from room_concierge.booking.lifecycle import MeetingLifecycle
from room_concierge.booking.oracle import ConflictOracle, overlaps
from room_concierge.booking.recurring import RecurringBooker
from room_concierge.booking.resolver import SlotResolver
from room_concierge.booking.team import TeamAvailabilityScanner
from room_concierge.booking.transaction import BookingTransaction

__all__ = [
    "RoomCatalog",
    "InstantFinder",
    "MeetingLifecycle",
    "ConflictOracle",
    "overlaps",
    "RecurringBooker",
    "SlotResolver",
    "TeamAvailabilityScanner",
    "BookingTransaction",
]
