"""Commit-time validation and insertion of a booking."""

import logging
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from room_concierge.booking import formatting
from room_concierge.booking.catalog import RoomCatalog
from room_concierge.booking.oracle import ConflictOracle
from room_concierge.booking.resolver import build_window
from room_concierge.db.types import DatabaseInterface
from room_concierge.errors import BookingOverlapError, UnauthorizedError, ValidationError
from room_concierge.models import BookingResult, BookingStatus, Room

logger = logging.getLogger(__name__)


def require_user(user_id: Optional[int]) -> int:
    if user_id is None:
        raise UnauthorizedError("You must be signed in to book or change a meeting")
    return user_id


def clean_title(title: Optional[str]) -> Optional[str]:
    if title is None:
        return None
    return title.strip() or None


class BookingTransaction:
    """The single write path for new meetings.

    Availability is always re-checked here, even if a resolver approved the
    room moments earlier. The store re-checks again under a row lock and its
    exclusion constraint has the final word.
    """

    def __init__(
        self,
        db: DatabaseInterface,
        catalog: RoomCatalog,
        oracle: ConflictOracle,
        tz: ZoneInfo,
    ):
        self.db = db
        self.catalog = catalog
        self.oracle = oracle
        self.tz = tz

    async def commit(
        self,
        room_id: int,
        start: datetime,
        duration_minutes: int,
        user_id: Optional[int],
        title: Optional[str] = None,
    ) -> BookingResult:
        """Book ``room_id`` for ``[start, start + duration)``.

        Returns:
            BookingResult with CREATED, or CONFLICT listing what is in the way

        Raises:
            UnauthorizedError: No user
            ValidationError: Bad window, or the room is closed then
            NotFoundError: Unknown or inactive room
            StoreError: The store failed
        """
        owner = require_user(user_id)
        window = build_window(start, duration_minutes)
        room = await self.catalog.get(room_id)
        ensure_open(room, window.start, window.end, self.tz)

        conflicts = await self.oracle.find_conflicts(room.id, window.start, window.end)
        if conflicts:
            logger.info(
                f"Booking refused: room {room.id} has {len(conflicts)} conflict(s) "
                f"at {window.start.isoformat()}"
            )
            return self._result(BookingResult(BookingStatus.CONFLICT, conflicts=conflicts), room)

        try:
            meeting = await self.db.insert_meeting(
                room.id, owner, window.start, window.end, clean_title(title)
            )
        except BookingOverlapError:
            logger.warning(
                f"Room {room.id} was booked concurrently for {window.start.isoformat()}"
            )
            return self._result(BookingResult(BookingStatus.CONFLICT), room)

        logger.info(
            f"Meeting {meeting.id} created in room {room.id} for user {owner} "
            f"at {window.start.isoformat()}"
        )
        return self._result(BookingResult(BookingStatus.CREATED, meeting=meeting), room)

    def _result(self, result: BookingResult, room: Room) -> BookingResult:
        result.summary = formatting.summarize_booking(result, self.tz, room.name)
        return result


def ensure_open(room: Room, start: datetime, end: datetime, tz: ZoneInfo) -> None:
    if not room.is_open_during(start, end, tz):
        raise ValidationError(f"{room.name} is closed at that time")
