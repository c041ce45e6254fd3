"""Update, cancel and list meetings on behalf of their owner."""

import logging
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from room_concierge.booking import formatting
from room_concierge.booking.catalog import RoomCatalog
from room_concierge.booking.oracle import ConflictOracle, validate_interval
from room_concierge.booking.transaction import clean_title, ensure_open, require_user
from room_concierge.db.types import DatabaseInterface
from room_concierge.errors import (
    BookingOverlapError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from room_concierge.models import BookingResult, BookingStatus, Meeting, MeetingChanges
from room_concierge.timeutil import UTC, require_aware

logger = logging.getLogger(__name__)


def validate_changes(changes: MeetingChanges) -> None:
    if changes.is_empty:
        raise ValidationError("Nothing to change: give a new time, duration, room or title")
    if changes.start_time is not None:
        require_aware(changes.start_time, "start")
    if changes.end_time is not None:
        require_aware(changes.end_time, "end")
    if changes.duration_minutes is not None and (
        not isinstance(changes.duration_minutes, int) or changes.duration_minutes <= 0
    ):
        raise ValidationError(
            f"Duration must be a positive number of minutes (got {changes.duration_minutes})"
        )


def new_interval(meeting: Meeting, changes: MeetingChanges) -> tuple[datetime, datetime]:
    """Effective interval after ``changes``.

    A new start alone keeps the duration, a new end alone keeps the start, and
    an explicit duration wins over an explicit end.
    """
    start = changes.start_time or meeting.start_time
    if changes.duration_minutes is not None:
        end = start + timedelta(minutes=changes.duration_minutes)
    elif changes.end_time is not None:
        end = changes.end_time
    elif changes.start_time is not None:
        end = start + (meeting.end_time - meeting.start_time)
    else:
        end = meeting.end_time
    validate_interval(start, end)
    return start, end


class MeetingLifecycle:
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

    async def load_owned(self, meeting_id: int, user_id: int) -> Meeting:
        meeting = await self.db.get_meeting(meeting_id)
        if meeting is None:
            raise NotFoundError("Meeting", meeting_id)
        if meeting.user_id != user_id:
            logger.warning(
                f"User {user_id} tried to modify meeting {meeting_id} owned by {meeting.user_id}"
            )
            raise UnauthorizedError(f"Meeting {meeting_id} belongs to someone else")
        return meeting

    async def update(
        self, meeting_id: int, user_id: Optional[int], changes: MeetingChanges
    ) -> BookingResult:
        """Apply ``changes`` to a meeting the user owns.

        The meeting's own row never counts as a conflict. A title-only change
        does not consult the oracle.
        """
        owner = require_user(user_id)
        validate_changes(changes)
        meeting = await self.load_owned(meeting_id, owner)

        start, end = new_interval(meeting, changes)
        room_id = changes.room_id if changes.room_id is not None else meeting.room_id
        title = clean_title(changes.title) if changes.title is not None else meeting.title
        room_name = meeting.room_name

        if (start, end, room_id) != (meeting.start_time, meeting.end_time, meeting.room_id):
            room = await self.catalog.get(room_id)
            room_name = room.name
            ensure_open(room, start, end, self.tz)
            conflicts = await self.oracle.find_conflicts(
                room.id, start, end, exclude_meeting_id=meeting.id
            )
            if conflicts:
                logger.info(
                    f"Update of meeting {meeting.id} refused: {len(conflicts)} conflict(s)"
                )
                return self._result(
                    BookingResult(BookingStatus.CONFLICT, conflicts=conflicts), room_name
                )

        try:
            updated = await self.db.update_meeting(meeting.id, room_id, start, end, title)
        except BookingOverlapError:
            logger.warning(f"Meeting {meeting.id} lost a concurrent race for room {room_id}")
            return self._result(BookingResult(BookingStatus.CONFLICT), room_name)

        logger.info(f"Meeting {meeting.id} updated by user {owner}")
        return self._result(BookingResult(BookingStatus.UPDATED, meeting=updated), room_name)

    async def cancel(self, meeting_id: int, user_id: Optional[int]) -> BookingResult:
        owner = require_user(user_id)
        meeting = await self.load_owned(meeting_id, owner)
        if not await self.db.delete_meeting(meeting.id):
            raise NotFoundError("Meeting", meeting_id)
        logger.info(f"Meeting {meeting.id} cancelled by user {owner}")
        return self._result(
            BookingResult(BookingStatus.CANCELLED, meeting=meeting), meeting.room_name
        )

    async def list_for_user(
        self,
        user_id: Optional[int],
        upcoming_only: bool = True,
        now: Optional[datetime] = None,
    ) -> list[Meeting]:
        """The user's meetings ordered by start; only unfinished ones by default."""
        owner = require_user(user_id)
        since = None
        if upcoming_only:
            since = now or datetime.now(UTC)
            require_aware(since, "now")
        return await self.db.list_user_meetings(owner, since)

    def _result(self, result: BookingResult, room_name: Optional[str]) -> BookingResult:
        result.summary = formatting.summarize_booking(result, self.tz, room_name)
        return result
