"""Booking service facade shared by the assistant tools and the HTTP API.

Every public method returns a JSON-ready dict with a ``status`` and a single
``summary``. Engine exceptions are turned into error payloads here, so
callers get a distinct status and message per failure kind.
"""

import logging
from datetime import date, datetime
from typing import Any, Awaitable, Optional

from room_concierge.booking.catalog import RoomCatalog
from room_concierge.booking.formatting import summarize_meetings, summarize_search
from room_concierge.booking.instant import InstantFinder
from room_concierge.booking.lifecycle import MeetingLifecycle
from room_concierge.booking.oracle import ConflictOracle
from room_concierge.booking.recurring import RecurringBooker
from room_concierge.booking.resolver import SlotResolver
from room_concierge.booking.team import TeamAvailabilityScanner
from room_concierge.booking.transaction import BookingTransaction
from room_concierge.config import ServerConfig
from room_concierge.db.types import DatabaseInterface
from room_concierge.errors import BookingError, StoreError, ValidationError
from room_concierge.models import MeetingChanges, MemberSelector, Room, SearchCriteria
from room_concierge.timeutil import parse_date, parse_instant

logger = logging.getLogger(__name__)

DEFAULT_MIN_AVAILABILITY_PERCENT = 80.0


def error_payload(error: BookingError) -> dict[str, Any]:
    """Map an engine exception to a status and a user-facing explanation."""
    if error.kind == "not_found":
        summary = f"❌ {error.message}. Check the id or name and try again."
    elif error.kind == "unauthorized":
        summary = f"🔒 {error.message}."
    elif error.kind == "invalid":
        summary = f"⚠️ Invalid request: {error.message}"
    elif error.kind == "retryable":
        summary = (
            "⏳ The booking system took too long to answer, so availability is "
            "unknown. Please try again in a moment."
        )
    elif error.kind == "conflict":
        summary = f"❌ {error.message}. Please pick another room or time."
    else:
        summary = (
            "❌ The booking system is unavailable right now and availability "
            "could not be verified. Nothing was booked."
        )
    return {
        "status": error.kind,
        "error": type(error).__name__,
        "retryable": isinstance(error, StoreError) and error.retryable,
        "summary": summary,
    }


class BookingService:
    """Wires the booking engine to one store and one configuration."""

    def __init__(self, db: DatabaseInterface, config: ServerConfig):
        self.db = db
        self.config = config
        self.tz = config.tz

        self.catalog = RoomCatalog(db)
        self.oracle = ConflictOracle(db)
        self.resolver = SlotResolver(self.catalog, self.oracle, self.tz)
        self.transaction = BookingTransaction(db, self.catalog, self.oracle, self.tz)
        self.lifecycle = MeetingLifecycle(db, self.catalog, self.oracle, self.tz)
        self.instant_finder = InstantFinder(
            db, self.catalog, self.oracle, config.working_hours, config.booking, self.tz
        )
        self.team = TeamAvailabilityScanner(
            db, self.resolver, config.working_hours, config.booking, self.tz
        )
        self.recurring = RecurringBooker(
            self.catalog, self.transaction, config.working_hours, config.booking, self.tz
        )

    # ------------------------------------------------------------------
    # Boundary helpers
    # ------------------------------------------------------------------

    def duration(self, duration_minutes: Optional[int]) -> int:
        """Apply the conversational default and the configured bounds."""
        booking = self.config.booking
        if duration_minutes is None:
            return booking.default_duration_minutes
        if not booking.min_duration_minutes <= duration_minutes <= booking.max_duration_minutes:
            raise ValidationError(
                f"Duration must be between {booking.min_duration_minutes} and "
                f"{booking.max_duration_minutes} minutes (got {duration_minutes})"
            )
        return duration_minutes

    def instant(self, value: str) -> datetime:
        return parse_instant(value, self.tz)

    async def room_ref(self, room_id: Optional[int], room_name: Optional[str]) -> Room:
        if room_id is not None:
            return await self.catalog.get(room_id)
        if room_name:
            return await self.catalog.find_by_name(room_name)
        raise ValidationError("Give a room id or a room name")

    async def _run(self, operation: str, awaitable: Awaitable[dict[str, Any]]) -> dict[str, Any]:
        try:
            return await awaitable
        except BookingError as e:
            if isinstance(e, StoreError):
                logger.error(f"{operation} failed on the store: {e}")
            else:
                logger.info(f"{operation} rejected ({e.kind}): {e}")
            return error_payload(e)

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    async def search_rooms(
        self,
        min_capacity: Optional[int] = None,
        max_capacity: Optional[int] = None,
        equipment: Optional[list[str]] = None,
        location: Optional[str] = None,
        name: Optional[str] = None,
    ) -> dict[str, Any]:
        async def run() -> dict[str, Any]:
            criteria = SearchCriteria.build(
                min_capacity=min_capacity,
                max_capacity=max_capacity,
                equipment=equipment,
                location=location,
                name=name,
            )
            rooms = await self.catalog.search(criteria)
            return {
                "status": "found" if rooms else "no_match",
                "rooms": [room.to_dict() for room in rooms],
                "summary": summarize_search(rooms, criteria),
            }

        return await self._run("search_rooms", run())

    async def resolve_room(
        self,
        start: str,
        duration_minutes: Optional[int] = None,
        min_capacity: Optional[int] = None,
        max_capacity: Optional[int] = None,
        equipment: Optional[list[str]] = None,
        location: Optional[str] = None,
        name: Optional[str] = None,
        exclude_room_ids: Optional[list[int]] = None,
    ) -> dict[str, Any]:
        async def run() -> dict[str, Any]:
            criteria = SearchCriteria.build(
                min_capacity=min_capacity,
                max_capacity=max_capacity,
                equipment=equipment,
                location=location,
                name=name,
            )
            resolution = await self.resolver.resolve(
                criteria,
                self.instant(start),
                self.duration(duration_minutes),
                exclude_room_ids or (),
            )
            return resolution.to_dict()

        return await self._run("resolve_room", run())

    async def check_room(
        self,
        start: str,
        duration_minutes: Optional[int] = None,
        room_id: Optional[int] = None,
        room_name: Optional[str] = None,
    ) -> dict[str, Any]:
        async def run() -> dict[str, Any]:
            room = await self.room_ref(room_id, room_name)
            check = await self.resolver.check_room(
                room.id, self.instant(start), self.duration(duration_minutes)
            )
            return check.to_dict()

        return await self._run("check_room", run())

    async def find_instant_room(
        self,
        duration_minutes: Optional[int] = None,
        min_capacity: Optional[int] = None,
        equipment: Optional[list[str]] = None,
        location: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        async def run() -> dict[str, Any]:
            criteria = SearchCriteria.build(
                min_capacity=min_capacity, equipment=equipment, location=location
            )
            result = await self.instant_finder.find(
                criteria, self.duration(duration_minutes), now=now
            )
            return result.to_dict()

        return await self._run("find_instant_room", run())

    # ------------------------------------------------------------------
    # Meetings
    # ------------------------------------------------------------------

    async def book_room(
        self,
        user_id: Optional[int],
        start: str,
        duration_minutes: Optional[int] = None,
        room_id: Optional[int] = None,
        room_name: Optional[str] = None,
        title: Optional[str] = None,
    ) -> dict[str, Any]:
        async def run() -> dict[str, Any]:
            start_at = self.instant(start)
            duration = self.duration(duration_minutes)
            room = await self.room_ref(room_id, room_name)
            result = await self.transaction.commit(room.id, start_at, duration, user_id, title)
            return result.to_dict()

        return await self._run("book_room", run())

    async def update_meeting(
        self,
        user_id: Optional[int],
        meeting_id: int,
        start: Optional[str] = None,
        end: Optional[str] = None,
        duration_minutes: Optional[int] = None,
        room_id: Optional[int] = None,
        room_name: Optional[str] = None,
        title: Optional[str] = None,
    ) -> dict[str, Any]:
        async def run() -> dict[str, Any]:
            new_room_id = room_id
            if new_room_id is None and room_name:
                new_room_id = (await self.catalog.find_by_name(room_name)).id
            changes = MeetingChanges(
                start_time=self.instant(start) if start else None,
                end_time=self.instant(end) if end else None,
                duration_minutes=(
                    self.duration(duration_minutes) if duration_minutes is not None else None
                ),
                room_id=new_room_id,
                title=title,
            )
            result = await self.lifecycle.update(meeting_id, user_id, changes)
            return result.to_dict()

        return await self._run("update_meeting", run())

    async def cancel_meeting(self, user_id: Optional[int], meeting_id: int) -> dict[str, Any]:
        async def run() -> dict[str, Any]:
            result = await self.lifecycle.cancel(meeting_id, user_id)
            return result.to_dict()

        return await self._run("cancel_meeting", run())

    async def list_meetings(
        self, user_id: Optional[int], upcoming_only: bool = True
    ) -> dict[str, Any]:
        async def run() -> dict[str, Any]:
            meetings = await self.lifecycle.list_for_user(user_id, upcoming_only)
            return {
                "status": "found" if meetings else "empty",
                "meetings": [m.to_dict() for m in meetings],
                "summary": summarize_meetings(meetings, self.tz),
            }

        return await self._run("list_meetings", run())

    async def book_recurring(
        self,
        user_id: Optional[int],
        start: str,
        pattern: str,
        occurrences: int,
        duration_minutes: Optional[int] = None,
        room_id: Optional[int] = None,
        room_name: Optional[str] = None,
        title: Optional[str] = None,
    ) -> dict[str, Any]:
        async def run() -> dict[str, Any]:
            start_at = self.instant(start)
            duration = self.duration(duration_minutes)
            room = await self.room_ref(room_id, room_name)
            result = await self.recurring.book_series(
                room.id, start_at, duration, pattern, occurrences, user_id, title
            )
            return result.to_dict()

        return await self._run("book_recurring", run())

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    async def find_team_slots(
        self,
        date_from: str,
        date_to: Optional[str] = None,
        organization: Optional[str] = None,
        user_ids: Optional[list[int]] = None,
        duration_minutes: Optional[int] = None,
        min_availability_percent: Optional[float] = None,
        equipment: Optional[list[str]] = None,
        team_size: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        async def run() -> dict[str, Any]:
            first: date = parse_date(date_from)
            last: date = parse_date(date_to) if date_to else first
            threshold = (
                DEFAULT_MIN_AVAILABILITY_PERCENT
                if min_availability_percent is None
                else min_availability_percent
            )
            scan = await self.team.scan(
                MemberSelector(organization=organization, user_ids=tuple(user_ids or ())),
                first,
                last,
                self.duration(duration_minutes),
                threshold,
                equipment=equipment or (),
                team_size=team_size,
                now=now,
            )
            return scan.to_dict(self.tz)

        return await self._run("find_team_slots", run())
