"""Rooms that are free right now."""

import logging
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from room_concierge.booking import formatting
from room_concierge.booking.catalog import RoomCatalog
from room_concierge.booking.oracle import ConflictOracle
from room_concierge.booking.resolver import build_window
from room_concierge.config import BookingConfig, WorkingHoursConfig
from room_concierge.db.types import DatabaseInterface
from room_concierge.errors import StoreError
from room_concierge.models import InstantOption, InstantResult, Room, SearchCriteria
from room_concierge.timeutil import (
    UTC,
    is_workday,
    local_datetime,
    parse_hhmm,
    require_aware,
    round_up,
)

logger = logging.getLogger(__name__)


class InstantFinder:
    def __init__(
        self,
        db: DatabaseInterface,
        catalog: RoomCatalog,
        oracle: ConflictOracle,
        working_hours: WorkingHoursConfig,
        booking: BookingConfig,
        tz: ZoneInfo,
    ):
        self.db = db
        self.catalog = catalog
        self.oracle = oracle
        self.working_hours = working_hours
        self.booking = booking
        self.tz = tz

    def within_business_hours(self, start: datetime) -> bool:
        """Whether ``start`` falls on a workday between opening and closing."""
        local_start = start.astimezone(self.tz)
        day = local_start.date()
        if not is_workday(day, self.working_hours.workdays):
            return False
        opens = local_datetime(day, parse_hhmm(self.working_hours.start), self.tz)
        closes = local_datetime(day, parse_hhmm(self.working_hours.end), self.tz)
        return opens <= local_start < closes

    def business_day_end(self, room: Room, start: datetime) -> datetime:
        """End of the business day containing ``start``, capped by room closing."""
        day = start.astimezone(self.tz).date()
        end_of_day = parse_hhmm(self.working_hours.end)
        if room.closes_at and room.closes_at < end_of_day:
            end_of_day = room.closes_at
        return local_datetime(day, end_of_day, self.tz).astimezone(UTC)

    async def find(
        self,
        criteria: SearchCriteria,
        duration_minutes: int,
        now: Optional[datetime] = None,
    ) -> InstantResult:
        """Rooms free from the next tick for at least ``duration_minutes``.

        Outside business hours nothing is offered. A room's free window runs
        until its next meeting, or the end of the business day when nothing
        else is booked. Smallest rooms come first so large rooms stay
        available for large groups.
        """
        if now is None:
            now = datetime.now(UTC)
        require_aware(now, "now")
        start = round_up(now, self.booking.instant_tick_minutes)
        window = build_window(start, duration_minutes)

        result = InstantResult(start=start, duration_minutes=duration_minutes)
        if not self.within_business_hours(start):
            result.outside_business_hours = True
            result.summary = formatting.summarize_instant(result, self.tz)
            logger.info(f"Instant lookup at {start.isoformat()} is outside business hours")
            return result

        candidates = await self.catalog.search(criteria)
        qualified: list[InstantOption] = []
        last_error: Optional[StoreError] = None
        checked = 0

        for room in candidates:
            if room.id in criteria.exclude_room_ids:
                continue
            if not room.is_open_during(window.start, window.end, self.tz):
                continue
            try:
                if await self.oracle.has_conflict(room.id, window.start, window.end):
                    checked += 1
                    continue
                next_start = await self.db.next_meeting_start(room.id, start)
            except StoreError as e:
                logger.warning(f"Skipping room {room.id} for instant lookup: {e}")
                result.unverified_room_ids.append(room.id)
                last_error = e
                continue
            checked += 1

            free_until = self.business_day_end(room, start)
            if next_start is not None and next_start < free_until:
                free_until = next_start
            free_minutes = int((free_until - start) / timedelta(minutes=1))
            if free_minutes < duration_minutes:
                continue
            qualified.append(
                InstantOption(room=room, free_until=free_until, free_minutes=free_minutes)
            )

        if checked == 0 and last_error is not None:
            raise StoreError(
                f"Could not verify availability of any of {len(candidates)} room(s)",
                last_error,
            )

        qualified.sort(key=lambda opt: (opt.room.capacity, opt.room.id))
        result.options = qualified[: self.booking.instant_max_results]
        result.summary = formatting.summarize_instant(result, self.tz)
        logger.info(
            f"Instant lookup at {start.isoformat()} for {duration_minutes} min: "
            f"{len(qualified)} free room(s)"
        )
        return result
