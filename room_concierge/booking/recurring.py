"""Recurring series: one independent booking per occurrence."""

import logging
from datetime import date, datetime, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from room_concierge.booking import formatting
from room_concierge.booking.catalog import RoomCatalog
from room_concierge.booking.resolver import build_window
from room_concierge.booking.transaction import BookingTransaction, require_user
from room_concierge.config import BookingConfig, WorkingHoursConfig
from room_concierge.errors import StoreError, ValidationError
from room_concierge.models import (
    BookingStatus,
    FailedOccurrence,
    RecurrencePattern,
    SeriesResult,
)
from room_concierge.timeutil import UTC, local_datetime, next_workday, require_aware

logger = logging.getLogger(__name__)


def _step(pattern: RecurrencePattern, index: int) -> relativedelta:
    if pattern is RecurrencePattern.WEEKLY:
        return relativedelta(weeks=index)
    if pattern is RecurrencePattern.BIWEEKLY:
        return relativedelta(weeks=2 * index)
    if pattern is RecurrencePattern.MONTHLY:
        return relativedelta(months=index)
    raise ValueError(f"No calendar step for {pattern}")


def occurrence_dates(
    first: date, pattern: RecurrencePattern, occurrences: int, workdays: list[int]
) -> list[date]:
    """Calendar dates of a series.

    Daily series walk consecutive workdays. Other patterns step from the first
    date (so a monthly series on the 31st lands on each month's last day) and
    move any non-workday to the following workday.
    """
    if pattern is RecurrencePattern.DAILY:
        days = [next_workday(first, workdays)]
        while len(days) < occurrences:
            days.append(next_workday(days[-1] + timedelta(days=1), workdays))
        return days
    return [
        next_workday(first + _step(pattern, i), workdays) for i in range(occurrences)
    ]


def generate_occurrences(
    first_start: datetime,
    pattern: RecurrencePattern,
    occurrences: int,
    tz: ZoneInfo,
    workdays: list[int],
) -> list[datetime]:
    """Occurrence start instants in UTC.

    Each occurrence keeps the local wall-clock time of the first one, so a
    09:00 series stays at 09:00 across DST changes.
    """
    require_aware(first_start, "start")
    local_first = first_start.astimezone(tz)
    wall_clock = local_first.time()
    return [
        local_datetime(day, wall_clock, tz).astimezone(UTC)
        for day in occurrence_dates(local_first.date(), pattern, occurrences, workdays)
    ]


class RecurringBooker:
    def __init__(
        self,
        catalog: RoomCatalog,
        transaction: BookingTransaction,
        working_hours: WorkingHoursConfig,
        booking: BookingConfig,
        tz: ZoneInfo,
    ):
        self.catalog = catalog
        self.transaction = transaction
        self.working_hours = working_hours
        self.booking = booking
        self.tz = tz

    async def book_series(
        self,
        room_id: int,
        first_start: datetime,
        duration_minutes: int,
        pattern: Union[RecurrencePattern, str],
        occurrences: int,
        user_id: Optional[int],
        title: Optional[str] = None,
    ) -> SeriesResult:
        """Book every occurrence independently; a blocked date never undoes the others.

        Raises:
            UnauthorizedError: No user
            ValidationError: Bad pattern, count or window
            NotFoundError: Unknown room
            StoreError: Every occurrence failed on the store
        """
        require_user(user_id)
        if isinstance(pattern, str):
            try:
                pattern = RecurrencePattern.from_string(pattern)
            except ValueError as e:
                raise ValidationError(str(e))
        cap = self.booking.recurring_max_occurrences
        if not isinstance(occurrences, int) or not 1 <= occurrences <= cap:
            raise ValidationError(
                f"A series needs between 1 and {cap} occurrences (got {occurrences})"
            )
        build_window(first_start, duration_minutes)
        room = await self.catalog.get(room_id)

        starts = generate_occurrences(
            first_start, pattern, occurrences, self.tz, self.working_hours.workdays
        )
        result = SeriesResult(pattern=pattern)
        store_failures = 0
        last_error: Optional[StoreError] = None

        for start in starts:
            try:
                booked = await self.transaction.commit(
                    room.id, start, duration_minutes, user_id, title
                )
            except ValidationError as e:
                result.failed.append(FailedOccurrence(start=start, reason=e.message, kind=e.kind))
                continue
            except StoreError as e:
                logger.error(f"Occurrence {start.isoformat()} of series in room {room.id} failed: {e}")
                result.failed.append(
                    FailedOccurrence(
                        start=start,
                        reason="The booking system could not be reached",
                        kind="store_error",
                    )
                )
                store_failures += 1
                last_error = e
                continue
            if booked.status is BookingStatus.CREATED and booked.meeting:
                result.created.append(booked.meeting)
            else:
                result.failed.append(
                    FailedOccurrence(
                        start=start,
                        reason=f"{room.name} is already booked",
                        conflicts=tuple(booked.conflicts),
                    )
                )

        if store_failures == len(starts):
            raise StoreError(
                f"None of the {len(starts)} occurrence(s) could be booked", last_error
            )

        result.summary = formatting.summarize_series(result, self.tz)
        logger.info(
            f"{pattern.value} series in room {room.id}: {len(result.created)} created, "
            f"{len(result.failed)} failed"
        )
        return result
