"""Team-wide availability over a business-hours grid."""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from room_concierge.booking import formatting
from room_concierge.booking.oracle import person_is_busy
from room_concierge.booking.resolver import SlotResolver
from room_concierge.config import BookingConfig, WorkingHoursConfig
from room_concierge.db.types import DatabaseInterface
from room_concierge.errors import StoreError, ValidationError
from room_concierge.models import (
    Meeting,
    MemberSelector,
    SearchCriteria,
    Slot,
    TeamScan,
    TimeWindow,
    User,
)
from room_concierge.timeutil import (
    UTC,
    is_workday,
    iter_days,
    local_datetime,
    parse_hhmm,
    require_aware,
)

logger = logging.getLogger(__name__)


def availability_percent(member_count: int, unavailable_count: int) -> float:
    return (member_count - unavailable_count) / member_count * 100


class TeamAvailabilityScanner:
    """Finds the slots where most of a team is free, with a room attached."""

    def __init__(
        self,
        db: DatabaseInterface,
        resolver: SlotResolver,
        working_hours: WorkingHoursConfig,
        booking: BookingConfig,
        tz: ZoneInfo,
    ):
        self.db = db
        self.resolver = resolver
        self.working_hours = working_hours
        self.booking = booking
        self.tz = tz

    def business_grid(
        self, date_from: date, date_to: date, duration_minutes: int
    ) -> list[TimeWindow]:
        """Every ``duration_minutes`` window starting on the step grid of each workday.

        Windows are built in local wall-clock time and must end by the end of
        working hours.
        """
        day_start = parse_hhmm(self.working_hours.start)
        day_end = parse_hhmm(self.working_hours.end)
        step = timedelta(minutes=self.booking.team_slot_step_minutes)
        duration = timedelta(minutes=duration_minutes)

        windows = []
        for day in iter_days(date_from, date_to):
            if not is_workday(day, self.working_hours.workdays):
                continue
            close = local_datetime(day, day_end, self.tz)
            slot_start = local_datetime(day, day_start, self.tz)
            while slot_start + duration <= close:
                windows.append(
                    TimeWindow(
                        slot_start.astimezone(UTC), (slot_start + duration).astimezone(UTC)
                    )
                )
                slot_start += step
        return windows

    async def resolve_members(self, members: MemberSelector) -> list[User]:
        """Organization members plus explicit ids, deduplicated and ordered by id."""
        found: dict[int, User] = {}
        if members.organization:
            for user in await self.db.list_users_by_organization(members.organization):
                found[user.id] = user
        if members.user_ids:
            for user in await self.db.list_users(list(members.user_ids)):
                found[user.id] = user
        return [found[user_id] for user_id in sorted(found)]

    def _validate(
        self,
        date_from: date,
        date_to: date,
        duration_minutes: int,
        min_availability_percent: float,
    ) -> None:
        if date_to < date_from:
            raise ValidationError(
                f"End date {date_to.isoformat()} is before start date {date_from.isoformat()}"
            )
        days = (date_to - date_from).days + 1
        if days > self.booking.team_max_days:
            raise ValidationError(
                f"Date range covers {days} days; at most {self.booking.team_max_days} are allowed"
            )
        if not isinstance(duration_minutes, int) or duration_minutes <= 0:
            raise ValidationError(
                f"Duration must be a positive number of minutes (got {duration_minutes})"
            )
        if not 0 <= min_availability_percent <= 100:
            raise ValidationError(
                f"Minimum availability must be between 0 and 100 (got {min_availability_percent})"
            )

    async def scan(
        self,
        members: MemberSelector,
        date_from: date,
        date_to: date,
        duration_minutes: int,
        min_availability_percent: float,
        equipment: Iterable[str] = (),
        team_size: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> TeamScan:
        """Rank grid slots by the share of members who are free.

        Args:
            members: Organization tag and/or explicit user ids
            date_from: First day of the range (inclusive)
            date_to: Last day of the range (inclusive)
            duration_minutes: Meeting length
            min_availability_percent: Slots below this share are dropped
            equipment: Equipment the attached room must have
            team_size: Headcount to assume when no member resolves
            now: Slots starting earlier are skipped

        Returns:
            TeamScan with at most ``booking.team_max_results`` slots

        Raises:
            ValidationError: Bad range, duration or threshold, or no members
                and no team size
            StoreError: No member calendar could be read
        """
        self._validate(date_from, date_to, duration_minutes, min_availability_percent)
        if now is None:
            now = datetime.now(UTC)
        require_aware(now, "now")

        range_window = TimeWindow(
            local_datetime(date_from, parse_hhmm(self.working_hours.start), self.tz).astimezone(UTC),
            local_datetime(date_to, parse_hhmm(self.working_hours.end), self.tz).astimezone(UTC),
        )

        users = [] if members.is_empty else await self.resolve_members(members)
        calendars: dict[int, list[Meeting]] = {}
        unverified: list[int] = []
        assumed = False

        if users:
            headcount = len(users)
            last_error: Optional[StoreError] = None
            for user in users:
                try:
                    calendars[user.id] = await self.db.find_user_meetings(
                        user.id, range_window.start, range_window.end
                    )
                except StoreError as e:
                    logger.warning(
                        f"Leaving {user.display_name} ({user.id}) out of the team scan: {e}"
                    )
                    unverified.append(user.id)
                    last_error = e
            if not calendars:
                raise StoreError(
                    f"Could not read the calendar of any of {headcount} team member(s)",
                    last_error,
                )
            member_count = len(calendars)
        else:
            if team_size is None:
                raise ValidationError(
                    "No team members were found; give a team size to search anyway"
                )
            if team_size < 1:
                raise ValidationError("Team size must be at least 1")
            logger.info(f"No members resolved for {members}; assuming a team of {team_size}")
            headcount = member_count = team_size
            assumed = True

        candidates: list[Slot] = []
        for window in self.business_grid(date_from, date_to, duration_minutes):
            if window.start < now:
                continue
            unavailable = sum(
                1
                for meetings in calendars.values()
                if person_is_busy(meetings, window.start, window.end)
            )
            percent = availability_percent(member_count, unavailable)
            if percent < min_availability_percent:
                continue
            candidates.append(
                Slot(
                    start=window.start,
                    end=window.end,
                    member_count=member_count,
                    unavailable_count=unavailable,
                    availability_percent=percent,
                )
            )

        candidates.sort(key=lambda s: (-s.availability_percent, s.start))
        slots = candidates[: self.booking.team_max_results]

        criteria = SearchCriteria.build(min_capacity=headcount, equipment=equipment)
        room_errors = 0
        last_room_error: Optional[StoreError] = None
        for slot in slots:
            try:
                resolution = await self.resolver.resolve(
                    criteria, slot.start, duration_minutes
                )
            except StoreError as e:
                logger.warning(f"No room check for slot {slot.start.isoformat()}: {e}")
                slot.room_unverified = True
                room_errors += 1
                last_room_error = e
                continue
            if resolution.best_room:
                slot.room = resolution.best_room.room
                slot.bookable = True
            elif resolution.unverified_room_ids:
                # Some candidate rooms could not be checked; one of them may be free.
                slot.room_unverified = True

        if slots and room_errors == len(slots):
            raise StoreError(
                f"Could not check room availability for any of {len(slots)} slot(s)",
                last_room_error,
            )

        scan = TeamScan(
            slots=slots,
            member_count=member_count,
            window=range_window,
            assumed_team_size=assumed,
            unverified_user_ids=unverified,
        )
        scan.summary = formatting.summarize_team_scan(scan, min_availability_percent, self.tz)
        logger.info(
            f"Team scan {date_from.isoformat()}..{date_to.isoformat()} for {member_count} "
            f"member(s): {len(candidates)} qualifying slot(s), kept {len(slots)}"
        )
        return scan
