"""Slot resolution: best free room for one requested window."""

import logging
from datetime import datetime
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from room_concierge.booking import formatting
from room_concierge.booking.catalog import RoomCatalog
from room_concierge.booking.oracle import ConflictOracle, validate_interval
from room_concierge.booking.scoring import rank
from room_concierge.errors import StoreError, ValidationError
from room_concierge.models import (
    Resolution,
    ResolveOutcome,
    Room,
    RoomCheck,
    SearchCriteria,
    TimeWindow,
)

logger = logging.getLogger(__name__)


def build_window(start: datetime, duration_minutes: int) -> TimeWindow:
    if not isinstance(duration_minutes, int) or duration_minutes <= 0:
        raise ValidationError(
            f"Duration must be a positive number of minutes (got {duration_minutes})"
        )
    window = TimeWindow.from_duration(start, duration_minutes)
    validate_interval(window.start, window.end)
    return window


class SlotResolver:
    """Composes catalog filtering, conflict checks and scoring."""

    def __init__(self, catalog: RoomCatalog, oracle: ConflictOracle, tz: ZoneInfo):
        self.catalog = catalog
        self.oracle = oracle
        self.tz = tz

    async def resolve(
        self,
        criteria: SearchCriteria,
        start: datetime,
        duration_minutes: int,
        exclude_room_ids: Iterable[int] = (),
    ) -> Resolution:
        """Find the best conflict-free room for ``[start, start + duration)``.

        Args:
            criteria: Structural filters
            start: Aware start instant
            duration_minutes: Meeting length, required
            exclude_room_ids: Rooms already offered and refused

        Returns:
            Resolution with one of FOUND, NO_MATCH, ALL_BUSY, EXHAUSTED.

        Raises:
            ValidationError: Malformed window or criteria
            StoreError: The inventory could not be read, or no candidate
                could be checked at all
        """
        window = build_window(start, duration_minutes)
        criteria = criteria.with_excluded(*exclude_room_ids)

        matched = await self.catalog.search(criteria)
        if not matched:
            return self._finish(Resolution(ResolveOutcome.NO_MATCH, window, criteria))

        candidates = [r for r in matched if r.id not in criteria.exclude_room_ids]
        if not candidates:
            return self._finish(Resolution(ResolveOutcome.EXHAUSTED, window, criteria))

        resolution = Resolution(ResolveOutcome.ALL_BUSY, window, criteria)
        free: list[Room] = []
        last_error: Optional[StoreError] = None
        checked = 0

        for room in candidates:
            if not room.is_open_during(window.start, window.end, self.tz):
                resolution.closed_room_ids.append(room.id)
                continue
            try:
                busy = await self.oracle.has_conflict(room.id, window.start, window.end)
            except StoreError as e:
                logger.warning(
                    f"Skipping room {room.id} ({room.name}): availability unknown: {e}"
                )
                resolution.unverified_room_ids.append(room.id)
                last_error = e
                continue
            checked += 1
            if busy:
                resolution.busy_room_ids.append(room.id)
            else:
                free.append(room)

        if checked == 0 and last_error is not None:
            raise StoreError(
                f"Could not verify availability of any of {len(candidates)} candidate room(s)",
                last_error,
            )

        if free:
            ranked = rank(free, criteria)
            resolution.outcome = ResolveOutcome.FOUND
            resolution.best_room = ranked[0]
            resolution.alternatives = ranked[1:]

        return self._finish(resolution)

    async def check_room(
        self, room_id: int, start: datetime, duration_minutes: int
    ) -> RoomCheck:
        """Re-verify one specific room, e.g. right before proposing it."""
        window = build_window(start, duration_minutes)
        room = await self.catalog.get(room_id)
        if not room.is_open_during(window.start, window.end, self.tz):
            check = RoomCheck(room=room, window=window, available=False, closed=True)
        else:
            conflicts = await self.oracle.find_conflicts(room.id, window.start, window.end)
            check = RoomCheck(
                room=room, window=window, available=not conflicts, conflicts=conflicts
            )
        check.summary = formatting.summarize_room_check(check, self.tz)
        return check

    def _finish(self, resolution: Resolution) -> Resolution:
        resolution.summary = formatting.summarize_resolution(resolution, self.tz)
        logger.info(
            f"Resolved {resolution.criteria.to_dict()} at {resolution.window.start.isoformat()}: "
            f"{resolution.outcome.value}"
            + (f" -> room {resolution.best_room.room.id}" if resolution.best_room else "")
        )
        return resolution
