"""Conflict detection against the live reservation ledger."""

import logging
from datetime import datetime
from typing import Iterable, Optional

from room_concierge.db.types import DatabaseInterface
from room_concierge.errors import ValidationError
from room_concierge.models import Meeting
from room_concierge.timeutil import require_aware

logger = logging.getLogger(__name__)


def overlaps(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """Half-open interval intersection. Touching endpoints do not overlap."""
    return a_start < b_end and a_end > b_start


def validate_interval(start: datetime, end: datetime) -> None:
    require_aware(start, "start")
    require_aware(end, "end")
    if end <= start:
        raise ValidationError(
            f"End time {end.isoformat()} must be after start time {start.isoformat()}"
        )


def count_conflicts(meetings: Iterable[Meeting], start: datetime, end: datetime) -> int:
    return sum(1 for m in meetings if overlaps(m.start_time, m.end_time, start, end))


def person_is_busy(meetings: Iterable[Meeting], start: datetime, end: datetime) -> bool:
    return any(overlaps(m.start_time, m.end_time, start, end) for m in meetings)


class ConflictOracle:
    """Answers whether a room is free for an interval.

    Every call goes to the store; results are never cached. Store failures
    propagate as ``StoreError`` instead of being read as "free".
    """

    def __init__(self, db: DatabaseInterface):
        self.db = db

    async def find_conflicts(
        self,
        room_id: int,
        start: datetime,
        end: datetime,
        exclude_meeting_id: Optional[int] = None,
    ) -> list[Meeting]:
        validate_interval(start, end)
        meetings = await self.db.find_overlapping_meetings(
            room_id, start, end, exclude_meeting_id
        )
        # Store rows are a prefilter; the half-open rule here is authoritative.
        conflicts = [
            m
            for m in meetings
            if m.id != exclude_meeting_id
            and overlaps(m.start_time, m.end_time, start, end)
        ]
        if conflicts:
            logger.debug(
                f"Room {room_id} has {len(conflicts)} conflict(s) in "
                f"[{start.isoformat()}, {end.isoformat()})"
            )
        return conflicts

    async def has_conflict(
        self,
        room_id: int,
        start: datetime,
        end: datetime,
        exclude_meeting_id: Optional[int] = None,
    ) -> bool:
        return bool(await self.find_conflicts(room_id, start, end, exclude_meeting_id))
