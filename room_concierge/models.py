"""Domain models for rooms, meetings and computed slots."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Any, Iterable, Optional
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class Room:
    """A bookable meeting room."""

    id: int
    name: str
    capacity: int
    location: str = ""
    equipment: tuple[str, ...] = ()
    opens_at: Optional[time] = None
    closes_at: Optional[time] = None
    is_active: bool = True

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Room":
        """Create a Room from a database row."""
        return cls(
            id=row["id"],
            name=row["name"],
            capacity=row["capacity"],
            location=row.get("location") or "",
            equipment=tuple(row.get("equipment") or ()),
            opens_at=row.get("opens_at"),
            closes_at=row.get("closes_at"),
            is_active=row.get("is_active", True),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "capacity": self.capacity,
            "location": self.location,
            "equipment": list(self.equipment),
            "opens_at": self.opens_at.strftime("%H:%M") if self.opens_at else None,
            "closes_at": self.closes_at.strftime("%H:%M") if self.closes_at else None,
        }

    def is_open_during(self, start: datetime, end: datetime, tz: ZoneInfo) -> bool:
        """Check whether the window fits inside the room's opening hours."""
        local_start = start.astimezone(tz)
        local_end = end.astimezone(tz)
        if self.opens_at and local_start.time() < self.opens_at:
            return False
        if self.closes_at:
            if local_end.date() != local_start.date():
                return False
            if local_end.time() > self.closes_at:
                return False
        return True


@dataclass(frozen=True)
class User:
    """A person who can own meetings."""

    id: int
    display_name: str
    email: Optional[str] = None
    organization: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "User":
        return cls(
            id=row["id"],
            display_name=row["display_name"],
            email=row.get("email"),
            organization=row.get("organization"),
        )


@dataclass(frozen=True)
class Meeting:
    """A confirmed booking of a room by a user."""

    id: int
    room_id: int
    user_id: int
    start_time: datetime
    end_time: datetime
    title: Optional[str] = None
    status: str = "confirmed"
    room_name: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Meeting":
        return cls(
            id=row["id"],
            room_id=row["room_id"],
            user_id=row["user_id"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            title=row.get("title"),
            status=row.get("status") or "confirmed",
            room_name=row.get("room_name"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "room_id": self.room_id,
            "room_name": self.room_name,
            "user_id": self.user_id,
            "title": self.title,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_minutes": self.duration_minutes,
            "status": self.status,
        }


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end)."""

    start: datetime
    end: datetime

    @classmethod
    def from_duration(cls, start: datetime, duration_minutes: int) -> "TimeWindow":
        return cls(start=start, end=start + timedelta(minutes=duration_minutes))

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "duration_minutes": self.duration_minutes,
        }


@dataclass(frozen=True)
class SearchCriteria:
    """Structural filters for the room catalog."""

    min_capacity: Optional[int] = None
    max_capacity: Optional[int] = None
    equipment: tuple[str, ...] = ()
    location: Optional[str] = None
    name: Optional[str] = None
    exclude_room_ids: frozenset[int] = field(default_factory=frozenset)

    @classmethod
    def build(
        cls,
        min_capacity: Optional[int] = None,
        max_capacity: Optional[int] = None,
        equipment: Optional[Iterable[str]] = None,
        location: Optional[str] = None,
        name: Optional[str] = None,
        exclude_room_ids: Optional[Iterable[int]] = None,
    ) -> "SearchCriteria":
        """Build criteria, dropping blank strings and empty tags."""
        return cls(
            min_capacity=min_capacity,
            max_capacity=max_capacity,
            equipment=tuple(tag.strip() for tag in equipment or () if tag and tag.strip()),
            location=location.strip() if location and location.strip() else None,
            name=name.strip() if name and name.strip() else None,
            exclude_room_ids=frozenset(exclude_room_ids or ()),
        )

    def with_excluded(self, *room_ids: int) -> "SearchCriteria":
        return replace(self, exclude_room_ids=self.exclude_room_ids | set(room_ids))

    def to_dict(self) -> dict[str, Any]:
        return {
            "min_capacity": self.min_capacity,
            "max_capacity": self.max_capacity,
            "equipment": list(self.equipment),
            "location": self.location,
            "name": self.name,
            "exclude_room_ids": sorted(self.exclude_room_ids),
        }


@dataclass(frozen=True)
class ScoredRoom:
    room: Room
    score: float

    def to_dict(self) -> dict[str, Any]:
        data = self.room.to_dict()
        data["score"] = round(self.score, 2)
        return data


# ============================================================================
# Result variants
# ============================================================================


class ResolveOutcome(Enum):
    """Outcome of a slot resolution."""

    FOUND = "found"
    NO_MATCH = "no_match"
    ALL_BUSY = "all_busy"
    EXHAUSTED = "exhausted"


@dataclass
class Resolution:
    outcome: ResolveOutcome
    window: TimeWindow
    criteria: SearchCriteria
    best_room: Optional[ScoredRoom] = None
    alternatives: list[ScoredRoom] = field(default_factory=list)
    busy_room_ids: list[int] = field(default_factory=list)
    closed_room_ids: list[int] = field(default_factory=list)
    unverified_room_ids: list[int] = field(default_factory=list)
    summary: str = ""

    @property
    def found(self) -> bool:
        return self.outcome is ResolveOutcome.FOUND

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.outcome.value,
            "window": self.window.to_dict(),
            "best_room": self.best_room.to_dict() if self.best_room else None,
            "alternatives": [alt.to_dict() for alt in self.alternatives],
            "busy_room_ids": self.busy_room_ids,
            "closed_room_ids": self.closed_room_ids,
            "unverified_room_ids": self.unverified_room_ids,
            "summary": self.summary,
        }


@dataclass
class RoomCheck:
    """Availability of one specific room for one window."""

    room: Room
    window: TimeWindow
    available: bool
    closed: bool = False
    conflicts: list[Meeting] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "available" if self.available else "unavailable",
            "room": self.room.to_dict(),
            "window": self.window.to_dict(),
            "closed": self.closed,
            "conflicts": [m.to_dict() for m in self.conflicts],
            "summary": self.summary,
        }


class BookingStatus(Enum):
    """Outcome of a booking mutation."""

    CREATED = "created"
    UPDATED = "updated"
    CANCELLED = "cancelled"
    CONFLICT = "conflict"


@dataclass
class BookingResult:
    status: BookingStatus
    meeting: Optional[Meeting] = None
    conflicts: list[Meeting] = field(default_factory=list)
    summary: str = ""

    @property
    def success(self) -> bool:
        return self.status is not BookingStatus.CONFLICT

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "success": self.success,
            "meeting": self.meeting.to_dict() if self.meeting else None,
            "conflicts": [m.to_dict() for m in self.conflicts],
            "summary": self.summary,
        }


@dataclass(frozen=True)
class MeetingChanges:
    """Requested changes to an existing meeting. ``None`` means unchanged."""

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    room_id: Optional[int] = None
    title: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.start_time is None
            and self.end_time is None
            and self.duration_minutes is None
            and self.room_id is None
            and self.title is None
        )


@dataclass
class Slot:
    """A candidate team meeting slot with availability metadata."""

    start: datetime
    end: datetime
    member_count: int
    unavailable_count: int
    availability_percent: float
    room: Optional[Room] = None
    bookable: bool = False
    room_unverified: bool = False

    def day_name(self, tz: ZoneInfo) -> str:
        return self.start.astimezone(tz).strftime("%A")

    def date_label(self, tz: ZoneInfo) -> str:
        return self.start.astimezone(tz).strftime("%Y-%m-%d")

    def time_label(self, tz: ZoneInfo) -> str:
        local_start = self.start.astimezone(tz)
        local_end = self.end.astimezone(tz)
        return f"{local_start:%H:%M}-{local_end:%H:%M}"

    def to_dict(self, tz: ZoneInfo) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "day": self.day_name(tz),
            "date": self.date_label(tz),
            "time": self.time_label(tz),
            "member_count": self.member_count,
            "unavailable_count": self.unavailable_count,
            "availability_percent": round(self.availability_percent, 1),
            "room": self.room.to_dict() if self.room else None,
            "bookable": self.bookable,
            "room_unverified": self.room_unverified,
        }


@dataclass(frozen=True)
class MemberSelector:
    """Who to include in a team scan: an organization tag and/or user ids."""

    organization: Optional[str] = None
    user_ids: tuple[int, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.organization and not self.user_ids


@dataclass
class TeamScan:
    slots: list[Slot]
    member_count: int
    window: TimeWindow
    assumed_team_size: bool = False
    unverified_user_ids: list[int] = field(default_factory=list)
    summary: str = ""

    def to_dict(self, tz: ZoneInfo) -> dict[str, Any]:
        return {
            "status": "found" if self.slots else "no_slots",
            "member_count": self.member_count,
            "assumed_team_size": self.assumed_team_size,
            "unverified_user_ids": self.unverified_user_ids,
            "slots": [slot.to_dict(tz) for slot in self.slots],
            "summary": self.summary,
        }


@dataclass(frozen=True)
class InstantOption:
    room: Room
    free_until: datetime
    free_minutes: int

    def to_dict(self) -> dict[str, Any]:
        data = self.room.to_dict()
        data["free_until"] = self.free_until.isoformat()
        data["free_minutes"] = self.free_minutes
        return data


@dataclass
class InstantResult:
    start: datetime
    duration_minutes: int
    options: list[InstantOption] = field(default_factory=list)
    unverified_room_ids: list[int] = field(default_factory=list)
    outside_business_hours: bool = False
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "found" if self.options else "none_free",
            "start": self.start.isoformat(),
            "duration_minutes": self.duration_minutes,
            "outside_business_hours": self.outside_business_hours,
            "options": [opt.to_dict() for opt in self.options],
            "unverified_room_ids": self.unverified_room_ids,
            "summary": self.summary,
        }


class RecurrencePattern(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"

    @classmethod
    def from_string(cls, value: str) -> "RecurrencePattern":
        normalized = value.lower().strip()
        for pattern in cls:
            if pattern.value == normalized:
                return pattern
        raise ValueError(
            f"Invalid recurrence pattern '{value}'. Must be 'daily', 'weekly', 'biweekly', or 'monthly'."
        )


@dataclass(frozen=True)
class FailedOccurrence:
    start: datetime
    reason: str
    kind: str = "conflict"
    conflicts: tuple[Meeting, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "reason": self.reason,
            "kind": self.kind,
            "conflicting_meeting_ids": [m.id for m in self.conflicts],
        }


@dataclass
class SeriesResult:
    pattern: RecurrencePattern
    created: list[Meeting] = field(default_factory=list)
    failed: list[FailedOccurrence] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        if not self.failed:
            status = "created"
        elif self.created:
            status = "partial"
        elif any(f.kind == "conflict" for f in self.failed):
            status = "failed"
        elif any(f.kind == "store_error" for f in self.failed):
            status = "store_error"
        else:
            status = "invalid"
        return {
            "status": status,
            "pattern": self.pattern.value,
            "created": [m.to_dict() for m in self.created],
            "failed": [f.to_dict() for f in self.failed],
            "summary": self.summary,
        }
