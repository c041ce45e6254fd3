"""Pytest fixtures for the booking engine tests."""

import logging
from datetime import datetime, time
from typing import Optional
from zoneinfo import ZoneInfo

import pytest

from room_concierge.config import (
    BookingConfig,
    ServerConfig,
    WorkingHoursConfig,
)
from room_concierge.db.types import DatabaseInterface
from room_concierge.errors import BookingOverlapError, NotFoundError, StoreError
from room_concierge.models import Meeting, Room, User
from room_concierge.services import BookingService
from room_concierge.timeutil import UTC

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PARIS = ZoneInfo("Europe/Paris")


def paris(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    """Aware instant for a Paris wall-clock time, normalized to UTC."""
    return datetime(year, month, day, hour, minute, tzinfo=PARIS).astimezone(UTC)


class FakeDatabase(DatabaseInterface):
    """In-memory store that mirrors the Postgres contract.

    Writes enforce the same per-room overlap exclusion as the
    ``meetings_no_overlap`` constraint. Failures can be injected per room,
    per user, or for every call.
    """

    def __init__(self):
        self.rooms: dict[int, Room] = {}
        self.users: dict[int, User] = {}
        self.meetings: dict[int, Meeting] = {}
        self.failing_rooms: set[int] = set()
        self.failing_users: set[int] = set()
        self.fail_all: Optional[StoreError] = None
        self.calls: list[tuple[str, tuple]] = []
        self._next_meeting_id = 1

    # Seeding helpers

    def add_room(
        self,
        room_id: int,
        name: str,
        capacity: int,
        location: str = "",
        equipment: tuple[str, ...] = (),
        opens_at: Optional[time] = None,
        closes_at: Optional[time] = None,
        is_active: bool = True,
    ) -> Room:
        room = Room(
            id=room_id,
            name=name,
            capacity=capacity,
            location=location,
            equipment=tuple(equipment),
            opens_at=opens_at,
            closes_at=closes_at,
            is_active=is_active,
        )
        self.rooms[room_id] = room
        return room

    def add_user(
        self, user_id: int, display_name: str, organization: Optional[str] = None
    ) -> User:
        user = User(
            id=user_id,
            display_name=display_name,
            email=f"{display_name.lower()}@example.com",
            organization=organization,
        )
        self.users[user_id] = user
        return user

    def add_meeting(
        self,
        room_id: int,
        user_id: int,
        start: datetime,
        end: datetime,
        title: Optional[str] = None,
    ) -> Meeting:
        """Insert directly, bypassing the overlap exclusion."""
        meeting = Meeting(
            id=self._next_meeting_id,
            room_id=room_id,
            user_id=user_id,
            start_time=start,
            end_time=end,
            title=title,
            room_name=self.rooms[room_id].name if room_id in self.rooms else None,
        )
        self.meetings[meeting.id] = meeting
        self._next_meeting_id += 1
        return meeting

    def call_count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, args))
        if self.fail_all is not None:
            raise self.fail_all

    def _overlapping(
        self,
        room_id: int,
        start: datetime,
        end: datetime,
        exclude_meeting_id: Optional[int] = None,
    ) -> list[Meeting]:
        return sorted(
            (
                m
                for m in self.meetings.values()
                if m.room_id == room_id
                and m.id != exclude_meeting_id
                and m.start_time < end
                and m.end_time > start
            ),
            key=lambda m: (m.start_time, m.id),
        )

    # DatabaseInterface

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def list_rooms(self, active_only: bool = True) -> list[Room]:
        self._record("list_rooms", active_only)
        rooms = sorted(self.rooms.values(), key=lambda r: r.id)
        return [r for r in rooms if r.is_active or not active_only]

    async def get_room(self, room_id: int) -> Optional[Room]:
        self._record("get_room", room_id)
        return self.rooms.get(room_id)

    async def list_users(self, user_ids: list[int]) -> list[User]:
        self._record("list_users", tuple(user_ids))
        return [self.users[i] for i in sorted(set(user_ids)) if i in self.users]

    async def list_users_by_organization(self, organization: str) -> list[User]:
        self._record("list_users_by_organization", organization)
        wanted = organization.lower()
        return [
            u
            for u in sorted(self.users.values(), key=lambda u: u.id)
            if (u.organization or "").lower() == wanted
        ]

    async def find_overlapping_meetings(
        self,
        room_id: int,
        start: datetime,
        end: datetime,
        exclude_meeting_id: Optional[int] = None,
    ) -> list[Meeting]:
        self._record("find_overlapping_meetings", room_id, start, end, exclude_meeting_id)
        if room_id in self.failing_rooms:
            raise StoreError(f"injected failure for room {room_id}")
        return self._overlapping(room_id, start, end, exclude_meeting_id)

    async def find_user_meetings(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Meeting]:
        self._record("find_user_meetings", user_id, start, end)
        if user_id in self.failing_users:
            raise StoreError(f"injected failure for user {user_id}")
        return sorted(
            (
                m
                for m in self.meetings.values()
                if m.user_id == user_id and m.start_time < end and m.end_time > start
            ),
            key=lambda m: (m.start_time, m.id),
        )

    async def next_meeting_start(self, room_id: int, after: datetime) -> Optional[datetime]:
        self._record("next_meeting_start", room_id, after)
        if room_id in self.failing_rooms:
            raise StoreError(f"injected failure for room {room_id}")
        starts = [
            m.start_time
            for m in self.meetings.values()
            if m.room_id == room_id and m.start_time >= after
        ]
        return min(starts) if starts else None

    async def get_meeting(self, meeting_id: int) -> Optional[Meeting]:
        self._record("get_meeting", meeting_id)
        return self.meetings.get(meeting_id)

    async def list_user_meetings(
        self, user_id: int, since: Optional[datetime] = None
    ) -> list[Meeting]:
        self._record("list_user_meetings", user_id, since)
        return sorted(
            (
                m
                for m in self.meetings.values()
                if m.user_id == user_id and (since is None or m.end_time > since)
            ),
            key=lambda m: (m.start_time, m.id),
        )

    async def insert_meeting(
        self,
        room_id: int,
        user_id: int,
        start: datetime,
        end: datetime,
        title: Optional[str] = None,
    ) -> Meeting:
        self._record("insert_meeting", room_id, user_id, start, end, title)
        if room_id not in self.rooms:
            raise NotFoundError("Room", room_id)
        if self._overlapping(room_id, start, end):
            raise BookingOverlapError(room_id)
        return self.add_meeting(room_id, user_id, start, end, title)

    async def update_meeting(
        self,
        meeting_id: int,
        room_id: int,
        start: datetime,
        end: datetime,
        title: Optional[str],
    ) -> Meeting:
        self._record("update_meeting", meeting_id, room_id, start, end, title)
        existing = self.meetings.get(meeting_id)
        if existing is None:
            raise NotFoundError("Meeting", meeting_id)
        if self._overlapping(room_id, start, end, exclude_meeting_id=meeting_id):
            raise BookingOverlapError(room_id)
        updated = Meeting(
            id=meeting_id,
            room_id=room_id,
            user_id=existing.user_id,
            start_time=start,
            end_time=end,
            title=title,
            status=existing.status,
            room_name=self.rooms[room_id].name,
        )
        self.meetings[meeting_id] = updated
        return updated

    async def delete_meeting(self, meeting_id: int) -> bool:
        self._record("delete_meeting", meeting_id)
        return self.meetings.pop(meeting_id, None) is not None


@pytest.fixture
def server_config():
    """Paris office, 09:00-18:00 Monday to Friday."""
    return ServerConfig(
        timezone="Europe/Paris",
        working_hours=WorkingHoursConfig(start="09:00", end="18:00", workdays=[1, 2, 3, 4, 5]),
        booking=BookingConfig(),
    )


@pytest.fixture
def tz(server_config):
    return server_config.tz


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def office_db(db):
    """A small office inventory with a few people."""
    db.add_room(1, "Aquarium", 6, "1st floor", ("screen", "whiteboard"))
    db.add_room(2, "Boardroom", 20, "3rd floor", ("vidéo-projecteur", "visio", "whiteboard"))
    db.add_room(3, "Focus", 2, "1st floor")
    db.add_room(4, "Atelier", 10, "Ground floor", ("projecteur HD", "Wi-Fi"))
    db.add_room(5, "Old Annex", 8, "Basement", ("screen",), is_active=False)
    db.add_user(10, "Alice", "Acme")
    db.add_user(11, "Bob", "Acme")
    db.add_user(12, "Chloe", "acme")
    db.add_user(13, "David", "Acme")
    db.add_user(20, "Eve", "Globex")
    return db


@pytest.fixture
def service(office_db, server_config):
    return BookingService(office_db, server_config)
