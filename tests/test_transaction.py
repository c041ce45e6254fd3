"""Tests for the booking transaction."""

import pytest

from room_concierge.booking.catalog import RoomCatalog
from room_concierge.booking.oracle import ConflictOracle
from room_concierge.booking.resolver import SlotResolver
from room_concierge.booking.transaction import BookingTransaction
from room_concierge.errors import (
    NotFoundError,
    StoreError,
    UnauthorizedError,
    ValidationError,
)
from room_concierge.models import BookingStatus, SearchCriteria

from conftest import PARIS, paris


def _transaction(db) -> BookingTransaction:
    catalog = RoomCatalog(db)
    return BookingTransaction(db, catalog, ConflictOracle(db), PARIS)


class TestCommit:
    @pytest.mark.asyncio
    async def test_sequential_commits_never_double_book(self, office_db):
        tx = _transaction(office_db)

        first = await tx.commit(1, paris(2025, 12, 15, 10), 60, user_id=10, title="Standup")
        assert first.status is BookingStatus.CREATED
        assert first.meeting.title == "Standup"

        overlapping = await tx.commit(1, paris(2025, 12, 15, 10, 30), 60, user_id=11)
        assert overlapping.status is BookingStatus.CONFLICT
        assert overlapping.success is False
        assert [m.id for m in overlapping.conflicts] == [first.meeting.id]
        assert "already booked" in overlapping.summary

        adjacent = await tx.commit(1, paris(2025, 12, 15, 11), 60, user_id=11)
        assert adjacent.status is BookingStatus.CREATED
        assert len(office_db.meetings) == 2

    @pytest.mark.asyncio
    async def test_aquarium_scenario(self, office_db):
        start = paris(2025, 12, 13, 14)
        resolver = SlotResolver(RoomCatalog(office_db), ConflictOracle(office_db), PARIS)
        resolution = await resolver.resolve(SearchCriteria.build(min_capacity=4), start, 60)
        room = resolution.best_room.room
        assert room.name == "Aquarium"

        tx = _transaction(office_db)
        booked = await tx.commit(room.id, start, 60, user_id=10)
        assert booked.status is BookingStatus.CREATED
        assert "Booking confirmed" in booked.summary

        again = await tx.commit(room.id, start, 60, user_id=11)
        assert again.status is BookingStatus.CONFLICT

        # The new booking is immediately visible to the resolver.
        after = await resolver.resolve(SearchCriteria.build(min_capacity=4), start, 60)
        assert after.best_room.room.name != "Aquarium"

    @pytest.mark.asyncio
    async def test_lost_race_is_reported_as_conflict(self, office_db):
        tx = _transaction(office_db)
        start = paris(2025, 12, 15, 10)

        # Simulate a concurrent writer landing between the oracle check and the insert.
        original_find = office_db.find_overlapping_meetings

        async def check_then_race(room_id, s, e, exclude_meeting_id=None):
            result = await original_find(room_id, s, e, exclude_meeting_id)
            office_db.add_meeting(room_id, 99, s, e, "Sneaky")
            return result

        office_db.find_overlapping_meetings = check_then_race
        result = await tx.commit(1, start, 60, user_id=10)
        assert result.status is BookingStatus.CONFLICT
        assert [m.title for m in office_db.meetings.values()] == ["Sneaky"]

    @pytest.mark.asyncio
    async def test_guest_cannot_book(self, office_db):
        with pytest.raises(UnauthorizedError):
            await _transaction(office_db).commit(1, paris(2025, 12, 15, 10), 60, user_id=None)
        assert office_db.calls == []

    @pytest.mark.asyncio
    async def test_invalid_duration(self, office_db):
        with pytest.raises(ValidationError):
            await _transaction(office_db).commit(1, paris(2025, 12, 15, 10), -30, user_id=10)
        assert office_db.calls == []

    @pytest.mark.asyncio
    async def test_unknown_room(self, office_db):
        with pytest.raises(NotFoundError):
            await _transaction(office_db).commit(77, paris(2025, 12, 15, 10), 60, user_id=10)

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, office_db):
        office_db.failing_rooms.add(1)
        with pytest.raises(StoreError):
            await _transaction(office_db).commit(1, paris(2025, 12, 15, 10), 60, user_id=10)
        assert office_db.meetings == {}

    @pytest.mark.asyncio
    async def test_blank_title_is_dropped(self, office_db):
        result = await _transaction(office_db).commit(
            1, paris(2025, 12, 15, 10), 30, user_id=10, title="   "
        )
        assert result.meeting.title is None
