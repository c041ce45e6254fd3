"""Tests for recurring series."""

from datetime import date, datetime, time

import pytest

from room_concierge.booking.catalog import RoomCatalog
from room_concierge.booking.oracle import ConflictOracle
from room_concierge.booking.recurring import (
    RecurringBooker,
    generate_occurrences,
    occurrence_dates,
)
from room_concierge.booking.transaction import BookingTransaction
from room_concierge.errors import StoreError, UnauthorizedError, ValidationError
from room_concierge.models import RecurrencePattern

from conftest import PARIS, paris

WORKDAYS = [1, 2, 3, 4, 5]


@pytest.fixture
def booker(office_db, server_config):
    catalog = RoomCatalog(office_db)
    transaction = BookingTransaction(office_db, catalog, ConflictOracle(office_db), PARIS)
    return RecurringBooker(
        catalog, transaction, server_config.working_hours, server_config.booking, PARIS
    )


class TestOccurrenceDates:
    def test_daily_walks_business_days(self):
        days = occurrence_dates(date(2025, 12, 19), RecurrencePattern.DAILY, 3, WORKDAYS)
        assert days == [date(2025, 12, 19), date(2025, 12, 22), date(2025, 12, 23)]

    def test_weekly_from_a_saturday_moves_to_monday(self):
        days = occurrence_dates(date(2025, 12, 13), RecurrencePattern.WEEKLY, 2, WORKDAYS)
        assert days == [date(2025, 12, 15), date(2025, 12, 22)]

    def test_biweekly(self):
        days = occurrence_dates(date(2025, 12, 15), RecurrencePattern.BIWEEKLY, 3, WORKDAYS)
        assert days == [date(2025, 12, 15), date(2025, 12, 29), date(2026, 1, 12)]

    def test_monthly_clamps_to_month_end(self):
        days = occurrence_dates(date(2025, 10, 31), RecurrencePattern.MONTHLY, 3, WORKDAYS)
        # 30 November 2025 is a Sunday.
        assert days == [date(2025, 10, 31), date(2025, 12, 1), date(2025, 12, 31)]


def test_wall_clock_survives_dst():
    starts = generate_occurrences(
        paris(2026, 3, 23, 9), RecurrencePattern.WEEKLY, 2, PARIS, WORKDAYS
    )
    assert [s.astimezone(PARIS).hour for s in starts] == [9, 9]
    assert starts[0].hour == 8
    assert starts[1].hour == 7


def test_naive_start_rejected():
    with pytest.raises(ValidationError):
        generate_occurrences(datetime(2025, 12, 15, 9), RecurrencePattern.DAILY, 2, PARIS, WORKDAYS)


class TestBookSeries:
    @pytest.mark.asyncio
    async def test_blocked_date_does_not_undo_the_rest(self, booker, office_db):
        blocker = office_db.add_meeting(
            1, 11, paris(2025, 12, 29, 9), paris(2025, 12, 29, 10), "Year end"
        )

        result = await booker.book_series(
            1, paris(2025, 12, 15, 9), 60, "weekly", 4, user_id=10, title="Sync"
        )

        assert [m.start_time for m in result.created] == [
            paris(2025, 12, 15, 9),
            paris(2025, 12, 22, 9),
            paris(2026, 1, 5, 9),
        ]
        assert len(result.failed) == 1
        failed = result.failed[0]
        assert failed.start == paris(2025, 12, 29, 9)
        assert failed.reason == "Aquarium is already booked"
        assert failed.conflicts == (blocker,)
        assert result.to_dict()["status"] == "partial"
        assert "3 occurrence(s) booked" in result.summary

    @pytest.mark.asyncio
    async def test_every_occurrence_booked(self, booker):
        result = await booker.book_series(
            4, paris(2025, 12, 15, 14), 30, RecurrencePattern.DAILY, 5, user_id=10
        )
        assert len(result.created) == 5
        assert result.failed == []
        assert result.to_dict()["status"] == "created"

    @pytest.mark.asyncio
    async def test_store_failure_on_some_occurrences(self, booker, office_db):
        original_find = office_db.find_overlapping_meetings

        async def flaky(room_id, start, end, exclude_meeting_id=None):
            if start == paris(2025, 12, 22, 9):
                raise StoreError("timeout")
            return await original_find(room_id, start, end, exclude_meeting_id)

        office_db.find_overlapping_meetings = flaky
        result = await booker.book_series(1, paris(2025, 12, 15, 9), 60, "weekly", 3, user_id=10)

        assert len(result.created) == 2
        assert result.failed[0].reason == "The booking system could not be reached"

    @pytest.mark.asyncio
    async def test_store_failure_on_every_occurrence_raises(self, booker, office_db):
        office_db.failing_rooms.add(1)
        with pytest.raises(StoreError):
            await booker.book_series(1, paris(2025, 12, 15, 9), 60, "weekly", 3, user_id=10)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("occurrences", [0, 13])
    async def test_occurrence_cap(self, booker, office_db, occurrences):
        with pytest.raises(ValidationError):
            await booker.book_series(
                1, paris(2025, 12, 15, 9), 60, "weekly", occurrences, user_id=10
            )
        assert office_db.calls == []

    @pytest.mark.asyncio
    async def test_unknown_pattern(self, booker):
        with pytest.raises(ValidationError, match="Invalid recurrence pattern"):
            await booker.book_series(1, paris(2025, 12, 15, 9), 60, "yearly", 3, user_id=10)

    @pytest.mark.asyncio
    async def test_guest_cannot_book_a_series(self, booker, office_db):
        with pytest.raises(UnauthorizedError):
            await booker.book_series(1, paris(2025, 12, 15, 9), 60, "weekly", 3, user_id=None)
        assert office_db.meetings == {}

    @pytest.mark.asyncio
    async def test_room_closed_for_every_occurrence_is_invalid(self, booker, office_db):
        office_db.add_room(6, "Late Lab", 4, closes_at=time(9, 0))

        result = await booker.book_series(6, paris(2025, 12, 15, 10), 60, "weekly", 3, user_id=10)

        assert result.created == []
        assert [f.kind for f in result.failed] == ["invalid"] * 3
        assert result.failed[0].reason == "Late Lab is closed at that time"
        assert result.to_dict()["status"] == "invalid"
        assert result.to_dict()["failed"][0]["kind"] == "invalid"

    @pytest.mark.asyncio
    async def test_every_occurrence_blocked_is_a_conflict(self, booker, office_db):
        for day in (15, 22):
            office_db.add_meeting(1, 11, paris(2025, 12, day, 9), paris(2025, 12, day, 10))

        result = await booker.book_series(1, paris(2025, 12, 15, 9), 60, "weekly", 2, user_id=10)

        assert [f.kind for f in result.failed] == ["conflict", "conflict"]
        assert result.to_dict()["status"] == "failed"
