"""Tests for instant ("right now") room lookups."""

from datetime import time

import pytest

from room_concierge.booking.catalog import RoomCatalog
from room_concierge.booking.instant import InstantFinder
from room_concierge.booking.oracle import ConflictOracle
from room_concierge.errors import StoreError
from room_concierge.models import SearchCriteria

from conftest import paris


@pytest.fixture
def finder(office_db, server_config):
    return InstantFinder(
        office_db,
        RoomCatalog(office_db),
        ConflictOracle(office_db),
        server_config.working_hours,
        server_config.booking,
        server_config.tz,
    )


NOW = paris(2025, 12, 15, 10, 2)


class TestInstantFinder:
    @pytest.mark.asyncio
    async def test_start_is_rounded_to_next_tick(self, finder):
        result = await finder.find(SearchCriteria.build(), 30, now=NOW)
        assert result.start == paris(2025, 12, 15, 10, 5)

        on_tick = await finder.find(SearchCriteria.build(), 30, now=paris(2025, 12, 15, 10, 10))
        assert on_tick.start == paris(2025, 12, 15, 10, 10)

    @pytest.mark.asyncio
    async def test_smallest_rooms_first_top_three(self, finder):
        result = await finder.find(SearchCriteria.build(), 30, now=NOW)
        assert [opt.room.name for opt in result.options] == ["Focus", "Aquarium", "Atelier"]
        assert result.options[0].free_until == paris(2025, 12, 15, 18)
        assert result.options[0].free_minutes == 475

    @pytest.mark.asyncio
    async def test_free_window_must_cover_the_duration(self, finder, office_db):
        office_db.add_meeting(1, 10, paris(2025, 12, 15, 10), paris(2025, 12, 15, 10, 30))
        office_db.add_meeting(3, 10, paris(2025, 12, 15, 10, 20), paris(2025, 12, 15, 11))
        office_db.add_meeting(4, 11, paris(2025, 12, 15, 12), paris(2025, 12, 15, 13))

        result = await finder.find(SearchCriteria.build(), 30, now=NOW)

        assert [opt.room.name for opt in result.options] == ["Atelier", "Boardroom"]
        atelier = result.options[0]
        assert atelier.free_until == paris(2025, 12, 15, 12)
        assert atelier.free_minutes == 115
        assert "115 more minutes" in result.summary

    @pytest.mark.asyncio
    async def test_room_closing_time_caps_the_window(self, finder, office_db):
        office_db.add_room(6, "Late Lab", 1, closes_at=time(17, 0))
        result = await finder.find(SearchCriteria.build(max_capacity=1), 30, now=NOW)
        assert result.options[0].free_until == paris(2025, 12, 15, 17)

    @pytest.mark.asyncio
    async def test_nothing_free_near_closing(self, finder):
        result = await finder.find(SearchCriteria.build(), 30, now=paris(2025, 12, 15, 17, 50))
        assert result.options == []
        assert result.summary.startswith("❌")

    @pytest.mark.asyncio
    async def test_failed_room_is_reported(self, finder, office_db):
        office_db.failing_rooms.add(3)
        result = await finder.find(SearchCriteria.build(), 30, now=NOW)
        assert result.unverified_room_ids == [3]
        assert "Focus" not in [opt.room.name for opt in result.options]

    @pytest.mark.asyncio
    async def test_all_rooms_failing_raises(self, finder, office_db):
        office_db.failing_rooms.update({1, 2, 3, 4})
        with pytest.raises(StoreError):
            await finder.find(SearchCriteria.build(), 30, now=NOW)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "now",
        [
            paris(2025, 12, 13, 10),  # Saturday
            paris(2025, 12, 15, 7),
            paris(2025, 12, 15, 18, 30),
        ],
    )
    async def test_nothing_offered_outside_business_hours(self, finder, office_db, now):
        result = await finder.find(SearchCriteria.build(), 30, now=now)
        assert result.options == []
        assert result.outside_business_hours is True
        assert "outside business hours" in result.summary
        assert office_db.calls == []

    @pytest.mark.asyncio
    async def test_opening_tick_is_within_business_hours(self, finder):
        result = await finder.find(SearchCriteria.build(), 30, now=paris(2025, 12, 15, 8, 57))
        assert result.start == paris(2025, 12, 15, 9)
        assert result.outside_business_hours is False
        assert result.options[0].free_minutes == 540
