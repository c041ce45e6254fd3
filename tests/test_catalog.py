"""Tests for structural room matching and relevance scoring."""

import pytest

from room_concierge.booking.catalog import (
    RoomCatalog,
    equipment_tag_matches,
    filter_rooms,
    normalize,
)
from room_concierge.booking.scoring import capacity_fit, rank, score
from room_concierge.errors import NotFoundError, ValidationError
from room_concierge.models import Room, SearchCriteria


class TestEquipmentMatching:
    def test_normalize_folds_case_and_accents(self):
        assert normalize("  Vidéo-Projecteur ") == "video-projecteur"

    @pytest.mark.parametrize(
        "requested, available",
        [
            ("projector", "Projector"),
            ("vidéo-projecteur", "projecteur HD"),
            ("video projecteur", "Vidéo-projecteur"),
            ("wifi", "Wi-Fi"),
            ("screen", "screen 65in"),
            ("tableau blanc", "Tableau"),
        ],
    )
    def test_fuzzy_matches(self, requested, available):
        assert equipment_tag_matches(requested, available)

    @pytest.mark.parametrize(
        "requested, available",
        [
            ("projector", "whiteboard"),
            ("hd", "screen"),
            ("", "screen"),
        ],
    )
    def test_non_matches(self, requested, available):
        assert not equipment_tag_matches(requested, available)


class TestFilterRooms:
    def test_capacity_bounds(self, office_db):
        rooms = list(office_db.rooms.values())
        matched = filter_rooms(rooms, SearchCriteria.build(min_capacity=6, max_capacity=10))
        assert [r.name for r in matched] == ["Aquarium", "Atelier"]

    def test_every_equipment_tag_is_required(self, office_db):
        rooms = list(office_db.rooms.values())
        matched = filter_rooms(rooms, SearchCriteria.build(equipment=["projecteur", "whiteboard"]))
        assert [r.name for r in matched] == ["Boardroom"]

    def test_name_and_location_are_case_insensitive(self, office_db):
        rooms = list(office_db.rooms.values())
        assert [r.id for r in filter_rooms(rooms, SearchCriteria.build(location="1ST FLOOR"))] == [1, 3]
        assert [r.id for r in filter_rooms(rooms, SearchCriteria.build(name="aqua"))] == [1]

    def test_inactive_rooms_never_match(self, office_db):
        rooms = list(office_db.rooms.values())
        matched = filter_rooms(rooms, SearchCriteria.build(location="basement"))
        assert matched == []

    def test_empty_result_is_not_an_error(self, office_db):
        rooms = list(office_db.rooms.values())
        assert filter_rooms(rooms, SearchCriteria.build(min_capacity=500)) == []

    def test_invalid_capacities(self, office_db):
        rooms = list(office_db.rooms.values())
        with pytest.raises(ValidationError):
            filter_rooms(rooms, SearchCriteria.build(min_capacity=0))
        with pytest.raises(ValidationError):
            filter_rooms(rooms, SearchCriteria.build(min_capacity=8, max_capacity=4))

    def test_blank_criteria_are_dropped(self):
        criteria = SearchCriteria.build(equipment=["", "  ", "screen"], location="  ", name="")
        assert criteria.equipment == ("screen",)
        assert criteria.location is None
        assert criteria.name is None


class TestRoomCatalog:
    @pytest.mark.asyncio
    async def test_search(self, office_db):
        catalog = RoomCatalog(office_db)
        rooms = await catalog.search(SearchCriteria.build(equipment=["screen"]))
        assert [r.name for r in rooms] == ["Aquarium"]

    @pytest.mark.asyncio
    async def test_get_unknown_or_inactive(self, office_db):
        catalog = RoomCatalog(office_db)
        assert (await catalog.get(2)).name == "Boardroom"
        with pytest.raises(NotFoundError):
            await catalog.get(99)
        with pytest.raises(NotFoundError):
            await catalog.get(5)

    @pytest.mark.asyncio
    async def test_find_by_name(self, office_db):
        catalog = RoomCatalog(office_db)
        assert (await catalog.find_by_name("aquarium")).id == 1
        assert (await catalog.find_by_name("board")).id == 2
        with pytest.raises(NotFoundError):
            await catalog.find_by_name("Kitchen")

    @pytest.mark.asyncio
    async def test_ambiguous_name_lists_the_candidates(self, office_db):
        with pytest.raises(ValidationError) as exc_info:
            await RoomCatalog(office_db).find_by_name("r")
        assert "Aquarium" in exc_info.value.message
        assert "Boardroom" in exc_info.value.message


class TestScoring:
    def test_capacity_fit_prefers_snug_rooms(self):
        snug = Room(id=1, name="A", capacity=4)
        roomy = Room(id=2, name="B", capacity=6)
        huge = Room(id=3, name="C", capacity=40)
        assert capacity_fit(snug, 4) == 5.0
        assert capacity_fit(roomy, 4) == 4.0
        assert capacity_fit(huge, 4) == 1.0
        assert capacity_fit(Room(id=4, name="D", capacity=2), 4) == 0.0

    def test_equipment_dominates(self):
        criteria = SearchCriteria.build(min_capacity=4, equipment=["projector"])
        equipped = Room(id=1, name="Big", capacity=30, equipment=("projector",))
        snug = Room(id=2, name="Snug", capacity=4)
        assert score(equipped, criteria) > score(snug, criteria)

    def test_name_and_location_bonuses(self):
        criteria = SearchCriteria.build(name="aqua", location="floor")
        room = Room(id=1, name="Aquarium", capacity=6, location="1st floor")
        assert score(room, criteria) == 5.0

    def test_rank_is_deterministic_with_id_tiebreak(self):
        criteria = SearchCriteria.build(min_capacity=4)
        rooms = [
            Room(id=7, name="G", capacity=6),
            Room(id=3, name="C", capacity=6),
            Room(id=5, name="E", capacity=4),
        ]
        first = [s.room.id for s in rank(rooms, criteria)]
        second = [s.room.id for s in rank(list(reversed(rooms)), criteria)]
        assert first == second == [5, 3, 7]
