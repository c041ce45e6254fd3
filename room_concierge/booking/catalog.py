"""Structural (time-independent) room matching."""

import logging
import re
import unicodedata
from typing import Iterable, Optional

from room_concierge.db.types import DatabaseInterface
from room_concierge.errors import NotFoundError, ValidationError
from room_concierge.models import Room, SearchCriteria

logger = logging.getLogger(__name__)

# Shared words shorter than this ("hd", "tv", "de") are too generic to match on.
MIN_SHARED_WORD_LENGTH = 4

_WORD_SPLIT = re.compile(r"[^0-9a-z]+")


def normalize(text: str) -> str:
    """Casefold and strip accents: 'Vidéo-Projecteur' -> 'video-projecteur'."""
    decomposed = unicodedata.normalize("NFKD", text.casefold())
    return "".join(c for c in decomposed if not unicodedata.combining(c)).strip()


def _words(text: str) -> set[str]:
    return {w for w in _WORD_SPLIT.split(text) if len(w) >= MIN_SHARED_WORD_LENGTH}


def equipment_tag_matches(requested: str, available: str) -> bool:
    """Fuzzy match of one requested equipment tag against one room tag."""
    wanted = normalize(requested)
    have = normalize(available)
    if not wanted or not have:
        return False
    if wanted in have or have in wanted:
        return True
    compact_wanted = _WORD_SPLIT.sub("", wanted)
    compact_have = _WORD_SPLIT.sub("", have)
    if compact_wanted and compact_have and (
        compact_wanted in compact_have or compact_have in compact_wanted
    ):
        return True
    return bool(_words(wanted) & _words(have))


def room_has_equipment(room: Room, requested: str) -> bool:
    return any(equipment_tag_matches(requested, tag) for tag in room.equipment)


def matched_equipment(room: Room, requested: Iterable[str]) -> list[str]:
    return [tag for tag in requested if room_has_equipment(room, tag)]


def contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and normalize(needle) in normalize(haystack)


def validate_criteria(criteria: SearchCriteria) -> None:
    if criteria.min_capacity is not None and criteria.min_capacity < 1:
        raise ValidationError("Capacity must be at least 1 person")
    if criteria.max_capacity is not None and criteria.max_capacity < 1:
        raise ValidationError("Maximum capacity must be at least 1 person")
    if (
        criteria.min_capacity is not None
        and criteria.max_capacity is not None
        and criteria.max_capacity < criteria.min_capacity
    ):
        raise ValidationError(
            f"Maximum capacity {criteria.max_capacity} is below the minimum {criteria.min_capacity}"
        )


def matches(room: Room, criteria: SearchCriteria) -> bool:
    """Apply every structural predicate. Exclusions are not applied here."""
    if not room.is_active:
        return False
    if criteria.min_capacity is not None and room.capacity < criteria.min_capacity:
        return False
    if criteria.max_capacity is not None and room.capacity > criteria.max_capacity:
        return False
    if criteria.name and not contains(room.name, criteria.name):
        return False
    if criteria.location and not contains(room.location, criteria.location):
        return False
    return all(room_has_equipment(room, tag) for tag in criteria.equipment)


def filter_rooms(rooms: Iterable[Room], criteria: SearchCriteria) -> list[Room]:
    validate_criteria(criteria)
    return sorted(
        (room for room in rooms if matches(room, criteria)), key=lambda r: r.id
    )


class RoomCatalog:
    """Reads the room inventory and applies structural filters."""

    def __init__(self, db: DatabaseInterface):
        self.db = db

    async def search(self, criteria: SearchCriteria) -> list[Room]:
        validate_criteria(criteria)
        rooms = await self.db.list_rooms()
        matched = filter_rooms(rooms, criteria)
        logger.debug(
            f"Catalog filter matched {len(matched)}/{len(rooms)} rooms for {criteria.to_dict()}"
        )
        return matched

    async def get(self, room_id: int) -> Room:
        room = await self.db.get_room(room_id)
        if room is None or not room.is_active:
            raise NotFoundError("Room", room_id)
        return room

    async def find_by_name(self, name: str) -> Room:
        """Resolve a room by name, case- and accent-insensitively."""
        wanted = normalize(name)
        if not wanted:
            raise ValidationError("A room name is required")
        rooms = await self.db.list_rooms()
        for room in rooms:
            if normalize(room.name) == wanted:
                return room
        partial = [room for room in rooms if wanted in normalize(room.name)]
        if len(partial) == 1:
            return partial[0]
        if partial:
            names = ", ".join(room.name for room in partial)
            raise ValidationError(f"'{name}' matches several rooms ({names}); pick one")
        raise NotFoundError("Room", name)
