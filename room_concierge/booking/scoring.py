"""Relevance scoring used to order conflict-free candidates."""

from typing import Iterable

from room_concierge.booking.catalog import contains, matched_equipment
from room_concierge.models import Room, ScoredRoom, SearchCriteria

EQUIPMENT_WEIGHT = 10.0
CAPACITY_FIT_MAX = 5.0
CAPACITY_OVERSIZE_PENALTY_CAP = 4.0
NAME_MATCH_BONUS = 3.0
LOCATION_MATCH_BONUS = 2.0


def capacity_fit(room: Room, min_capacity: int) -> float:
    """Best for an exact fit, decays by 0.5 per spare seat down to 1."""
    spare = room.capacity - min_capacity
    if spare < 0:
        return 0.0
    return CAPACITY_FIT_MAX - min(spare / 2, CAPACITY_OVERSIZE_PENALTY_CAP)


def score(room: Room, criteria: SearchCriteria) -> float:
    total = 0.0
    if criteria.equipment:
        total += EQUIPMENT_WEIGHT * len(matched_equipment(room, criteria.equipment))
    if criteria.min_capacity:
        total += capacity_fit(room, criteria.min_capacity)
    if criteria.name and contains(room.name, criteria.name):
        total += NAME_MATCH_BONUS
    if criteria.location and contains(room.location, criteria.location):
        total += LOCATION_MATCH_BONUS
    return total


def rank(rooms: Iterable[Room], criteria: SearchCriteria) -> list[ScoredRoom]:
    """Highest score first; equal scores ordered by room id."""
    scored = [ScoredRoom(room=room, score=score(room, criteria)) for room in rooms]
    scored.sort(key=lambda s: (-s.score, s.room.id))
    return scored
