"""LangChain tools for the booking assistant.

Tools are built per session by ``build_tools`` and close over that session's
context; there is no module-level tool table holding state. Every tool
returns a JSON document with a ``status`` and a ``summary`` the model can
relay to the user.
"""

import json
import logging
from typing import Any, Optional

from langchain_core.tools import BaseTool, tool

from room_concierge.assistant.context import AssistantContext

logger = logging.getLogger(__name__)


def _dump(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, default=str)


def build_tools(context: AssistantContext) -> list[BaseTool]:
    """Build the tool list for one chat session."""
    service = context.service

    # =========================================================================
    # Read-only tools
    # =========================================================================

    @tool
    async def search_rooms(
        min_capacity: Optional[int] = None,
        max_capacity: Optional[int] = None,
        equipment: Optional[list[str]] = None,
        location: Optional[str] = None,
        name: Optional[str] = None,
    ) -> str:
        """Search meeting rooms by capacity, equipment, location or name, ignoring time.

        Args:
            min_capacity: Minimum number of seats
            max_capacity: Maximum number of seats
            equipment: Equipment tags that must all be present (e.g. ["projector", "whiteboard"])
            location: Part of the location, e.g. a floor or building
            name: Part of the room name

        Returns:
            JSON with matching rooms and a summary.
        """
        return _dump(
            await service.search_rooms(min_capacity, max_capacity, equipment, location, name)
        )

    @tool
    async def check_room_availability(
        start: str,
        duration_minutes: Optional[int] = None,
        room_id: Optional[int] = None,
        room_name: Optional[str] = None,
    ) -> str:
        """Check whether one specific room is free for a time slot.

        Always call this right before proposing or booking a room the user named.

        Args:
            start: ISO 8601 start time, e.g. 2025-12-13T14:00
            duration_minutes: Meeting length (default: 60)
            room_id: Room id, if known
            room_name: Room name, if the id is not known

        Returns:
            JSON with status "available" or "unavailable", conflicts and a summary.
        """
        return _dump(await service.check_room(start, duration_minutes, room_id, room_name))

    @tool
    async def find_room(
        start: str,
        duration_minutes: Optional[int] = None,
        min_capacity: Optional[int] = None,
        max_capacity: Optional[int] = None,
        equipment: Optional[list[str]] = None,
        location: Optional[str] = None,
        name: Optional[str] = None,
        exclude_room_ids: Optional[list[int]] = None,
    ) -> str:
        """Propose the best free room for a time slot, plus ranked alternatives.

        When the user refuses a proposal, call again with every refused room id
        in exclude_room_ids. Status "no_match" means no room fits the criteria
        (suggest broader criteria); "all_busy" means matching rooms exist but are
        taken (suggest another time); "exhausted" means every match was refused.

        Args:
            start: ISO 8601 start time
            duration_minutes: Meeting length (default: 60)
            min_capacity: Number of attendees
            max_capacity: Maximum number of seats
            equipment: Required equipment tags
            location: Part of the location
            name: Part of the room name
            exclude_room_ids: Rooms already proposed and refused

        Returns:
            JSON with best_room, alternatives and a summary.
        """
        return _dump(
            await service.resolve_room(
                start,
                duration_minutes,
                min_capacity,
                max_capacity,
                equipment,
                location,
                name,
                exclude_room_ids,
            )
        )

    @tool
    async def list_my_meetings(upcoming_only: bool = True) -> str:
        """List the signed-in user's meetings, with their ids.

        Args:
            upcoming_only: Only meetings that have not ended yet (default: True)

        Returns:
            JSON with meetings and a summary.
        """
        return _dump(await service.list_meetings(context.user_id, upcoming_only))

    @tool
    async def find_team_slots(
        date_from: str,
        date_to: Optional[str] = None,
        organization: Optional[str] = None,
        user_ids: Optional[list[int]] = None,
        duration_minutes: Optional[int] = None,
        min_availability_percent: Optional[float] = None,
        equipment: Optional[list[str]] = None,
        team_size: Optional[int] = None,
    ) -> str:
        """Find the best slots for a team meeting, with a free room for each.

        Args:
            date_from: First day to search (YYYY-MM-DD)
            date_to: Last day to search (YYYY-MM-DD, default: same day)
            organization: Team or organization name whose members must attend
            user_ids: Explicit attendee ids
            duration_minutes: Meeting length (default: 60)
            min_availability_percent: Minimum share of attendees who must be free (default: 80)
            equipment: Equipment the room must have
            team_size: Headcount to assume if no member can be found

        Returns:
            JSON with up to 3 slots and a summary.
        """
        return _dump(
            await service.find_team_slots(
                date_from,
                date_to,
                organization,
                user_ids,
                duration_minutes,
                min_availability_percent,
                equipment,
                team_size,
            )
        )

    @tool
    async def find_instant_room(
        duration_minutes: Optional[int] = None,
        min_capacity: Optional[int] = None,
        equipment: Optional[list[str]] = None,
        location: Optional[str] = None,
    ) -> str:
        """Find rooms that are free right now, smallest first.

        Args:
            duration_minutes: How long the room is needed (default: 60)
            min_capacity: Number of attendees
            equipment: Required equipment tags
            location: Part of the location

        Returns:
            JSON with up to 3 rooms, how long each stays free, and a summary.
        """
        return _dump(
            await service.find_instant_room(duration_minutes, min_capacity, equipment, location)
        )

    # =========================================================================
    # Mutation tools
    # =========================================================================

    @tool
    async def book_room(
        start: str,
        duration_minutes: Optional[int] = None,
        room_id: Optional[int] = None,
        room_name: Optional[str] = None,
        title: Optional[str] = None,
    ) -> str:
        """Book a room for the signed-in user.

        ⚠️ MUTATION: Requires user confirmation before execution.

        Args:
            start: ISO 8601 start time
            duration_minutes: Meeting length (default: 60)
            room_id: Room id, if known
            room_name: Room name, if the id is not known
            title: Meeting title

        Returns:
            JSON with status "created" or "conflict" and a summary.
        """
        return _dump(
            await service.book_room(
                context.user_id, start, duration_minutes, room_id, room_name, title
            )
        )

    @tool
    async def update_meeting(
        meeting_id: int,
        start: Optional[str] = None,
        end: Optional[str] = None,
        duration_minutes: Optional[int] = None,
        room_id: Optional[int] = None,
        room_name: Optional[str] = None,
        title: Optional[str] = None,
    ) -> str:
        """Move, resize, rename or change the room of one of the user's meetings.

        ⚠️ MUTATION: Requires user confirmation before execution.

        Args:
            meeting_id: Meeting id from list_my_meetings
            start: New ISO 8601 start time (keeps the duration)
            end: New ISO 8601 end time
            duration_minutes: New length, takes precedence over end
            room_id: New room id
            room_name: New room name, if the id is not known
            title: New title

        Returns:
            JSON with status "updated" or "conflict" and a summary.
        """
        return _dump(
            await service.update_meeting(
                context.user_id,
                meeting_id,
                start,
                end,
                duration_minutes,
                room_id,
                room_name,
                title,
            )
        )

    @tool
    async def cancel_meeting(meeting_id: int) -> str:
        """Cancel one of the user's meetings.

        ⚠️ MUTATION: Requires user confirmation before execution.

        Args:
            meeting_id: Meeting id from list_my_meetings

        Returns:
            JSON with status "cancelled" and a summary.
        """
        return _dump(await service.cancel_meeting(context.user_id, meeting_id))

    @tool
    async def book_recurring(
        start: str,
        pattern: str,
        occurrences: int,
        duration_minutes: Optional[int] = None,
        room_id: Optional[int] = None,
        room_name: Optional[str] = None,
        title: Optional[str] = None,
    ) -> str:
        """Book a recurring series in one room. Blocked dates are reported, not retried.

        ⚠️ MUTATION: Requires user confirmation before execution.

        Args:
            start: ISO 8601 start time of the first occurrence
            pattern: "daily", "weekly", "biweekly" or "monthly"
            occurrences: Number of occurrences (at most 12)
            duration_minutes: Meeting length (default: 60)
            room_id: Room id, if known
            room_name: Room name, if the id is not known
            title: Meeting title

        Returns:
            JSON with created and failed occurrences and a summary.
        """
        return _dump(
            await service.book_recurring(
                context.user_id,
                start,
                pattern,
                occurrences,
                duration_minutes,
                room_id,
                room_name,
                title,
            )
        )

    tools = [
        search_rooms,
        check_room_availability,
        find_room,
        list_my_meetings,
        find_team_slots,
        find_instant_room,
        book_room,
        update_meeting,
        cancel_meeting,
        book_recurring,
    ]
    logger.debug(
        f"Built {len(tools)} tools for {'a guest' if context.is_guest else f'user {context.user_id}'}"
    )
    return tools
