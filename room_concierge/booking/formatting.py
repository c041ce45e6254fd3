"""Human-readable summaries for booking results.

Each result type carries exactly one summary string; the functions here are
the only place that text is produced.
"""

from datetime import datetime
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from room_concierge.models import (
    BookingResult,
    BookingStatus,
    InstantResult,
    Meeting,
    Resolution,
    ResolveOutcome,
    Room,
    RoomCheck,
    SearchCriteria,
    SeriesResult,
    TeamScan,
    TimeWindow,
)


def format_window(window: TimeWindow, tz: ZoneInfo) -> str:
    start = window.start.astimezone(tz)
    end = window.end.astimezone(tz)
    if start.date() == end.date():
        return f"{start:%a %d/%m/%Y} from {start:%H:%M} to {end:%H:%M}"
    return f"{start:%a %d/%m/%Y %H:%M} to {end:%a %d/%m/%Y %H:%M}"


def format_instant(value: datetime, tz: ZoneInfo) -> str:
    return f"{value.astimezone(tz):%a %d/%m/%Y %H:%M}"


def format_room_line(room: Room) -> str:
    parts = [f"**{room.name}**", f"{room.capacity} people"]
    if room.location:
        parts.append(room.location)
    if room.equipment:
        parts.append(", ".join(room.equipment))
    return " • ".join(parts)


def format_room_list(rooms: Iterable[Room]) -> str:
    return "\n".join(f"• {format_room_line(room)}" for room in rooms)


def format_meeting_line(meeting: Meeting, tz: ZoneInfo) -> str:
    window = TimeWindow(meeting.start_time, meeting.end_time)
    room = meeting.room_name or f"room {meeting.room_id}"
    return f"[{meeting.id}] **{meeting.title or 'Meeting'}** in {room}, {format_window(window, tz)}"


def _describe_criteria(criteria: SearchCriteria) -> str:
    parts = []
    if criteria.min_capacity:
        parts.append(f"at least {criteria.min_capacity} people")
    if criteria.max_capacity:
        parts.append(f"at most {criteria.max_capacity} people")
    if criteria.equipment:
        parts.append("with " + ", ".join(criteria.equipment))
    if criteria.location:
        parts.append(f"located in '{criteria.location}'")
    if criteria.name:
        parts.append(f"named like '{criteria.name}'")
    return ", ".join(parts) if parts else "any room"


def summarize_search(rooms: list[Room], criteria: SearchCriteria) -> str:
    if not rooms:
        return f"❌ No room matches these criteria ({_describe_criteria(criteria)})."
    return f"✅ {len(rooms)} room(s) match ({_describe_criteria(criteria)}):\n\n" + format_room_list(rooms)


def summarize_resolution(resolution: Resolution, tz: ZoneInfo) -> str:
    when = format_window(resolution.window, tz)
    outcome = resolution.outcome
    if outcome is ResolveOutcome.NO_MATCH:
        text = (
            f"❌ No room matches these criteria ({_describe_criteria(resolution.criteria)}). "
            "Try broadening the search."
        )
    elif outcome is ResolveOutcome.EXHAUSTED:
        text = (
            "❌ Every matching room has already been proposed. "
            "Try other criteria or another time."
        )
    elif outcome is ResolveOutcome.ALL_BUSY:
        text = (
            f"❌ Rooms match your criteria but none is free {when}. "
            "Try another time slot."
        )
    else:
        best = resolution.best_room.room
        text = f"✅ Best match for {when}:\n{format_room_line(best)}"
        if resolution.alternatives:
            text += "\n\nAlternatives:\n" + format_room_list(
                alt.room for alt in resolution.alternatives
            )
    if resolution.unverified_room_ids:
        text += (
            f"\n\n⚠️ Availability of {len(resolution.unverified_room_ids)} room(s) "
            "could not be verified and they were left out."
        )
    return text


def summarize_room_check(check: RoomCheck, tz: ZoneInfo) -> str:
    when = format_window(check.window, tz)
    if check.available:
        return f"✅ **{check.room.name}** is available {when}.\n{format_room_line(check.room)}"
    if check.closed:
        return f"❌ **{check.room.name}** is closed {when}."
    return f"❌ **{check.room.name}** is not available {when} ({len(check.conflicts)} conflicting booking(s))."


def summarize_booking(result: BookingResult, tz: ZoneInfo, room_name: Optional[str] = None) -> str:
    meeting = result.meeting
    if result.status is BookingStatus.CONFLICT:
        name = room_name or "The room"
        if result.conflicts:
            return (
                f"❌ {name} is already booked at that time:\n"
                + "\n".join(f"• {format_meeting_line(m, tz)}" for m in result.conflicts)
                + "\nPlease pick another room or time."
            )
        return f"❌ {name} is already booked at that time. Please pick another room or time."
    if meeting is None:
        return "✅ Done."
    window = TimeWindow(meeting.start_time, meeting.end_time)
    room = meeting.room_name or room_name or f"room {meeting.room_id}"
    if result.status is BookingStatus.CREATED:
        return f"✅ Booking confirmed: **{room}**, {format_window(window, tz)} (meeting #{meeting.id})."
    if result.status is BookingStatus.UPDATED:
        return f"✅ Meeting #{meeting.id} updated: **{room}**, {format_window(window, tz)}."
    return f"✅ Meeting #{meeting.id} in **{room}** on {format_window(window, tz)} has been cancelled."


def summarize_meetings(meetings: list[Meeting], tz: ZoneInfo) -> str:
    if not meetings:
        return "You have no upcoming meetings."
    return "📅 Your meetings:\n" + "\n".join(
        f"• {format_meeting_line(m, tz)}" for m in meetings
    )


def summarize_team_scan(scan: TeamScan, min_percent: float, tz: ZoneInfo) -> str:
    if not scan.slots:
        return (
            f"❌ No slot reaches {min_percent:g}% availability for "
            f"{scan.member_count} people in that period."
        )
    lines = []
    for slot in scan.slots:
        line = (
            f"• {slot.day_name(tz)} {slot.date_label(tz)} {slot.time_label(tz)}: "
            f"{slot.availability_percent:.0f}% available "
            f"({slot.member_count - slot.unavailable_count}/{slot.member_count})"
        )
        if slot.room:
            line += f", room **{slot.room.name}**"
        elif slot.room_unverified:
            line += ", room availability could not be verified"
        else:
            line += ", no free room at that time"
        lines.append(line)
    text = "✅ Best slots for the team:\n" + "\n".join(lines)
    if scan.assumed_team_size:
        text += "\n\nNo member calendars were found; availability assumes everyone is free."
    if scan.unverified_user_ids:
        text += (
            f"\n\n⚠️ {len(scan.unverified_user_ids)} calendar(s) could not be read "
            "and were left out of the percentages."
        )
    return text


def summarize_instant(result: InstantResult, tz: ZoneInfo) -> str:
    start = format_instant(result.start, tz)
    if result.outside_business_hours:
        return f"🕘 {start} is outside business hours; no room is offered for instant use."
    if not result.options:
        return f"❌ No room is free from {start} for {result.duration_minutes} minutes."
    lines = [
        f"• {format_room_line(opt.room)}: available for {opt.free_minutes} more minutes"
        for opt in result.options
    ]
    return f"✅ Rooms free now ({start}):\n" + "\n".join(lines)


def summarize_series(result: SeriesResult, tz: ZoneInfo) -> str:
    lines = []
    if result.created:
        lines.append(f"✅ {len(result.created)} occurrence(s) booked:")
        lines.extend(f"• {format_meeting_line(m, tz)}" for m in result.created)
    if result.failed:
        lines.append(f"❌ {len(result.failed)} occurrence(s) could not be booked:")
        lines.extend(
            f"• {format_instant(f.start, tz)}: {f.reason}" for f in result.failed
        )
    return "\n".join(lines)
