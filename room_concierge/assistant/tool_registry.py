"""Tool registry with classification metadata.

Categorizes tools as read-only vs mutation so the conversation layer can ask
for confirmation before anything is booked, moved or cancelled.
"""

from types import MappingProxyType
from typing import Iterable, Literal, Mapping, NamedTuple

from langchain_core.tools import BaseTool


class ToolInfo(NamedTuple):
    """Metadata about a tool."""

    name: str
    category: Literal["readonly", "mutation"]
    description: str


TOOL_REGISTRY: Mapping[str, ToolInfo] = MappingProxyType(
    {
        "search_rooms": ToolInfo("search_rooms", "readonly", "Search rooms by criteria"),
        "check_room_availability": ToolInfo(
            "check_room_availability", "readonly", "Check one room for a time slot"
        ),
        "find_room": ToolInfo(
            "find_room", "readonly", "Propose the best free room, skipping refused ones"
        ),
        "list_my_meetings": ToolInfo(
            "list_my_meetings", "readonly", "List the user's upcoming meetings"
        ),
        "find_team_slots": ToolInfo(
            "find_team_slots", "readonly", "Find slots where most of a team is free"
        ),
        "find_instant_room": ToolInfo(
            "find_instant_room", "readonly", "Find rooms free right now"
        ),
        "book_room": ToolInfo("book_room", "mutation", "Book a room"),
        "update_meeting": ToolInfo("update_meeting", "mutation", "Move or rename a meeting"),
        "cancel_meeting": ToolInfo("cancel_meeting", "mutation", "Cancel a meeting"),
        "book_recurring": ToolInfo(
            "book_recurring", "mutation", "Book a recurring series"
        ),
    }
)


def is_mutation_tool(tool_name: str) -> bool:
    """Check if a tool is a mutation tool requiring confirmation."""
    info = TOOL_REGISTRY.get(tool_name)
    return info is not None and info.category == "mutation"


def is_readonly_tool(tool_name: str) -> bool:
    """Check if a tool is read-only (safe to execute)."""
    info = TOOL_REGISTRY.get(tool_name)
    return info is not None and info.category == "readonly"


def get_tool_category(tool_name: str) -> str:
    """Get the category of a tool."""
    info = TOOL_REGISTRY.get(tool_name)
    return info.category if info else "unknown"


def get_readonly_tools(tools: Iterable[BaseTool]) -> list[BaseTool]:
    return [t for t in tools if is_readonly_tool(t.name)]


def get_mutation_tools(tools: Iterable[BaseTool]) -> list[BaseTool]:
    return [t for t in tools if is_mutation_tool(t.name)]
