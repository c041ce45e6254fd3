"""Per-session context handed to the assistant tool builders."""

from dataclasses import dataclass
from typing import Optional

from room_concierge.services import BookingService


@dataclass(frozen=True)
class AssistantContext:
    """What a chat session's tools act on, and on whose behalf.

    ``user_id`` comes from the external session layer; ``None`` means a guest
    who may search but not book.
    """

    service: BookingService
    user_id: Optional[int] = None

    @property
    def is_guest(self) -> bool:
        return self.user_id is None
