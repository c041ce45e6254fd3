"""Storage contract consumed by the booking engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from room_concierge.models import Meeting, Room, User


class DatabaseInterface(ABC):
    """Async reservation store.

    Implementations raise ``StoreError`` (or ``StoreTimeoutError``) on I/O
    failure and ``BookingOverlapError`` when a write would overlap an existing
    meeting of the same room.
    """

    @abstractmethod
    async def initialize(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    # Rooms

    @abstractmethod
    async def list_rooms(self, active_only: bool = True) -> list[Room]: ...

    @abstractmethod
    async def get_room(self, room_id: int) -> Optional[Room]: ...

    # Users

    @abstractmethod
    async def list_users(self, user_ids: list[int]) -> list[User]: ...

    @abstractmethod
    async def list_users_by_organization(self, organization: str) -> list[User]: ...

    # Meetings

    @abstractmethod
    async def find_overlapping_meetings(
        self,
        room_id: int,
        start: datetime,
        end: datetime,
        exclude_meeting_id: Optional[int] = None,
    ) -> list[Meeting]: ...

    @abstractmethod
    async def find_user_meetings(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Meeting]: ...

    @abstractmethod
    async def next_meeting_start(
        self, room_id: int, after: datetime
    ) -> Optional[datetime]: ...

    @abstractmethod
    async def get_meeting(self, meeting_id: int) -> Optional[Meeting]: ...

    @abstractmethod
    async def list_user_meetings(
        self, user_id: int, since: Optional[datetime] = None
    ) -> list[Meeting]: ...

    @abstractmethod
    async def insert_meeting(
        self,
        room_id: int,
        user_id: int,
        start: datetime,
        end: datetime,
        title: Optional[str] = None,
    ) -> Meeting: ...

    @abstractmethod
    async def update_meeting(
        self,
        meeting_id: int,
        room_id: int,
        start: datetime,
        end: datetime,
        title: Optional[str],
    ) -> Meeting: ...

    @abstractmethod
    async def delete_meeting(self, meeting_id: int) -> bool: ...
