from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Optional, TypeVar

import psycopg
from psycopg import errors as pg_errors

from room_concierge.db import schema
from room_concierge.db.types import DatabaseInterface
from room_concierge.db.queries import meetings as meeting_q
from room_concierge.db.queries import rooms as room_q
from room_concierge.db.queries import users as user_q
from room_concierge.errors import (
    BookingError,
    BookingOverlapError,
    StoreError,
    StoreTimeoutError,
)
from room_concierge.models import Meeting, Room, User

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PostgresDatabase(DatabaseInterface):
    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "rooms",
        user: str = "rooms",
        password: str = "",
        ssl_mode: str = "prefer",
        statement_timeout_seconds: float = 5.0,
        pool_min_size: int = 1,
        pool_max_size: int = 10,
    ):
        super().__init__()

        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.ssl_mode = ssl_mode
        self.statement_timeout_seconds = statement_timeout_seconds
        self.pool_min_size = pool_min_size
        self.pool_max_size = pool_max_size
        self._pool: Any = None

    def _get_connection_string(self) -> str:
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}?sslmode={self.ssl_mode}"

    async def initialize(self) -> None:
        from psycopg_pool import AsyncConnectionPool

        self._pool = AsyncConnectionPool(
            self._get_connection_string(),
            min_size=self.pool_min_size,
            max_size=self.pool_max_size,
            open=False,
        )
        await self._pool.open()

        async with self._pool.connection() as conn:
            async with conn.cursor() as cur:
                await schema.initialize_core_schema(cur)
                await schema.create_indexes(cur)
            await conn.commit()
        logger.info(f"Database initialized at {self.host}:{self.port}/{self.database}")

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[Any]:
        if not self._pool:
            raise StoreError("Database not initialized. Call initialize() first.")
        async with self._pool.connection() as conn:
            yield conn

    async def close(self) -> None:
        if self._pool:
            await self._pool.close()
            self._pool = None

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        """Run one store operation under the statement timeout.

        Domain errors pass through; everything else becomes a StoreError so
        that callers never mistake an unknown result for a negative one.
        """
        try:
            return await asyncio.wait_for(
                awaitable, timeout=self.statement_timeout_seconds
            )
        except BookingError:
            raise
        except asyncio.TimeoutError as e:
            logger.error(
                f"Store call {operation} timed out after {self.statement_timeout_seconds}s"
            )
            raise StoreTimeoutError(
                f"{operation} timed out after {self.statement_timeout_seconds}s", e
            )
        except psycopg.Error as e:
            logger.error(f"Store call {operation} failed: {e}")
            raise StoreError(f"{operation} failed: {e}", e)

    async def _write(self, operation: str, room_id: int, awaitable: Awaitable[T]) -> T:
        try:
            return await self._call(operation, awaitable)
        except StoreError as e:
            if isinstance(e.cause, pg_errors.ExclusionViolation):
                logger.info(f"{operation} rejected by overlap constraint for room {room_id}")
                raise BookingOverlapError(room_id)
            raise

    async def list_rooms(self, active_only: bool = True) -> list[Room]:
        return await self._call("list_rooms", room_q.list_rooms(self, active_only))

    async def get_room(self, room_id: int) -> Optional[Room]:
        return await self._call("get_room", room_q.get_room(self, room_id))

    async def list_users(self, user_ids: list[int]) -> list[User]:
        return await self._call("list_users", user_q.list_users(self, user_ids))

    async def list_users_by_organization(self, organization: str) -> list[User]:
        return await self._call(
            "list_users_by_organization",
            user_q.list_users_by_organization(self, organization),
        )

    async def find_overlapping_meetings(
        self,
        room_id: int,
        start: datetime,
        end: datetime,
        exclude_meeting_id: Optional[int] = None,
    ) -> list[Meeting]:
        return await self._call(
            "find_overlapping_meetings",
            meeting_q.find_overlapping(self, room_id, start, end, exclude_meeting_id),
        )

    async def find_user_meetings(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Meeting]:
        return await self._call(
            "find_user_meetings",
            meeting_q.find_user_meetings(self, user_id, start, end),
        )

    async def next_meeting_start(
        self, room_id: int, after: datetime
    ) -> Optional[datetime]:
        return await self._call(
            "next_meeting_start", meeting_q.next_meeting_start(self, room_id, after)
        )

    async def get_meeting(self, meeting_id: int) -> Optional[Meeting]:
        return await self._call("get_meeting", meeting_q.get_meeting(self, meeting_id))

    async def list_user_meetings(
        self, user_id: int, since: Optional[datetime] = None
    ) -> list[Meeting]:
        return await self._call(
            "list_user_meetings", meeting_q.list_user_meetings(self, user_id, since)
        )

    async def insert_meeting(
        self,
        room_id: int,
        user_id: int,
        start: datetime,
        end: datetime,
        title: Optional[str] = None,
    ) -> Meeting:
        return await self._write(
            "insert_meeting",
            room_id,
            meeting_q.insert_meeting(self, room_id, user_id, start, end, title),
        )

    async def update_meeting(
        self,
        meeting_id: int,
        room_id: int,
        start: datetime,
        end: datetime,
        title: Optional[str],
    ) -> Meeting:
        return await self._write(
            "update_meeting",
            room_id,
            meeting_q.update_meeting(self, meeting_id, room_id, start, end, title),
        )

    async def delete_meeting(self, meeting_id: int) -> bool:
        return await self._call(
            "delete_meeting", meeting_q.delete_meeting(self, meeting_id)
        )


def create_database(config: Any) -> DatabaseInterface:
    postgres_config = getattr(config, "postgres", None)
    if not postgres_config:
        raise ValueError("PostgreSQL config is required (database.postgres)")

    return PostgresDatabase(
        host=postgres_config.host,
        port=postgres_config.port,
        database=postgres_config.database,
        user=postgres_config.user,
        password=postgres_config.password,
        ssl_mode=getattr(postgres_config, "ssl_mode", "prefer"),
        statement_timeout_seconds=getattr(config, "statement_timeout_seconds", 5.0),
        pool_min_size=getattr(config, "pool_min_size", 1),
        pool_max_size=getattr(config, "pool_max_size", 10),
    )
