"""Meeting ledger queries.

Overlap is always the half-open test ``start_time < :end AND end_time > :start``.
Writes lock the room row first so that the overlap check and the write are
serialized per room; the ``meetings_no_overlap`` exclusion constraint backs
this up at the storage level.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from psycopg.rows import dict_row

from room_concierge.errors import BookingOverlapError, NotFoundError
from room_concierge.models import Meeting

if TYPE_CHECKING:
    from room_concierge.engine.database import PostgresDatabase


MEETING_SELECT = """
    SELECT m.id, m.room_id, m.user_id, m.title, m.start_time, m.end_time,
           m.status, r.name AS room_name
    FROM meetings m
    JOIN rooms r ON r.id = m.room_id
"""


async def find_overlapping(
    db: PostgresDatabase,
    room_id: int,
    start: datetime,
    end: datetime,
    exclude_meeting_id: Optional[int] = None,
) -> list[Meeting]:
    async with db.connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                MEETING_SELECT
                + """
                WHERE m.room_id = %s
                  AND m.start_time < %s
                  AND m.end_time > %s
                  AND (%s::INTEGER IS NULL OR m.id <> %s)
                ORDER BY m.start_time, m.id
                """,
                (room_id, end, start, exclude_meeting_id, exclude_meeting_id),
            )
            return [Meeting.from_row(row) for row in await cur.fetchall()]


async def find_user_meetings(
    db: PostgresDatabase, user_id: int, start: datetime, end: datetime
) -> list[Meeting]:
    async with db.connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                MEETING_SELECT
                + """
                WHERE m.user_id = %s
                  AND m.start_time < %s
                  AND m.end_time > %s
                ORDER BY m.start_time, m.id
                """,
                (user_id, end, start),
            )
            return [Meeting.from_row(row) for row in await cur.fetchall()]


async def next_meeting_start(
    db: PostgresDatabase, room_id: int, after: datetime
) -> Optional[datetime]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT MIN(start_time) FROM meetings
                WHERE room_id = %s AND start_time >= %s
                """,
                (room_id, after),
            )
            row = await cur.fetchone()
            return row[0] if row else None


async def get_meeting(db: PostgresDatabase, meeting_id: int) -> Optional[Meeting]:
    async with db.connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(MEETING_SELECT + " WHERE m.id = %s", (meeting_id,))
            row = await cur.fetchone()
            return Meeting.from_row(row) if row else None


async def list_user_meetings(
    db: PostgresDatabase, user_id: int, since: Optional[datetime] = None
) -> list[Meeting]:
    async with db.connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                MEETING_SELECT
                + """
                WHERE m.user_id = %s
                  AND (%s::TIMESTAMPTZ IS NULL OR m.end_time > %s)
                ORDER BY m.start_time, m.id
                """,
                (user_id, since, since),
            )
            return [Meeting.from_row(row) for row in await cur.fetchall()]


async def _lock_room_and_check(
    cur: Any,
    room_id: int,
    start: datetime,
    end: datetime,
    exclude_meeting_id: Optional[int],
) -> None:
    await cur.execute("SELECT id FROM rooms WHERE id = %s FOR UPDATE", (room_id,))
    if not await cur.fetchone():
        raise NotFoundError("Room", room_id)
    await cur.execute(
        """
        SELECT id FROM meetings
        WHERE room_id = %s
          AND start_time < %s
          AND end_time > %s
          AND (%s::INTEGER IS NULL OR id <> %s)
        LIMIT 1
        """,
        (room_id, end, start, exclude_meeting_id, exclude_meeting_id),
    )
    if await cur.fetchone():
        raise BookingOverlapError(room_id)


async def insert_meeting(
    db: PostgresDatabase,
    room_id: int,
    user_id: int,
    start: datetime,
    end: datetime,
    title: Optional[str] = None,
) -> Meeting:
    async with db.connection() as conn:
        async with conn.transaction():
            async with conn.cursor(row_factory=dict_row) as cur:
                await _lock_room_and_check(cur, room_id, start, end, None)
                await cur.execute(
                    """
                    INSERT INTO meetings (room_id, user_id, title, start_time, end_time)
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING id
                    """,
                    (room_id, user_id, title, start, end),
                )
                row = await cur.fetchone()
                await cur.execute(MEETING_SELECT + " WHERE m.id = %s", (row["id"],))
                return Meeting.from_row(await cur.fetchone())


async def update_meeting(
    db: PostgresDatabase,
    meeting_id: int,
    room_id: int,
    start: datetime,
    end: datetime,
    title: Optional[str],
) -> Meeting:
    async with db.connection() as conn:
        async with conn.transaction():
            async with conn.cursor(row_factory=dict_row) as cur:
                await _lock_room_and_check(cur, room_id, start, end, meeting_id)
                await cur.execute(
                    """
                    UPDATE meetings
                    SET room_id = %s, start_time = %s, end_time = %s,
                        title = %s, updated_at = NOW()
                    WHERE id = %s
                    """,
                    (room_id, start, end, title, meeting_id),
                )
                if cur.rowcount == 0:
                    raise NotFoundError("Meeting", meeting_id)
                await cur.execute(MEETING_SELECT + " WHERE m.id = %s", (meeting_id,))
                return Meeting.from_row(await cur.fetchone())


async def delete_meeting(db: PostgresDatabase, meeting_id: int) -> bool:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute("DELETE FROM meetings WHERE id = %s", (meeting_id,))
            deleted = cur.rowcount > 0
        await conn.commit()
        return deleted
