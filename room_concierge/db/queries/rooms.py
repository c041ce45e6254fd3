"""Room inventory queries."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from psycopg.rows import dict_row

from room_concierge.models import Room

if TYPE_CHECKING:
    from room_concierge.engine.database import PostgresDatabase


ROOM_COLUMNS = "id, name, capacity, location, equipment, opens_at, closes_at, is_active"


async def list_rooms(db: PostgresDatabase, active_only: bool = True) -> list[Room]:
    sql = f"SELECT {ROOM_COLUMNS} FROM rooms {{active_filter}} ORDER BY id"
    sql = sql.format(active_filter="WHERE is_active = TRUE" if active_only else "")

    async with db.connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(sql)
            return [Room.from_row(row) for row in await cur.fetchall()]


async def get_room(db: PostgresDatabase, room_id: int) -> Optional[Room]:
    async with db.connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                f"SELECT {ROOM_COLUMNS} FROM rooms WHERE id = %s", (room_id,)
            )
            row = await cur.fetchone()
            return Room.from_row(row) if row else None
