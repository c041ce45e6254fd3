"""User directory queries (read-only)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from psycopg.rows import dict_row

from room_concierge.models import User

if TYPE_CHECKING:
    from room_concierge.engine.database import PostgresDatabase


async def list_users(db: PostgresDatabase, user_ids: list[int]) -> list[User]:
    if not user_ids:
        return []
    async with db.connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                """
                SELECT id, display_name, email, organization FROM users
                WHERE id = ANY(%s)
                ORDER BY id
                """,
                (list(user_ids),),
            )
            return [User.from_row(row) for row in await cur.fetchall()]


async def list_users_by_organization(
    db: PostgresDatabase, organization: str
) -> list[User]:
    async with db.connection() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                """
                SELECT id, display_name, email, organization FROM users
                WHERE LOWER(organization) = LOWER(%s)
                ORDER BY id
                """,
                (organization,),
            )
            return [User.from_row(row) for row in await cur.fetchall()]
