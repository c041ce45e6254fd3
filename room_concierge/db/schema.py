"""Schema creation for the reservation store."""

from typing import Any


async def initialize_core_schema(cur: Any) -> None:
    await cur.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    await cur.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id SERIAL PRIMARY KEY,
            display_name TEXT NOT NULL,
            email TEXT UNIQUE,
            organization TEXT,
            created_at TIMESTAMPTZ DEFAULT NOW()
        )
        """
    )
    await cur.execute(
        """
        CREATE TABLE IF NOT EXISTS rooms (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            capacity INTEGER NOT NULL CHECK (capacity >= 1),
            location TEXT NOT NULL DEFAULT '',
            equipment TEXT[] NOT NULL DEFAULT '{}',
            opens_at TIME,
            closes_at TIME,
            is_active BOOLEAN NOT NULL DEFAULT TRUE
        )
        """
    )
    await cur.execute(
        """
        CREATE TABLE IF NOT EXISTS meetings (
            id SERIAL PRIMARY KEY,
            room_id INTEGER NOT NULL REFERENCES rooms(id) ON DELETE CASCADE,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            title TEXT,
            start_time TIMESTAMPTZ NOT NULL,
            end_time TIMESTAMPTZ NOT NULL,
            status TEXT NOT NULL DEFAULT 'confirmed',
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT meetings_end_after_start CHECK (end_time > start_time),
            CONSTRAINT meetings_no_overlap EXCLUDE USING gist (
                room_id WITH =,
                tstzrange(start_time, end_time, '[)') WITH &&
            )
        )
        """
    )


async def create_indexes(cur: Any) -> None:
    await cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_meetings_room_start ON meetings(room_id, start_time)"
    )
    await cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_meetings_user_start ON meetings(user_id, start_time)"
    )
    await cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_users_organization ON users(LOWER(organization))"
    )
