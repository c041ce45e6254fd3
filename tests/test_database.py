"""Tests for PostgreSQL error mapping, without a live server."""

import asyncio
from types import SimpleNamespace
from unittest.mock import patch

import psycopg
import pytest
from psycopg import errors as pg_errors

from room_concierge.engine.database import PostgresDatabase, create_database
from room_concierge.errors import (
    BookingOverlapError,
    NotFoundError,
    StoreError,
    StoreTimeoutError,
)

from conftest import paris


@pytest.fixture
def database():
    return PostgresDatabase(statement_timeout_seconds=0.05)


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_driver_error_becomes_store_error(self, database):
        async def broken(db, room_id):
            raise psycopg.OperationalError("connection refused")

        with patch("room_concierge.engine.database.room_q.get_room", broken):
            with pytest.raises(StoreError) as exc_info:
                await database.get_room(1)
        assert not exc_info.value.retryable
        assert isinstance(exc_info.value.cause, psycopg.OperationalError)

    @pytest.mark.asyncio
    async def test_slow_call_becomes_retryable_timeout(self, database):
        async def slow(db, active_only):
            await asyncio.sleep(1)
            return []

        with patch("room_concierge.engine.database.room_q.list_rooms", slow):
            with pytest.raises(StoreTimeoutError) as exc_info:
                await database.list_rooms()
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_exclusion_violation_becomes_overlap(self, database):
        async def rejected(db, room_id, user_id, start, end, title):
            raise pg_errors.ExclusionViolation("conflicting key value violates exclusion constraint")

        with patch("room_concierge.engine.database.meeting_q.insert_meeting", rejected):
            with pytest.raises(BookingOverlapError) as exc_info:
                await database.insert_meeting(
                    1, 10, paris(2025, 12, 15, 10), paris(2025, 12, 15, 11)
                )
        assert exc_info.value.room_id == 1
        assert exc_info.value.kind == "conflict"

    @pytest.mark.asyncio
    async def test_domain_errors_pass_through(self, database):
        async def missing(db, meeting_id, room_id, start, end, title):
            raise NotFoundError("Meeting", meeting_id)

        with patch("room_concierge.engine.database.meeting_q.update_meeting", missing):
            with pytest.raises(NotFoundError):
                await database.update_meeting(
                    7, 1, paris(2025, 12, 15, 10), paris(2025, 12, 15, 11), None
                )

    @pytest.mark.asyncio
    async def test_connection_before_initialize(self, database):
        with pytest.raises(StoreError, match="not initialized"):
            async with database.connection():
                pass


class TestCreateDatabase:
    def test_requires_postgres_section(self):
        with pytest.raises(ValueError):
            create_database(SimpleNamespace(postgres=None))

    def test_builds_from_config(self):
        config = SimpleNamespace(
            postgres=SimpleNamespace(
                host="db.internal",
                port=5433,
                database="rooms",
                user="concierge",
                password="secret",
                ssl_mode="require",
            ),
            statement_timeout_seconds=2.5,
            pool_min_size=2,
            pool_max_size=4,
        )
        database = create_database(config)
        assert isinstance(database, PostgresDatabase)
        assert database.statement_timeout_seconds == 2.5
        assert "db.internal:5433/rooms?sslmode=require" in database._get_connection_string()
