from room_concierge.engine.database import PostgresDatabase, create_database

__all__ = [
    "PostgresDatabase",
    "create_database",
]
