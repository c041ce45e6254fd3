from room_concierge.db.types import DatabaseInterface

__all__ = ["DatabaseInterface"]
