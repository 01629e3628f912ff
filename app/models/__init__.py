"""SQLAlchemy ORM models."""

from app.models.store import StoreEntry

__all__ = [
    "StoreEntry",
]
