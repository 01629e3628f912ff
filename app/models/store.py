"""Key-value table backing the persistent store."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Text

from app.database import Base


class StoreEntry(Base):
    """One key of the persistent store with its JSON value."""

    __tablename__ = "store_entries"

    key = Column(Text, primary_key=True)
    value = Column(JSON)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
