"""Persistent key-value store backed by the store_entries table."""

import logging
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.store import StoreEntry

logger = logging.getLogger(__name__)

# Store keys
ACCESS_TOKEN = "accessToken"
REFRESH_TOKEN = "refreshToken"
USER_DATA = "userData"
VA_CLAIMS = "vaClaims"
VA_RATINGS = "vaRatings"
VA_APPEALS = "vaAppeals"
VA_LOGGED_IN = "vaLoggedIn"
VA_LAST_FETCH = "vaLastFetch"
LAST_SYNC = "lastSync"

AUTH_KEYS = [ACCESS_TOKEN, REFRESH_TOKEN, USER_DATA]

# Written once on first start
INSTALL_DEFAULTS: Dict[str, Any] = {
    "extensionEnabled": True,
    "notificationsEnabled": True,
    "syncEnabled": True,
    LAST_SYNC: None,
    USER_DATA: None,
    ACCESS_TOKEN: None,
    REFRESH_TOKEN: None,
}


class SqlStore:
    """Durable key-value store with get/set/remove semantics.

    Every call runs in its own session and commits once, so a multi-key
    set or remove lands together. There are no cross-call transactions:
    concurrent read-modify-write cycles are last-writer-wins.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        """Initialize the store."""
        self.session_factory = session_factory

    async def get(self, keys: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """
        Read stored values.

        Args:
            keys: Keys to read, or None for every key

        Returns:
            Mapping of the requested keys that exist to their values
        """
        query = select(StoreEntry)
        if keys is not None:
            query = query.where(StoreEntry.key.in_(list(keys)))

        async with self.session_factory() as db:
            result = await db.execute(query)
            return {entry.key: entry.value for entry in result.scalars().all()}

    async def set(self, values: Mapping[str, Any]) -> None:
        """Write all values in one commit."""
        async with self.session_factory() as db:
            for key, value in values.items():
                await db.merge(StoreEntry(key=key, value=value))
            await db.commit()

    async def remove(self, keys: Iterable[str]) -> None:
        """Delete keys in one commit."""
        async with self.session_factory() as db:
            await db.execute(delete(StoreEntry).where(StoreEntry.key.in_(list(keys))))
            await db.commit()

    async def initialize(self) -> bool:
        """Seed install-time defaults unless the store was already set up.

        Returns:
            True if defaults were written
        """
        existing = await self.get(["extensionEnabled"])
        if existing:
            return False
        await self.set(INSTALL_DEFAULTS)
        logger.info("Persistent store initialized with install defaults")
        return True
