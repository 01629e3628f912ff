"""Periodic re-sync of cached claims to the backend."""

import asyncio
import logging
from typing import Optional

from app.config import settings
from app.schemas.records import Claim
from app.schemas.sync import BatchSyncEntry
from app.services.auth import AuthSessionManager
from app.services.state import PipelineState
from app.services.store import VA_CLAIMS, SqlStore
from app.services.sync import SyncCoordinator

logger = logging.getLogger(__name__)


class SyncWorker:
    """Background task that re-delivers the last known claims snapshot.

    It never fetches from the VA API; it only resends what is cached.
    """

    def __init__(
        self,
        auth: AuthSessionManager,
        sync: SyncCoordinator,
        store: SqlStore,
        state: PipelineState,
        interval: Optional[float] = None,
    ):
        """Initialize worker."""
        self.auth = auth
        self.sync = sync
        self.store = store
        self.state = state
        self.interval = interval if interval is not None else settings.SYNC_INTERVAL_SECONDS

    async def run_once(self) -> bool:
        """
        Sync cached claims if there is a session and something to send.

        Returns:
            True if a delivery reached the backend
        """
        session = await self.auth.check_status()
        if not session.authenticated:
            logger.info("Periodic sync skipped: not authenticated")
            return False

        stored = await self.store.get([VA_CLAIMS])
        entries = [
            entry
            for entry in (BatchSyncEntry.model_validate(e) for e in stored.get(VA_CLAIMS) or [])
            if entry.structured.get("claimId")
        ]
        if not entries:
            logger.info("No claim data to sync")
            return False

        return await self.sync.sync_claims(
            [Claim.model_validate(entry.structured) for entry in entries],
            [entry.raw for entry in entries],
            session.access_token,
            last_updated=[entry.lastUpdated for entry in entries],
        )

    async def run(self, stop_event: Optional[asyncio.Event] = None):
        """Main worker loop.

        Args:
            stop_event: Optional event that ends the loop when set
        """
        stop_event = stop_event or asyncio.Event()
        logger.info(f"Sync worker started, interval {self.interval}s")

        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
                break
            except asyncio.TimeoutError:
                pass

            logger.info("Running periodic sync...")
            try:
                await self.run_once()
            except Exception as e:
                # Store failures must not kill the timer
                logger.error(f"Periodic sync error: {e}", exc_info=True)

        logger.info("Sync worker stopped")

    def start(self, stop_event: Optional[asyncio.Event] = None) -> asyncio.Task:
        """Start the loop as a task, replacing any running one."""
        if self.state.sync_task is not None and not self.state.sync_task.done():
            self.state.sync_task.cancel()
        self.state.sync_task = asyncio.create_task(self.run(stop_event))
        return self.state.sync_task

    async def stop(self):
        task = self.state.sync_task
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self.state.sync_task = None
