"""Fetch-normalize-sync cycle and captured claim handling."""

import logging
import time
from typing import Any, List, Optional

from pydantic import BaseModel

from app.schemas.records import Claim
from app.schemas.sync import BatchSyncEntry
from app.services.auth import AuthSessionManager
from app.services.fetch import FetchCoordinator, FetchSnapshot
from app.services.normalizer import normalize_claim
from app.services.notifications import Notifier
from app.services.state import Clock, now_millis
from app.services.store import VA_CLAIMS, SqlStore
from app.services.sync import SyncCoordinator

logger = logging.getLogger(__name__)


class CycleResult(BaseModel):
    """Outcome of one fetch cycle."""

    snapshot: FetchSnapshot
    synced: bool = False


class CaptureResult(BaseModel):
    """Outcome of caching and delivering one captured claim."""

    claim: Claim
    attempted: bool = False
    synced: bool = False


class Pipeline:
    """Runs fetch cycles and forwards their claims to the backend."""

    def __init__(
        self,
        fetcher: FetchCoordinator,
        sync: SyncCoordinator,
        auth: AuthSessionManager,
        store: SqlStore,
        notifier: Optional[Notifier] = None,
        clock: Clock = time.time,
    ):
        self.fetcher = fetcher
        self.sync = sync
        self.auth = auth
        self.store = store
        self.notifier = notifier or Notifier()
        self.clock = clock

    async def run_cycle(self, force: bool = False) -> CycleResult:
        """
        Fetch from the VA API, then deliver the claims if logged in.

        Args:
            force: Bypass the fetch cooldown

        Returns:
            The snapshot and whether it reached the backend
        """
        snapshot = await self.fetcher.fetch_all(force=force)
        if snapshot.from_cache:
            return CycleResult(snapshot=snapshot)

        synced = False
        if snapshot.claims:
            session = await self.auth.check_status()
            if session.authenticated:
                claims, raw = self._deliverable(snapshot.claims, snapshot.raw_claims)
                synced = await self.sync.sync_claims(
                    claims,
                    raw,
                    session.access_token,
                    last_updated=snapshot.fetched_at,
                )
            else:
                logger.info("User not authenticated, skipping sync")

        if snapshot.claims is not None:
            await self._notify(snapshot, synced)

        return CycleResult(snapshot=snapshot, synced=synced)

    @staticmethod
    def _deliverable(claims: List[Claim], raw_claims: List[Any]):
        """Drop claims without an id; the backend keys records by claimId."""
        kept = [(c, r) for c, r in zip(claims, raw_claims) if c.claim_id]
        return [c for c, _ in kept], [r for _, r in kept]

    async def _notify(self, snapshot: FetchSnapshot, synced: bool):
        prefs = await self.store.get(["notificationsEnabled"])
        if prefs.get("notificationsEnabled") is False:
            return
        count = len(snapshot.claims or [])
        message = f"{count} claim(s) updated"
        if synced:
            message += " and synced to VetClaim"
        self.notifier.notify("VA claim data refreshed", message)

    async def capture_claim(self, raw: Any, data_type: str) -> CaptureResult:
        """
        Cache and deliver one claim captured outside a fetch cycle.

        Args:
            raw: Raw claim record seen by the page sniffer
            data_type: Kind of record captured

        Returns:
            Normalized claim and whether it was synced
        """
        claim = normalize_claim(raw)
        await self._upsert_cached(claim, raw)

        session = await self.auth.check_status()
        if not session.authenticated:
            logger.info("User not authenticated, skipping sync")
            return CaptureResult(claim=claim)

        synced = await self.sync.sync_claims(
            [claim], [raw], session.access_token, data_type=data_type
        )
        return CaptureResult(claim=claim, attempted=True, synced=synced)

    async def _upsert_cached(self, claim: Claim, raw: Any):
        stored = await self.store.get([VA_CLAIMS])
        entries = list(stored.get(VA_CLAIMS) or [])
        entry = BatchSyncEntry(
            structured=claim.to_wire(),
            raw=raw,
            lastUpdated=now_millis(self.clock),
        ).model_dump(mode="json")

        for index, existing in enumerate(entries):
            if claim.claim_id and existing.get("structured", {}).get("claimId") == claim.claim_id:
                entries[index] = entry
                break
        else:
            entries.append(entry)

        await self.store.set({VA_CLAIMS: entries})
