"""Fetch claims, ratings and appeals from the VA API."""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from app.exceptions import UpstreamAuthError
from app.schemas.records import Appeal, Claim, Rating
from app.schemas.sync import BatchSyncEntry
from app.services.normalizer import normalize_appeals, normalize_claim, normalize_rating
from app.services.state import Clock, PipelineState
from app.services.store import (
    VA_APPEALS,
    VA_CLAIMS,
    VA_LAST_FETCH,
    VA_LOGGED_IN,
    VA_RATINGS,
    SqlStore,
)
from app.services.va_client import VAClient

logger = logging.getLogger(__name__)

# Failures that make a fetch leg count as "no data"
FETCH_ERRORS = (UpstreamAuthError, httpx.HTTPError, ValueError)


class FetchSnapshot(BaseModel):
    """Result of one fetch cycle, or the cached snapshot inside the cooldown.

    A leg that failed is None; cached snapshots come from the store.
    """

    claims: Optional[List[Claim]] = None
    raw_claims: List[Any] = Field(default_factory=list)
    rating: Optional[Rating] = None
    appeals: Optional[List[Appeal]] = None
    fetched_at: Optional[int] = None
    from_cache: bool = False


class FetchCoordinator:
    """Pulls the VA endpoints with per-leg failure isolation and a cooldown."""

    def __init__(
        self,
        va_client: VAClient,
        store: SqlStore,
        state: PipelineState,
        cooldown_seconds: float = 60.0,
        clock: Clock = time.time,
    ):
        self.va = va_client
        self.store = store
        self.state = state
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock

    def in_cooldown(self) -> bool:
        last = self.state.last_fetch_at
        return last is not None and self.clock() - last < self.cooldown_seconds

    async def fetch_all(self, force: bool = False) -> FetchSnapshot:
        """
        Run a fetch cycle unless the cooldown is active.

        The cycle start time is recorded before any request goes out, so a
        second trigger arriving mid-cycle hits the cooldown.

        Args:
            force: Bypass the cooldown (manual trigger)

        Returns:
            Fresh snapshot, or the cached one when skipped by the cooldown
        """
        if not force and self.in_cooldown():
            logger.info("Fetch skipped: cooldown active")
            return await self.cached_snapshot()

        started = self.clock()
        self.state.last_fetch_at = started
        fetched_at = int(started * 1000)
        await self.store.set({VA_LAST_FETCH: fetched_at})

        # Upstream 401/403s from any leg, detail lookups included
        auth_errors: List[UpstreamAuthError] = []
        claims_leg, rating, appeals = await asyncio.gather(
            self._fetch_claims(auth_errors),
            self._fetch_rating(auth_errors),
            self._fetch_appeals(auth_errors),
        )
        claims, raw_claims = claims_leg if claims_leg is not None else (None, [])

        updates: Dict[str, Any] = {}
        if claims is not None:
            updates[VA_CLAIMS] = [
                BatchSyncEntry(
                    structured=claim.to_wire(),
                    raw=raw,
                    lastUpdated=fetched_at,
                ).model_dump(mode="json")
                for claim, raw in zip(claims, raw_claims)
            ]
        if rating is not None:
            updates[VA_RATINGS] = rating.to_wire()
        if appeals is not None:
            updates[VA_APPEALS] = [appeal.to_wire() for appeal in appeals]
        if auth_errors:
            logger.warning(f"VA session not authenticated: {auth_errors[0]}")
            updates[VA_LOGGED_IN] = False
        elif claims is not None:
            updates[VA_LOGGED_IN] = True
        if updates:
            await self.store.set(updates)

        logger.info(
            f"Fetch complete: claims={len(claims) if claims is not None else 'failed'}, "
            f"rating={'yes' if rating is not None else 'no'}, "
            f"appeals={len(appeals) if appeals is not None else 'failed'}"
        )

        return FetchSnapshot(
            claims=claims,
            raw_claims=raw_claims,
            rating=rating,
            appeals=appeals,
            fetched_at=fetched_at,
        )

    async def _fetch_claims(self, auth_errors: List[UpstreamAuthError]):
        """Fetch the claims list and replace summaries with details where possible."""
        try:
            body = await self.va.get_claims()
        except UpstreamAuthError as e:
            auth_errors.append(e)
            return None
        except FETCH_ERRORS as e:
            logger.error(f"Claims list fetch failed: {e}")
            return None

        summaries = body.get("data") if isinstance(body, dict) else None
        if not isinstance(summaries, list):
            logger.warning("Claims list response had no data array")
            return None

        raw_claims = await asyncio.gather(
            *(self._fetch_claim_detail(summary, auth_errors) for summary in summaries)
        )
        claims = [normalize_claim(raw) for raw in raw_claims]
        return claims, list(raw_claims)

    async def _fetch_claim_detail(self, summary: Any, auth_errors: List[UpstreamAuthError]) -> Any:
        """Return the detailed record for a summary, or the summary on failure."""
        claim_id = summary.get("id") if isinstance(summary, dict) else None
        if not claim_id:
            return summary
        try:
            body = await self.va.get_claim(str(claim_id))
        except UpstreamAuthError as e:
            auth_errors.append(e)
            return summary
        except FETCH_ERRORS as e:
            logger.warning(f"Detail fetch failed for claim {claim_id}, using summary: {e}")
            return summary

        detail = body.get("data") if isinstance(body, dict) else None
        if not isinstance(detail, dict):
            logger.warning(f"Detail response for claim {claim_id} had no data, using summary")
            return summary
        return detail

    async def _fetch_rating(self, auth_errors: List[UpstreamAuthError]) -> Optional[Rating]:
        try:
            body = await self.va.get_rated_disabilities()
        except UpstreamAuthError as e:
            auth_errors.append(e)
            return None
        except FETCH_ERRORS as e:
            logger.error(f"Rated disabilities fetch failed: {e}")
            return None
        return normalize_rating(body)

    async def _fetch_appeals(self, auth_errors: List[UpstreamAuthError]) -> Optional[List[Appeal]]:
        try:
            body = await self.va.get_appeals()
        except UpstreamAuthError as e:
            auth_errors.append(e)
            return None
        except FETCH_ERRORS as e:
            logger.error(f"Appeals fetch failed: {e}")
            return None
        return normalize_appeals(body)

    async def cached_snapshot(self) -> FetchSnapshot:
        """Rebuild the last known snapshot from the store."""
        stored = await self.store.get([VA_CLAIMS, VA_RATINGS, VA_APPEALS, VA_LAST_FETCH])

        entries = [BatchSyncEntry.model_validate(e) for e in stored.get(VA_CLAIMS) or []]
        rating = stored.get(VA_RATINGS)
        appeals = stored.get(VA_APPEALS)

        return FetchSnapshot(
            claims=[Claim.model_validate(entry.structured) for entry in entries],
            raw_claims=[entry.raw for entry in entries],
            rating=Rating.model_validate(rating) if rating else None,
            appeals=[Appeal.model_validate(a) for a in appeals or []],
            fetched_at=stored.get(VA_LAST_FETCH),
            from_cache=True,
        )
