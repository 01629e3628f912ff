"""Deliver normalized claims to the backend."""

import logging
import time
from typing import Any, List, Mapping, Optional, Sequence, Union

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from app.exceptions import AuthenticationError, BackendUnauthorizedError
from app.schemas.records import Claim
from app.schemas.sync import BatchSyncEntry, BatchSyncRequest, SingleSyncRequest
from app.services.auth import AuthSessionManager
from app.services.backend_client import BackendClient
from app.services.state import Clock, now_millis
from app.services.store import LAST_SYNC, SqlStore

logger = logging.getLogger(__name__)

DEFAULT_DATA_TYPE = "benefit_claim"

# First attempt plus one retry after a token refresh
MAX_ATTEMPTS = 2

RawByIndex = Union[Sequence[Any], Mapping[int, Any]]


def raw_at(raw_by_index: Optional[RawByIndex], index: int) -> Any:
    if raw_by_index is None:
        return None
    if isinstance(raw_by_index, Mapping):
        return raw_by_index.get(index)
    return raw_by_index[index] if index < len(raw_by_index) else None


def stamp_at(last_updated: Any, index: int, default: int) -> int:
    if isinstance(last_updated, int):
        return last_updated
    if last_updated is not None and index < len(last_updated) and last_updated[index] is not None:
        return last_updated[index]
    return default


class SyncCoordinator:
    """Chooses the sync endpoint and runs the refresh-and-retry-once protocol."""

    def __init__(
        self,
        store: SqlStore,
        backend: BackendClient,
        auth: AuthSessionManager,
        clock: Clock = time.time,
    ):
        self.store = store
        self.backend = backend
        self.auth = auth
        self.clock = clock

    async def sync_claims(
        self,
        claims: List[Claim],
        raw_by_index: Optional[RawByIndex],
        access_token: str,
        data_type: str = DEFAULT_DATA_TYPE,
        last_updated: Optional[Union[int, Sequence[Optional[int]]]] = None,
    ) -> bool:
        """
        Deliver claims to the backend.

        One claim goes to the single-record endpoint, several to the batch
        endpoint, none to nowhere. Failures are logged and swallowed so the
        call is safe to repeat with the same data.

        Args:
            claims: Normalized claims in source order
            raw_by_index: Raw upstream record per claim index
            access_token: Current backend bearer token
            data_type: Record kind reported to the single-record endpoint
            last_updated: Epoch millis for batch entries, one value or one per claim
                (defaults to now)

        Returns:
            True if the backend accepted the delivery
        """
        if not claims:
            logger.info("No claim data to sync")
            return False

        timestamp = now_millis(self.clock)

        if len(claims) == 1:
            request = SingleSyncRequest(
                claim_data=claims[0].to_wire(),
                raw_data=raw_at(raw_by_index, 0),
                data_type=data_type,
                timestamp=timestamp,
            )
            send = self.backend.sync_claim
        else:
            request = BatchSyncRequest(
                claims=[
                    BatchSyncEntry(
                        structured=claim.to_wire(),
                        raw=raw_at(raw_by_index, index),
                        lastUpdated=stamp_at(last_updated, index, timestamp),
                    )
                    for index, claim in enumerate(claims)
                ],
                timestamp=timestamp,
            )
            send = self.backend.sync_batch

        token = access_token
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(MAX_ATTEMPTS),
                retry=retry_if_exception_type(BackendUnauthorizedError),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        session = await self.auth.refresh()
                        if session is None:
                            raise AuthenticationError("Token refresh failed")
                        token = session.access_token
                    await send(request, token)
        except BackendUnauthorizedError:
            logger.error("Sync failed after token refresh")
            return False
        except AuthenticationError:
            logger.error("Sync abandoned: backend session could not be refreshed")
            return False
        except httpx.HTTPError as e:
            logger.error(f"Sync error: {e}")
            return False

        await self.store.set({LAST_SYNC: now_millis(self.clock)})
        logger.info(f"Synced {len(claims)} claim(s) to backend")
        return True
