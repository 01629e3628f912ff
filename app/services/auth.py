"""Backend auth session: token lifecycle on top of the persistent store."""

import logging
from typing import Any, Optional

import httpx

from app.schemas.records import AuthSession
from app.services.backend_client import BackendClient
from app.services.store import ACCESS_TOKEN, AUTH_KEYS, REFRESH_TOKEN, USER_DATA, SqlStore

logger = logging.getLogger(__name__)


class AuthSessionManager:
    """Owns the bearer/refresh token pair stored for the backend."""

    def __init__(self, store: SqlStore, backend: BackendClient):
        self.store = store
        self.backend = backend

    async def check_status(self) -> AuthSession:
        """Read the stored session without modifying it."""
        stored = await self.store.get(AUTH_KEYS)
        return AuthSession(
            access_token=stored.get(ACCESS_TOKEN),
            refresh_token=stored.get(REFRESH_TOKEN),
            user_data=stored.get(USER_DATA),
        )

    async def store_tokens(
        self,
        access_token: Optional[str],
        refresh_token: Optional[str],
        user_data: Any = None,
    ) -> None:
        """Persist tokens relayed from the web app login."""
        await self.store.set(
            {
                ACCESS_TOKEN: access_token,
                REFRESH_TOKEN: refresh_token,
                USER_DATA: user_data,
            }
        )
        logger.info("Auth tokens stored")

    async def clear(self) -> None:
        """Drop all three session keys together."""
        await self.store.remove(AUTH_KEYS)

    async def refresh(self) -> Optional[AuthSession]:
        """
        Exchange the stored refresh token for a new token pair.

        A rejected refresh token ends the session: all three keys are
        removed. Transport failures leave the session untouched.

        Returns:
            Session with the new token pair, or None if no refresh happened
        """
        stored = await self.store.get([REFRESH_TOKEN, USER_DATA])
        refresh_token = stored.get(REFRESH_TOKEN)
        if not refresh_token:
            return None

        try:
            tokens = await self.backend.refresh(refresh_token)
        except httpx.HTTPStatusError as e:
            logger.warning(f"Token refresh rejected ({e.response.status_code}), clearing session")
            await self.clear()
            return None
        except httpx.HTTPError as e:
            logger.error(f"Token refresh failed: {e}")
            return None
        except ValueError as e:
            logger.error(f"Token refresh returned an unusable body: {e}")
            return None

        await self.store.set(
            {
                ACCESS_TOKEN: tokens.access_token,
                REFRESH_TOKEN: tokens.refresh_token,
            }
        )
        logger.info("Access token refreshed")

        return AuthSession(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            user_data=stored.get(USER_DATA),
        )
