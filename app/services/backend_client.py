"""Client for the VetClaim backend sync and auth endpoints."""

import logging
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.exceptions import BackendUnauthorizedError
from app.schemas.sync import (
    BatchSyncRequest,
    RefreshRequest,
    RefreshResponse,
    SingleSyncRequest,
)

logger = logging.getLogger(__name__)

SYNC_PATH = "/va-sync"
BATCH_SYNC_PATH = "/va-sync/batch"
REFRESH_PATH = "/auth/refresh"


class BackendClient:
    """Client for the VetClaim Services API."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the backend client.

        Args:
            client: Preconfigured HTTP client; one is created from settings if omitted
        """
        if client is None:
            kwargs: Dict[str, Any] = {"base_url": settings.BACKEND_BASE_URL}
            if settings.HTTP_TIMEOUT_SECONDS is not None:
                kwargs["timeout"] = settings.HTTP_TIMEOUT_SECONDS
            client = httpx.AsyncClient(**kwargs)
        self.client = client
        self.client_version = settings.CLIENT_VERSION

    def _build_headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        """Build HTTP headers for the backend."""
        headers = {
            "Content-Type": "application/json",
            "X-Extension-Version": self.client_version,
        }
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _post(self, path: str, body: Dict[str, Any], access_token: str) -> Any:
        """
        POST an authenticated JSON body.

        Raises:
            BackendUnauthorizedError: On 401
            httpx.HTTPError: On other error statuses or transport failures
        """
        response = await self.client.post(
            path,
            headers=self._build_headers(access_token),
            json=body,
        )

        if response.status_code == 401:
            raise BackendUnauthorizedError(path)

        response.raise_for_status()

        # Sync endpoints may answer with an empty body
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            logger.warning(f"Backend returned a non-JSON body for {path}")
            return None

    async def sync_claim(self, request: SingleSyncRequest, access_token: str) -> Any:
        return await self._post(SYNC_PATH, request.to_wire(), access_token)

    async def sync_batch(self, request: BatchSyncRequest, access_token: str) -> Any:
        return await self._post(BATCH_SYNC_PATH, request.model_dump(mode="json"), access_token)

    async def refresh(self, refresh_token: str) -> RefreshResponse:
        """
        Exchange a refresh token for a new token pair.

        Args:
            refresh_token: Stored refresh token

        Returns:
            New token pair

        Raises:
            httpx.HTTPStatusError: If the backend rejects the refresh token
            httpx.HTTPError: On transport failures
            ValueError: If the body is not a token pair
        """
        response = await self.client.post(
            REFRESH_PATH,
            headers=self._build_headers(),
            json=RefreshRequest(refresh_token=refresh_token).to_wire(),
        )
        response.raise_for_status()

        result = response.json()
        # Some deployments wrap the pair in {"data": {...}}
        if isinstance(result, dict) and isinstance(result.get("data"), dict):
            result = result["data"]
        return RefreshResponse.model_validate(result)

    async def aclose(self):
        await self.client.aclose()
