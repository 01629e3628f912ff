"""Read-only client for the VA.gov benefits API."""

import logging
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.exceptions import UpstreamAuthError

logger = logging.getLogger(__name__)

CLAIMS_PATH = "/v0/benefits_claims"
CLAIM_DETAIL_PATH = "/v0/benefits_claims/{claim_id}"
RATED_DISABILITIES_PATH = "/v0/rated_disabilities"
APPEALS_PATH = "/v0/appeals"


class VAClient:
    """Client for the VA.gov API using the veteran's browser session."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the VA client.

        Args:
            client: Preconfigured HTTP client; one is created from settings if omitted
        """
        if client is None:
            kwargs: Dict[str, Any] = {"base_url": settings.VA_API_BASE_URL}
            if settings.HTTP_TIMEOUT_SECONDS is not None:
                kwargs["timeout"] = settings.HTTP_TIMEOUT_SECONDS
            client = httpx.AsyncClient(**kwargs)
        self.client = client

    def _build_headers(self) -> Dict[str, str]:
        """Build HTTP headers for VA.gov."""
        headers = {
            "Accept": "application/json",
            "X-Key-Inflection": settings.VA_KEY_INFLECTION,
        }
        if settings.VA_SESSION_COOKIE:
            headers["Cookie"] = settings.VA_SESSION_COOKIE
        return headers

    async def _get(self, path: str) -> Any:
        """
        GET a VA API path and decode its JSON body.

        Raises:
            UpstreamAuthError: On 401/403
            httpx.HTTPError: On other error statuses or transport failures
            ValueError: If the body is not valid JSON
        """
        response = await self.client.get(path, headers=self._build_headers())

        if response.status_code in (401, 403):
            raise UpstreamAuthError(response.status_code, path)

        response.raise_for_status()
        return response.json()

    async def get_claims(self) -> Any:
        return await self._get(CLAIMS_PATH)

    async def get_claim(self, claim_id: str) -> Any:
        return await self._get(CLAIM_DETAIL_PATH.format(claim_id=claim_id))

    async def get_rated_disabilities(self) -> Any:
        return await self._get(RATED_DISABILITIES_PATH)

    async def get_appeals(self) -> Any:
        return await self._get(APPEALS_PATH)

    async def aclose(self):
        await self.client.aclose()
