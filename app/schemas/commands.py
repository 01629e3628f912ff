"""Command bus messages and responses."""

from enum import Enum
from typing import Any, Dict, List, Optional

from app.schemas.records import CanonicalModel


class CommandType(str, Enum):
    """Commands understood by the bus."""

    REQUEST_AUTH_STATUS = "REQUEST_AUTH_STATUS"
    REQUEST_VA_DATA = "REQUEST_VA_DATA"
    TRIGGER_VA_FETCH = "TRIGGER_VA_FETCH"
    VA_PAGE_LOADED = "VA_PAGE_LOADED"
    AUTH_TOKENS_RECEIVED = "AUTH_TOKENS_RECEIVED"
    CLAIM_DATA_INTERCEPTED = "CLAIM_DATA_INTERCEPTED"


# Inbound messages
class AuthTokensMessage(CanonicalModel):
    """Tokens relayed from the web app after login."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    user_data: Optional[Any] = None


class CapturedData(CanonicalModel):
    """Claim data captured by the page sniffer."""

    data_type: str
    raw: Any


class ClaimDataInterceptedMessage(CanonicalModel):
    """Envelope for a captured detail response."""

    data: CapturedData


# Responses
class CommandResponse(CanonicalModel):
    """Base for bus responses, serialized in camelCase."""


class AuthStatusResponse(CommandResponse):
    authenticated: bool
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    user_data: Optional[Any] = None


class VADataResponse(CommandResponse):
    claims: List[Dict[str, Any]]
    rating: Optional[Dict[str, Any]] = None
    appeals: List[Dict[str, Any]]
    logged_in: Optional[bool] = None
    last_fetch: Optional[int] = None
    last_sync: Optional[int] = None


class FetchResponse(CommandResponse):
    success: bool
    from_cache: bool = False
    claims_count: int = 0
    rating_available: bool = False
    appeals_count: int = 0
    synced: bool = False


class SuccessResponse(CommandResponse):
    success: bool


class InterceptResponse(CommandResponse):
    success: bool
    synced: bool = False
    error: Optional[str] = None
    ai_insights: Dict[str, Any]


class ErrorResponse(CommandResponse):
    success: bool = False
    error: str
