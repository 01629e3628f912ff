"""Backend request and response bodies."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from app.schemas.records import CanonicalModel


class SingleSyncRequest(CanonicalModel):
    """Body of POST /va-sync."""

    claim_data: Dict[str, Any]
    raw_data: Any = None
    data_type: str
    timestamp: int  # epoch millis


class BatchSyncEntry(BaseModel):
    """One claim in a batch sync, also the cached form of vaClaims."""

    structured: Dict[str, Any]
    raw: Any = None
    lastUpdated: Optional[int] = None


class BatchSyncRequest(BaseModel):
    """Body of POST /va-sync/batch."""

    claims: List[BatchSyncEntry]
    timestamp: int


class RefreshRequest(CanonicalModel):
    """Body of POST /auth/refresh."""

    refresh_token: str


class RefreshResponse(CanonicalModel):
    """Token pair returned by a successful refresh."""

    access_token: str
    refresh_token: Optional[str] = None
