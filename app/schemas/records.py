"""Canonical record schemas shared by fetch, normalization and sync."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CanonicalModel(BaseModel):
    """Base for records serialized in camelCase wire form."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """Dump as a JSON-safe camelCase dict."""
        return self.model_dump(by_alias=True, mode="json")


class Contention(CanonicalModel):
    """A claimed condition within a claim."""

    name: Optional[str] = None
    code: Optional[str] = None
    classification: Optional[str] = None
    status: Optional[str] = None  # FAVORABLE, UNFAVORABLE, PENDING


class Claim(CanonicalModel):
    """One benefits claim."""

    claim_id: Optional[str] = None
    claim_type: Optional[str] = None
    claim_type_code: Optional[str] = None
    status: Optional[str] = None

    # Pipeline stage 1-8
    phase: Optional[int] = Field(default=None, ge=1, le=8)
    latest_phase_type: Optional[str] = None
    phase_change_date: Optional[date] = None

    date_initiated: Optional[date] = None
    date_filed: Optional[date] = None
    estimated_decision_date: Optional[date] = None

    development_letter_sent: bool = False
    decision_letter_sent: bool = False
    documents_needed: bool = False
    waiver_submitted: bool = False

    contentions: List[Contention] = Field(default_factory=list)
    supporting_documents: List[Any] = Field(default_factory=list)
    tracked_items: List[Any] = Field(default_factory=list)

    jurisdiction: Optional[str] = None
    events_timeline: List[Any] = Field(default_factory=list)
    claim_phase_dates: Dict[str, Any] = Field(default_factory=dict)

    updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class IndividualRating(CanonicalModel):
    """Rating for a single service-connected condition."""

    name: Optional[str] = None
    rating: Optional[int] = None
    diagnostic_code: Optional[str] = None
    effective_date: Optional[date] = None
    static: bool = False


class Rating(CanonicalModel):
    """Combined and per-condition disability ratings."""

    combined_rating: Optional[int] = None
    individual_ratings: List[IndividualRating] = Field(default_factory=list)


class AppealIssue(CanonicalModel):
    """An issue under appeal."""

    description: Optional[str] = None
    diagnostic_code: Optional[str] = None
    last_action: Optional[str] = None
    date: Optional[str] = None


class Appeal(CanonicalModel):
    """A higher-level review, supplemental claim or board appeal."""

    appeal_id: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    active: bool = False
    updated: Optional[datetime] = None
    issues: List[AppealIssue] = Field(default_factory=list)
    events: List[Any] = Field(default_factory=list)
    alerts: List[Any] = Field(default_factory=list)


class AuthSession(CanonicalModel):
    """Backend bearer/refresh token pair and the user it belongs to."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    user_data: Optional[Any] = None

    @property
    def authenticated(self) -> bool:
        return bool(self.access_token)
