"""Normalize VA API record shapes into the canonical schemas.

Upstream payloads drift between API versions: fields get renamed, move
between flat and nested layouts, and switch between real booleans and
"Yes"/"No" strings. Every canonical attribute therefore has an ordered
list of candidate source paths, evaluated first-match-wins.

All functions here are pure and never raise on malformed-but-present
input; anything unusable degrades to None, False or an empty list.
"""

import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic.alias_generators import to_camel

from app.schemas.records import (
    Appeal,
    AppealIssue,
    Claim,
    Contention,
    IndividualRating,
    Rating,
)

# Free-text phase labels, keyed after lowercasing and mapping "_" to " "
PHASE_LABELS: Dict[str, int] = {
    "claim received": 1,
    "initial review": 2,
    "under review": 2,
    "gathering of evidence": 3,
    "evidence gathering": 3,
    "review of evidence": 4,
    "evidence review": 4,
    "preparation for decision": 5,
    "rating": 5,
    "pending decision approval": 6,
    "preparing decision letter": 6,
    "preparation for notification": 7,
    "final review": 7,
    "complete": 8,
    "completed": 8,
    "claim decided": 8,
    "closed": 8,
}

MIN_PHASE = 1
MAX_PHASE = 8

# Candidate source paths per canonical claim attribute, in precedence order.
# Dotted paths descend into nested mappings.
CLAIM_FIELDS: Dict[str, Tuple[str, ...]] = {
    "claim_type": ("claimType", "claimTypeName"),
    "claim_type_code": ("claimTypeCode",),
    "status": ("status",),
    "phase": ("phase", "claimPhaseDates.currentPhase"),
    "latest_phase_type": ("claimPhaseDates.latestPhaseType", "latestPhaseType"),
    "phase_change_date": ("claimPhaseDates.phaseChangeDate", "phaseChangeDate"),
    "date_initiated": ("claimDate", "dateInitiated"),
    "date_filed": ("dateFiled", "claimDate"),
    "estimated_decision_date": (
        "maxEstClaimDate",
        "claimPhaseDates.maxEstDate",
        "estimatedDecisionDate",
        "maxEstDate",
    ),
    "development_letter_sent": ("developmentLetterSent",),
    "decision_letter_sent": ("decisionLetterSent",),
    "documents_needed": ("documentsNeeded", "attentionNeeded"),
    "waiver_submitted": ("waiverSubmitted", "evidenceWaiverSubmitted5103"),
    "contentions": ("contentions",),
    "supporting_documents": ("supportingDocuments",),
    "tracked_items": ("trackedItems",),
    "jurisdiction": ("jurisdiction", "tempJurisdiction"),
    "events_timeline": ("eventsTimeline",),
    "claim_phase_dates": ("claimPhaseDates",),
    "updated_at": ("updatedAt", "updated_at"),
    "created_at": ("createdAt", "created_at"),
}

# Keys only raw upstream records carry; their presence means the input is not canonical
RAW_ONLY_CLAIM_KEYS = frozenset(
    path.split(".")[0] for paths in CLAIM_FIELDS.values() for path in paths
) - {to_camel(field) for field in CLAIM_FIELDS}

RATING_FIELDS: Dict[str, Tuple[str, ...]] = {
    "combined_rating": (
        "combinedDisabilityRating",
        "combined_disability_rating",
        "combinedRating",
    ),
    "individual_ratings": ("individualRatings", "individual_ratings"),
}

INDIVIDUAL_RATING_FIELDS: Dict[str, Tuple[str, ...]] = {
    "name": ("name", "diagnosticText", "diagnostic_text"),
    "rating": ("ratingPercentage", "rating_percentage", "rating"),
    "diagnostic_code": ("diagnosticCode", "diagnostic_code"),
    "effective_date": ("effectiveDate", "effective_date"),
    "static": ("staticInd", "static_ind", "static"),
}

CONTENTION_FIELDS: Dict[str, Tuple[str, ...]] = {
    "name": ("name", "medicalTerm", "condition"),
    "code": ("code", "diagnosticCode"),
    "classification": ("classification",),
    "status": ("status",),
}

ISSUE_FIELDS: Dict[str, Tuple[str, ...]] = {
    "description": ("description",),
    "diagnostic_code": ("diagnosticCode", "diagnostic_code"),
    "last_action": ("lastAction", "last_action"),
    "date": ("date",),
}


def lookup(record: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted path in nested mappings, None when any step is missing."""
    value: Any = record
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def first_present(record: Mapping[str, Any], paths: Iterable[str]) -> Any:
    """Return the value of the first candidate path that is not None."""
    for path in paths:
        value = lookup(record, path)
        if value is not None:
            return value
    return None


def to_bool(value: Any) -> bool:
    """Coerce upstream truthiness: only True, "Yes" and "yes" count."""
    if value is True:
        return True
    return isinstance(value, str) and value in ("Yes", "yes")


def normalize_phase_label(label: str) -> str:
    return re.sub(r"\s+", " ", label.replace("_", " ")).strip().lower()


def phase_from_label(label: Any) -> Optional[int]:
    """Look up a free-text phase label, None when unrecognized."""
    if not isinstance(label, str):
        return None
    return PHASE_LABELS.get(normalize_phase_label(label))


def explicit_phase(value: Any) -> Optional[int]:
    """Accept an explicit numeric phase only when it lies in 1..8."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, int) and MIN_PHASE <= value <= MAX_PHASE:
        return value
    return None


def resolve_phase(attrs: Mapping[str, Any]) -> Optional[int]:
    """Explicit numeric phase wins; otherwise fall back to the phase label."""
    for path in CLAIM_FIELDS["phase"]:
        phase = explicit_phase(lookup(attrs, path))
        if phase is not None:
            return phase
    return phase_from_label(first_present(attrs, CLAIM_FIELDS["latest_phase_type"]))


def as_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def as_date(value: Any) -> Optional[date]:
    """Parse a date or the date part of an ISO timestamp."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def as_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def as_mapping(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def unwrap(raw: Any) -> Tuple[Mapping[str, Any], Mapping[str, Any]]:
    """Split a JSON:API resource into (resource, attributes).

    Accepts a `{"data": {...}}` envelope, a resource with an `attributes`
    member, or an already flat record (in which case both are the record).
    """
    if not isinstance(raw, Mapping):
        return {}, {}
    data = raw.get("data")
    if isinstance(data, Mapping) and "attributes" not in raw:
        raw = data
    attrs = raw.get("attributes")
    if isinstance(attrs, Mapping):
        return raw, attrs
    return raw, raw


def normalize_contention(item: Any) -> Optional[Contention]:
    """Normalize a plain condition name or a structured contention."""
    if isinstance(item, str):
        return Contention(name=item)
    if not isinstance(item, Mapping):
        return None
    return Contention(
        **{field: as_str(first_present(item, paths)) for field, paths in CONTENTION_FIELDS.items()}
    )


def normalize_contentions(items: Any) -> List[Contention]:
    """Normalize contentions, preserving source order and duplicates."""
    contentions = []
    for item in as_list(items):
        contention = normalize_contention(item)
        if contention is not None:
            contentions.append(contention)
    return contentions


def normalize_claim(raw: Any) -> Claim:
    """
    Normalize one claim from any supported upstream shape.

    Args:
        raw: Claim summary or detail resource, or an already canonical claim

    Returns:
        Canonical Claim
    """
    resource, attrs = unwrap(raw)
    # A canonical claim is read by its own attribute names first
    canonical = (
        resource is attrs
        and "claimId" in attrs
        and RAW_ONLY_CLAIM_KEYS.isdisjoint(attrs)
    )

    def pick(field: str) -> Any:
        paths = CLAIM_FIELDS[field]
        if canonical:
            paths = (to_camel(field),) + paths
        return first_present(attrs, paths)

    return Claim(
        claim_id=as_str(first_present(resource, ("id", "claimId"))),
        claim_type=as_str(pick("claim_type")),
        claim_type_code=as_str(pick("claim_type_code")),
        status=as_str(pick("status")),
        phase=resolve_phase(attrs),
        latest_phase_type=as_str(pick("latest_phase_type")),
        phase_change_date=as_date(pick("phase_change_date")),
        date_initiated=as_date(pick("date_initiated")),
        date_filed=as_date(pick("date_filed")),
        estimated_decision_date=as_date(pick("estimated_decision_date")),
        development_letter_sent=to_bool(pick("development_letter_sent")),
        decision_letter_sent=to_bool(pick("decision_letter_sent")),
        documents_needed=to_bool(pick("documents_needed")),
        waiver_submitted=to_bool(pick("waiver_submitted")),
        contentions=normalize_contentions(pick("contentions")),
        supporting_documents=as_list(pick("supporting_documents")),
        tracked_items=as_list(pick("tracked_items")),
        jurisdiction=as_str(pick("jurisdiction")),
        events_timeline=as_list(pick("events_timeline")),
        claim_phase_dates=as_mapping(pick("claim_phase_dates")),
        updated_at=as_timestamp(pick("updated_at")),
        created_at=as_timestamp(pick("created_at")),
    )


def normalize_rating(raw: Any) -> Optional[Rating]:
    """
    Normalize a rated-disabilities response.

    Args:
        raw: Response body, its `data` resource, or a canonical rating

    Returns:
        Rating, or None when no rating payload is present
    """
    if not isinstance(raw, Mapping):
        return None
    _, attrs = unwrap(raw)

    individual_ratings = []
    for item in as_list(first_present(attrs, RATING_FIELDS["individual_ratings"])):
        if not isinstance(item, Mapping):
            continue
        individual_ratings.append(
            IndividualRating(
                name=as_str(first_present(item, INDIVIDUAL_RATING_FIELDS["name"])),
                rating=as_int(first_present(item, INDIVIDUAL_RATING_FIELDS["rating"])),
                diagnostic_code=as_str(
                    first_present(item, INDIVIDUAL_RATING_FIELDS["diagnostic_code"])
                ),
                effective_date=as_date(
                    first_present(item, INDIVIDUAL_RATING_FIELDS["effective_date"])
                ),
                static=to_bool(first_present(item, INDIVIDUAL_RATING_FIELDS["static"])),
            )
        )

    return Rating(
        combined_rating=as_int(first_present(attrs, RATING_FIELDS["combined_rating"])),
        individual_ratings=individual_ratings,
    )


def appeal_status(value: Any) -> Optional[str]:
    # Newer appeals responses nest the status as {"type": ..., "details": ...}
    if isinstance(value, Mapping):
        return as_str(value.get("type"))
    return as_str(value)


def normalize_appeal(raw: Any) -> Appeal:
    resource, attrs = unwrap(raw)
    issues = [
        AppealIssue(
            **{field: as_str(first_present(issue, paths)) for field, paths in ISSUE_FIELDS.items()}
        )
        for issue in as_list(attrs.get("issues"))
        if isinstance(issue, Mapping)
    ]
    return Appeal(
        appeal_id=as_str(first_present(resource, ("id", "appealId"))),
        type=as_str(resource.get("type")),
        status=appeal_status(attrs.get("status")),
        active=to_bool(attrs.get("active")),
        updated=as_timestamp(attrs.get("updated")),
        issues=issues,
        events=as_list(attrs.get("events")),
        alerts=as_list(attrs.get("alerts")),
    )


def normalize_appeals(raw: Any) -> List[Appeal]:
    """Normalize an appeals list or a `{"data": [...]}` response body."""
    if isinstance(raw, Mapping):
        raw = raw.get("data")
    return [normalize_appeal(item) for item in as_list(raw) if isinstance(item, Mapping)]
