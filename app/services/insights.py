"""Rule-based claim insights shown when no backend analysis is available."""

from typing import Any, Dict, List

from app.schemas.records import Claim

# Typical days remaining until a decision, by phase
PHASE_DAYS_TO_DECISION = {
    1: 120,
    2: 90,
    3: 60,
    4: 30,
    5: 14,
    6: 7,
    7: 0,
}
DEFAULT_DAYS_TO_DECISION = 90

NATIONAL_WORK_QUEUE = "National Work Queue"


def days_to_decision(claim: Claim) -> int:
    return PHASE_DAYS_TO_DECISION.get(claim.phase, DEFAULT_DAYS_TO_DECISION)


def identify_risks(claim: Claim) -> List[Dict[str, Any]]:
    risks = []

    if claim.documents_needed:
        risks.append(
            {
                "title": "Documents Required",
                "description": "VA is waiting for additional documentation from you.",
                "severity": "high",
                "action": "check-documents",
                "actionText": "View Requirements",
            }
        )

    if claim.jurisdiction == NATIONAL_WORK_QUEUE:
        risks.append(
            {
                "title": "National Work Queue",
                "description": "Claims in the national queue typically take longer to process.",
                "severity": "medium",
                "action": None,
                "actionText": None,
            }
        )

    return risks


def basic_insights(claim: Claim) -> Dict[str, Any]:
    """
    Build the basic insights payload for a claim.

    Args:
        claim: Normalized claim

    Returns:
        Insights dict in the panel's camelCase shape
    """
    return {
        "claimId": claim.claim_id,
        "status": "basic",
        "confidenceScore": 50,
        "timeline": {
            "daysToDecision": days_to_decision(claim),
            "approvalProbability": 70,
            "similarClaims": 0,
            "keyFactors": ["Based on average processing times"],
        },
        "risks": identify_risks(claim),
        "recommendations": [
            {
                "title": "Get AI-Powered Analysis",
                "description": (
                    "Log in to VetClaim Services for predictive timelines, risk "
                    "assessment, and personalized recommendations."
                ),
                "impact": "high",
                "action": "login",
                "buttonText": "Log In",
            }
        ],
        "missingBenefits": [],
        "isBasic": True,
    }
