"""
Triage Scoring API Router.

Stateless scoring preview: nothing is stored and the result always requires
human approval before it can drive a dispatch.
"""
import logging

from fastapi import APIRouter

from backend.app.schemas.triage import TriageRequest, TriageScoreResponse
from backend.app.services.triage_scorer import score_report

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/score", response_model=TriageScoreResponse)
async def score(payload: TriageRequest):
    """Suggest a priority for a report without creating an incident."""
    priority, confidence = score_report(payload.report, payload.urgency_hint)
    logger.debug(f"Triage preview scored {priority.value} ({confidence})")
    return TriageScoreResponse(suggested_priority=priority, confidence=confidence)
