"""Triage scoring request/response schemas."""
from typing import Optional

from pydantic import Field

from backend.app.schemas.incidents import CamelModel, Priority, UrgencyHint


class TriageRequest(CamelModel):
    report: str = Field(..., min_length=10)
    location: str = Field(..., min_length=2)
    urgency_hint: Optional[UrgencyHint] = None


class TriageScoreResponse(CamelModel):
    suggested_priority: Priority
    confidence: float = Field(..., ge=0.0, le=1.0)
    # A score is advisory only; dispatch always goes through a human review
    requires_human_approval: bool = True
