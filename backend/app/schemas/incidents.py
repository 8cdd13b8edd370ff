"""
Incident Lifecycle Schemas and Enums.

Shared contract between the lifecycle manager, the HTTP API and the triage
scorer. JSON is camelCase on the wire for existing dashboard consumers.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialised with camelCase aliases, populated by either name."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IncidentStatus(str, Enum):
    """Incident lifecycle stages. Only a human review can move past NEEDS_HUMAN_REVIEW."""
    DRAFT = "draft"
    NEEDS_HUMAN_REVIEW = "needs_human_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXECUTED = "executed"


class Priority(str, Enum):
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"


class UrgencyHint(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ReviewDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class IncidentCreate(CamelModel):
    report: str = Field(..., min_length=10)
    location: str = Field(..., min_length=2)
    urgency_hint: Optional[UrgencyHint] = None
    actor: Optional[str] = Field(None, min_length=1)


class ReviewRequest(CamelModel):
    """Request body for the human review gate."""
    decision: ReviewDecision
    actor: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=3)
    final_priority: Optional[Priority] = None


class ReopenRequest(CamelModel):
    actor: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=3)


class ExecuteRequest(CamelModel):
    actor: str = Field(..., min_length=1)
