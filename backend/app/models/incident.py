"""
Incident and approval event models.

``Incident`` is owned by the lifecycle manager and only ever handed out as a
copy. ``ApprovalEvent`` is frozen: once appended to the log it never changes.
"""
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import ConfigDict, Field

from backend.app.schemas.incidents import CamelModel, IncidentStatus, Priority, UrgencyHint


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class Incident(CamelModel):
    id: str = Field(default_factory=_new_id)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    created_by: str
    report: str
    location: str
    urgency_hint: Optional[UrgencyHint] = None
    suggested_priority: Priority
    confidence: float = Field(..., ge=0.0, le=1.0)
    final_priority: Optional[Priority] = None
    status: IncidentStatus = IncidentStatus.DRAFT
    review_reason: Optional[str] = None
    reviewed_by: Optional[str] = None

    def __repr__(self):
        return f"<Incident {self.id} {self.suggested_priority.value} status={self.status.value}>"


class ApprovalEvent(CamelModel):
    """Immutable record of one accepted status transition."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    incident_id: str
    from_status: IncidentStatus = Field(..., alias="from")
    to_status: IncidentStatus = Field(..., alias="to")
    actor: str
    reason: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    def __repr__(self):
        return (
            f"<ApprovalEvent {self.from_status.value}->{self.to_status.value} "
            f"by {self.actor} for {self.incident_id}>"
        )
