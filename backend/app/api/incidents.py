"""
Incident Lifecycle API Router.

Every incident passes a human review gate before it can be executed. The
lifecycle manager enforces ordering; this router only validates input and
shapes responses. Lifecycle errors are mapped to 404/409 by the handlers
registered in ``backend.app.main``.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from backend.app.core.config import get_settings
from backend.app.models.incident import ApprovalEvent, Incident
from backend.app.schemas.incidents import (
    CamelModel, IncidentCreate, IncidentStatus,
    ReviewRequest, ReopenRequest, ExecuteRequest,
)
from backend.app.services.incident_lifecycle import (
    IncidentLifecycleManager, allowed_transitions, get_lifecycle_manager,
)

logger = logging.getLogger(__name__)
router = APIRouter()


class IncidentDetail(CamelModel):
    incident: Incident
    events: List[ApprovalEvent]
    allowed_transitions: List[IncidentStatus]


class TransitionResponse(CamelModel):
    incident: Incident
    event: ApprovalEvent


@router.post("", response_model=Incident, status_code=201)
async def create_incident(
    payload: IncidentCreate,
    manager: IncidentLifecycleManager = Depends(get_lifecycle_manager),
):
    """Create an incident. It is scored and lands in needs_human_review."""
    return manager.create_incident(
        report=payload.report,
        location=payload.location,
        urgency_hint=payload.urgency_hint,
        actor=payload.actor or get_settings().default_actor,
    )


@router.get("", response_model=List[Incident])
async def list_incidents(
    status: Optional[IncidentStatus] = Query(None),
    manager: IncidentLifecycleManager = Depends(get_lifecycle_manager),
):
    """List incidents in creation order, optionally filtered by status."""
    return manager.list_incidents(status)


@router.get("/{incident_id}", response_model=IncidentDetail)
async def get_incident(
    incident_id: str,
    manager: IncidentLifecycleManager = Depends(get_lifecycle_manager),
):
    """Get an incident with its full approval history."""
    incident, events = manager.get_incident(incident_id)
    return IncidentDetail(
        incident=incident,
        events=events,
        allowed_transitions=sorted(allowed_transitions(incident.status), key=lambda s: s.value),
    )


@router.get("/{incident_id}/events/csv")
async def get_events_csv(
    incident_id: str,
    manager: IncidentLifecycleManager = Depends(get_lifecycle_manager),
):
    """Export the approval history as CSV for audit filing."""
    csv_content = manager.export_events_csv(incident_id)
    return StreamingResponse(
        iter([csv_content]),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="incident-{incident_id}-events.csv"'
        }
    )


@router.post("/{incident_id}/review", response_model=TransitionResponse)
async def review_incident(
    incident_id: str,
    payload: ReviewRequest,
    manager: IncidentLifecycleManager = Depends(get_lifecycle_manager),
):
    """Human gate: approve or reject an incident awaiting review."""
    incident, event = manager.review(
        incident_id,
        decision=payload.decision,
        actor=payload.actor,
        reason=payload.reason,
        final_priority=payload.final_priority,
    )
    return TransitionResponse(incident=incident, event=event)


@router.post("/{incident_id}/reopen", response_model=TransitionResponse)
async def reopen_incident(
    incident_id: str,
    payload: ReopenRequest,
    manager: IncidentLifecycleManager = Depends(get_lifecycle_manager),
):
    """Send a rejected incident back to review."""
    incident, event = manager.reopen(incident_id, actor=payload.actor, reason=payload.reason)
    return TransitionResponse(incident=incident, event=event)


@router.post("/{incident_id}/execute", response_model=TransitionResponse)
async def execute_incident(
    incident_id: str,
    payload: ExecuteRequest,
    manager: IncidentLifecycleManager = Depends(get_lifecycle_manager),
):
    """Dispatch an approved incident. Irreversible."""
    incident, event = manager.execute(incident_id, actor=payload.actor)
    logger.info(f"Dispatch executed for incident {incident.id} by {payload.actor}")
    return TransitionResponse(incident=incident, event=event)
