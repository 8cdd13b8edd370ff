"""
Incident Lifecycle Manager

Owns the in-memory incident registry and the append-only approval event log.
Every status change goes through ``_transition``, which validates the edge
against ``LEGAL_TRANSITIONS`` and appends exactly one ``ApprovalEvent``.

The invariant protected here: an incident reaches EXECUTED only from
APPROVED, and APPROVED is only reachable from NEEDS_HUMAN_REVIEW through a
recorded human review.
"""
import csv
import threading
from datetime import datetime, timezone
from functools import lru_cache
from io import StringIO
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from backend.app.core.logging import get_logger
from backend.app.models.incident import ApprovalEvent, Incident
from backend.app.schemas.incidents import IncidentStatus, Priority, ReviewDecision, UrgencyHint
from backend.app.services.triage_scorer import HeuristicTriageScorer, TriageScorer

logger = get_logger(__name__)

SYSTEM_ACTOR = "system"
AUTO_ROUTE_REASON = "auto-routed for review"
EXECUTE_REASON = "dispatch executed"

LEGAL_TRANSITIONS: Dict[IncidentStatus, FrozenSet[IncidentStatus]] = {
    IncidentStatus.DRAFT: frozenset({IncidentStatus.NEEDS_HUMAN_REVIEW}),
    IncidentStatus.NEEDS_HUMAN_REVIEW: frozenset({IncidentStatus.APPROVED, IncidentStatus.REJECTED}),
    IncidentStatus.APPROVED: frozenset({IncidentStatus.EXECUTED}),
    IncidentStatus.REJECTED: frozenset({IncidentStatus.NEEDS_HUMAN_REVIEW}),
    IncidentStatus.EXECUTED: frozenset(),
}

CSV_FIELDS = ["id", "incidentId", "from", "to", "actor", "reason", "createdAt"]


class IncidentLifecycleError(Exception):
    """Base class for lifecycle failures scoped to a single request."""


class IncidentNotFoundError(IncidentLifecycleError):
    def __init__(self, incident_id: str):
        self.incident_id = incident_id
        super().__init__(f"Incident {incident_id} not found")


class InvalidTransitionError(IncidentLifecycleError):
    def __init__(self, from_status: IncidentStatus, to_status: IncidentStatus):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid status transition: {from_status.value} -> {to_status.value}"
        )


def allowed_transitions(status: IncidentStatus) -> FrozenSet[IncidentStatus]:
    """Legal next states for ``status``."""
    return LEGAL_TRANSITIONS[IncidentStatus(status)]


def is_legal_transition(from_status: IncidentStatus, to_status: IncidentStatus) -> bool:
    return IncidentStatus(to_status) in allowed_transitions(from_status)


def replay_status(
    events: Iterable[ApprovalEvent], start: IncidentStatus = IncidentStatus.DRAFT
) -> IncidentStatus:
    """
    Fold an incident's event history into the status it implies.

    Raises InvalidTransitionError if an event does not start where the
    previous one ended, or records an edge that is not legal.
    """
    status = start
    for event in events:
        if event.from_status != status or not is_legal_transition(event.from_status, event.to_status):
            raise InvalidTransitionError(event.from_status, event.to_status)
        status = event.to_status
    return status


class IncidentLifecycleManager:
    """
    Single owner of incidents and their approval history.

    All mutations run under one registry-wide lock so the
    read-validate-write-append sequence of a transition is atomic.
    Callers only ever receive copies of incidents.
    """

    def __init__(self, scorer: Optional[TriageScorer] = None):
        self.scorer = scorer or HeuristicTriageScorer()
        self._incidents: Dict[str, Incident] = {}
        self._events: List[ApprovalEvent] = []
        self._events_by_incident: Dict[str, List[ApprovalEvent]] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def list_incidents(self, status: Optional[IncidentStatus] = None) -> List[Incident]:
        """All incidents in creation order, optionally filtered by status."""
        if status is not None:
            status = IncidentStatus(status)
        with self._lock:
            return [
                incident.model_copy()
                for incident in self._incidents.values()
                if status is None or incident.status == status
            ]

    def get_incident(self, incident_id: str) -> Tuple[Incident, List[ApprovalEvent]]:
        with self._lock:
            incident = self._get_or_raise(incident_id)
            return incident.model_copy(), list(self._events_by_incident[incident_id])

    def get_events(self, incident_id: str) -> List[ApprovalEvent]:
        with self._lock:
            self._get_or_raise(incident_id)
            return list(self._events_by_incident[incident_id])

    def all_events(self) -> List[ApprovalEvent]:
        """The global event log in append order."""
        with self._lock:
            return list(self._events)

    def export_events_csv(self, incident_id: str) -> str:
        """Render one incident's approval history as CSV for audit filing."""
        events = self.get_events(incident_id)
        output = StringIO()
        writer = csv.DictWriter(output, fieldnames=CSV_FIELDS, quoting=csv.QUOTE_MINIMAL)
        writer.writeheader()
        for event in events:
            writer.writerow({
                "id": event.id,
                "incidentId": event.incident_id,
                "from": event.from_status.value,
                "to": event.to_status.value,
                "actor": event.actor,
                "reason": event.reason or "",
                "createdAt": event.created_at.isoformat(),
            })
        return output.getvalue()

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #

    def create_incident(
        self,
        report: str,
        location: str,
        urgency_hint: Optional[UrgencyHint] = None,
        actor: str = SYSTEM_ACTOR,
    ) -> Incident:
        """
        Score the report, register the incident in DRAFT and route it
        straight to NEEDS_HUMAN_REVIEW. No caller ever observes DRAFT.
        """
        if urgency_hint is not None:
            urgency_hint = UrgencyHint(urgency_hint)
        priority, confidence = self.scorer.score(report, urgency_hint)
        incident = Incident(
            created_by=actor,
            report=report,
            location=location,
            urgency_hint=urgency_hint,
            suggested_priority=priority,
            confidence=confidence,
        )
        with self._lock:
            self._incidents[incident.id] = incident
            self._events_by_incident[incident.id] = []
            self._transition(incident, IncidentStatus.NEEDS_HUMAN_REVIEW, SYSTEM_ACTOR, AUTO_ROUTE_REASON)
            logger.info(
                f"Incident created: {incident.id} (priority={incident.suggested_priority.value}, confidence={incident.confidence})",
                extra={"extra_data": {"incident_id": incident.id, "created_by": actor}},
            )
            return incident.model_copy()

    def review(
        self,
        incident_id: str,
        decision: ReviewDecision,
        actor: str,
        reason: str,
        final_priority: Optional[Priority] = None,
    ) -> Tuple[Incident, ApprovalEvent]:
        """
        Human gate: approve or reject an incident awaiting review.

        The transition is validated before any field is touched, so a
        rejected review leaves the incident exactly as it was.
        """
        decision = ReviewDecision(decision)
        if final_priority is not None:
            final_priority = Priority(final_priority)
        target = IncidentStatus.APPROVED if decision == ReviewDecision.APPROVE else IncidentStatus.REJECTED

        with self._lock:
            incident = self._get_or_raise(incident_id)
            self._check_transition(incident, target)

            if target == IncidentStatus.APPROVED:
                incident.final_priority = final_priority or incident.suggested_priority
            incident.review_reason = reason
            incident.reviewed_by = actor
            event = self._transition(incident, target, actor, reason)
            return incident.model_copy(), event

    def reopen(self, incident_id: str, actor: str, reason: str) -> Tuple[Incident, ApprovalEvent]:
        """Send a rejected incident back for another review."""
        with self._lock:
            incident = self._get_or_raise(incident_id)
            # DRAFT -> NEEDS_HUMAN_REVIEW is legal but belongs to creation only
            if incident.status != IncidentStatus.REJECTED:
                self._reject_transition(incident, IncidentStatus.NEEDS_HUMAN_REVIEW)

            incident.review_reason = reason
            incident.reviewed_by = actor
            event = self._transition(incident, IncidentStatus.NEEDS_HUMAN_REVIEW, actor, reason)
            return incident.model_copy(), event

    def execute(self, incident_id: str, actor: str) -> Tuple[Incident, ApprovalEvent]:
        """Dispatch an approved incident. EXECUTED is terminal."""
        with self._lock:
            incident = self._get_or_raise(incident_id)
            event = self._transition(incident, IncidentStatus.EXECUTED, actor, EXECUTE_REASON)
            return incident.model_copy(), event

    # ------------------------------------------------------------------ #
    # Internals (caller must hold self._lock)
    # ------------------------------------------------------------------ #

    def _get_or_raise(self, incident_id: str) -> Incident:
        incident = self._incidents.get(incident_id)
        if incident is None:
            raise IncidentNotFoundError(incident_id)
        return incident

    def _check_transition(self, incident: Incident, target: IncidentStatus) -> None:
        if not is_legal_transition(incident.status, target):
            self._reject_transition(incident, target)

    def _reject_transition(self, incident: Incident, target: IncidentStatus) -> None:
        logger.warning(
            f"Rejected transition for incident {incident.id}: "
            f"{incident.status.value} -> {target.value}",
            extra={"extra_data": {"incident_id": incident.id}},
        )
        raise InvalidTransitionError(incident.status, target)

    def _transition(
        self,
        incident: Incident,
        target: IncidentStatus,
        actor: str,
        reason: Optional[str] = None,
    ) -> ApprovalEvent:
        """The only code path that writes ``incident.status``."""
        target = IncidentStatus(target)
        self._check_transition(incident, target)

        now = datetime.now(timezone.utc)
        event = ApprovalEvent(
            incident_id=incident.id,
            from_status=incident.status,
            to_status=target,
            actor=actor,
            reason=reason,
            created_at=now,
        )
        incident.status = target
        incident.updated_at = now
        self._events.append(event)
        self._events_by_incident[incident.id].append(event)

        logger.info(
            f"Incident {incident.id} transitioned {event.from_status.value} -> {target.value} by {actor}",
            extra={"extra_data": {"incident_id": incident.id, "event_id": event.id}},
        )
        return event


@lru_cache
def get_lifecycle_manager() -> IncidentLifecycleManager:
    """Process-wide lifecycle manager (FastAPI dependency)."""
    return IncidentLifecycleManager()
