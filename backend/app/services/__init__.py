"""Services package."""

from backend.app.services.incident_lifecycle import IncidentLifecycleManager, get_lifecycle_manager
from backend.app.services.triage_scorer import HeuristicTriageScorer, TriageScorer

__all__ = [
    "IncidentLifecycleManager",
    "get_lifecycle_manager",
    "HeuristicTriageScorer",
    "TriageScorer",
]
