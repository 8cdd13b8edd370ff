"""Models package."""

from backend.app.models.incident import ApprovalEvent, Incident

__all__ = [
    "ApprovalEvent",
    "Incident",
]
