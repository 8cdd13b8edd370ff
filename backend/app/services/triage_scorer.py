"""
Triage Scorer

Maps a free-text incident report and an optional urgency hint to a suggested
priority and a confidence value. The lifecycle manager only depends on the
``TriageScorer`` interface so a richer classifier can replace the heuristic.

Thresholds and deltas are policy constants; existing consumers of
``/triage/score`` depend on their exact values.
"""
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from backend.app.schemas.incidents import Priority, UrgencyHint

BASE_SCORE = 0.5
KEYWORD_BOOST = 0.25
HINT_DELTA = 0.2
P1_THRESHOLD = 0.75
P2_THRESHOLD = 0.55

# Matched as case-insensitive substrings, so "injur" covers injury/injured
URGENCY_KEYWORDS = ("injur", "bleed", "stuck", "flood", "fire", "heat", "cold")


class TriageScorer(ABC):
    """Interface for anything that can suggest a priority for a report."""

    @abstractmethod
    def score(
        self, report: str, urgency_hint: Optional[UrgencyHint] = None
    ) -> Tuple[Priority, float]:
        """Return (suggested_priority, confidence in [0, 1])."""


class HeuristicTriageScorer(TriageScorer):
    """Keyword + urgency hint heuristic. Pure and deterministic."""

    def __init__(self, keywords: Tuple[str, ...] = URGENCY_KEYWORDS):
        self.keywords = tuple(k.lower() for k in keywords)

    def raw_score(self, report: str, urgency_hint: Optional[UrgencyHint] = None) -> float:
        score = BASE_SCORE
        text = report.lower()
        if any(keyword in text for keyword in self.keywords):
            score += KEYWORD_BOOST
        if urgency_hint == UrgencyHint.HIGH:
            score += HINT_DELTA
        elif urgency_hint == UrgencyHint.LOW:
            score -= HINT_DELTA
        return max(0.0, min(1.0, score))

    def score(
        self, report: str, urgency_hint: Optional[UrgencyHint] = None
    ) -> Tuple[Priority, float]:
        score = self.raw_score(report, urgency_hint)
        return priority_for_score(score), round(score, 2)


def priority_for_score(score: float) -> Priority:
    if score > P1_THRESHOLD:
        return Priority.P1
    if score > P2_THRESHOLD:
        return Priority.P2
    return Priority.P3


_default_scorer = HeuristicTriageScorer()


def score_report(report: str, urgency_hint: Optional[UrgencyHint] = None) -> Tuple[Priority, float]:
    """Score with the default heuristic scorer."""
    return _default_scorer.score(report, urgency_hint)
