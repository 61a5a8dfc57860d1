"""Work/personal domain inference - no I/O dependencies."""

from typing import Iterable, Protocol

from .activities import Activity, Goal
from .availability import PERSONAL, WORK

# Intentionally broad: meeting-style items are often created without a goal.
# Only used to pick availability windows, never stored as a label.
WORK_KEYWORDS = (
    "work",
    "job",
    "client",
    "meeting",
    "project",
    "deadline",
    "office",
    "corp",
    "email",
    "call",
    "review",
    "validate",
    "align",
    "planning",
    "backlog",
    "prioritization",
    "marketing",
    "delivery",
    "use case",
    "roadmap",
    "strategy",
    "sync",
    "standup",
    "demo",
)


class DomainClassifier(Protocol):
    """Interface for labelling an activity with a scheduling domain."""

    def classify(self, activity: Activity, goals: Iterable[Goal]) -> str:
        ...


class KeywordDomainClassifier:
    """Case-insensitive substring match against a work vocabulary."""

    def __init__(self, keywords: Iterable[str] = WORK_KEYWORDS):
        self.keywords = tuple(k.lower() for k in keywords if k)

    def classify(self, activity: Activity, goals: Iterable[Goal]) -> str:
        if activity.scheduling_domain:
            return activity.scheduling_domain

        goal = next((g for g in goals if g.id == activity.goal_id), None)
        text = f"{activity.title} {goal.title if goal else ''}".lower()
        if any(kw in text for kw in self.keywords):
            return WORK
        return PERSONAL


_default_classifier = KeywordDomainClassifier()


def infer_scheduling_domain(
    activity: Activity,
    goals: Iterable[Goal] = (),
    classifier: DomainClassifier | None = None,
) -> str:
    """Domain for an activity; an explicit override always wins."""
    return (classifier or _default_classifier).classify(activity, goals)


def mode_for_domain(domain: str) -> str:
    """Collapse a free-form domain to a plan mode."""
    return WORK if WORK in domain.lower() else PERSONAL


def resolve_mode(
    activity: Activity,
    goals: Iterable[Goal] = (),
    classifier: DomainClassifier | None = None,
) -> str:
    return mode_for_domain(infer_scheduling_domain(activity, goals, classifier))
