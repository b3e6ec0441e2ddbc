"""Group activities: discovery, poll lifecycle and scheduled ticks."""

from .models import (
    PollCreationResult,
    PollCreationStatus,
    PollOutcome,
    ResolutionResult,
    ScheduledActivity,
)

__all__ = [
    "PollCreationResult",
    "PollCreationStatus",
    "PollOutcome",
    "ResolutionResult",
    "ScheduledActivity",
]
