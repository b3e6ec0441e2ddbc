"""Durable record of one scheduled group activity and its poll."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class PollOutcome(Enum):
    """Terminal state of a poll."""

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class PollCreationStatus(Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    NO_ACTIVITY = "no_activity"
    OUTSIDE_WINDOW = "outside_window"
    FAILED = "failed"


def _parse_stamp(payload: Dict[str, Any], key: str) -> datetime:
    raw = payload.get(key)
    if not isinstance(raw, str) or not raw:
        raise ValueError(f"Missing {key}")
    value = datetime.fromisoformat(raw)
    if value.tzinfo is None:
        raise ValueError(f"{key} must carry a UTC offset")
    return value


@dataclass(frozen=True)
class ScheduledActivity:
    """A group activity found in the calendar together with its poll schedule.

    Stored as JSON in the key-value store under ``POLL_<poll message id>``
    while its poll is open.
    """

    id: str
    title: str
    description: str
    start: datetime
    end: datetime
    poll_creation_time: datetime
    poll_check_time: datetime
    min_positive_votes: int
    source_event_id: Optional[str] = None

    def activity_name(self, prefix: str = "НА ") -> str:
        if prefix and self.title.startswith(prefix):
            return self.title[len(prefix):].strip()
        return self.title.strip()

    def poll_window_contains(self, moment: datetime) -> bool:
        return self.poll_creation_time <= moment < self.poll_check_time

    def is_due(self, moment: datetime) -> bool:
        return moment >= self.poll_check_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "poll_creation_time": self.poll_creation_time.isoformat(),
            "poll_check_time": self.poll_check_time.isoformat(),
            "min_positive_votes": self.min_positive_votes,
            "source_event_id": self.source_event_id,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> "ScheduledActivity":
        """Parse a stored record.

        Raises:
            ValueError: the payload is not JSON or a required field is missing
                or invalid.
        """
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            raise ValueError("Record must be a JSON object")

        activity_id = payload.get("id")
        title = payload.get("title")
        if not isinstance(activity_id, str) or not activity_id:
            raise ValueError("Missing id")
        if not isinstance(title, str) or not title:
            raise ValueError("Missing title")

        try:
            min_votes = int(payload.get("min_positive_votes"))
        except (TypeError, ValueError) as exc:
            raise ValueError("Invalid min_positive_votes") from exc
        if min_votes <= 0:
            raise ValueError("min_positive_votes must be positive")

        record = cls(
            id=activity_id,
            title=title,
            description=payload.get("description") or "",
            start=_parse_stamp(payload, "start"),
            end=_parse_stamp(payload, "end"),
            poll_creation_time=_parse_stamp(payload, "poll_creation_time"),
            poll_check_time=_parse_stamp(payload, "poll_check_time"),
            min_positive_votes=min_votes,
            source_event_id=payload.get("source_event_id") or None,
        )
        if record.start >= record.end:
            raise ValueError("Activity start must be before its end")
        return record


@dataclass(frozen=True)
class PollCreationResult:
    status: PollCreationStatus
    message_id: Optional[int] = None
    activity: Optional[ScheduledActivity] = None
    pinned: bool = False


@dataclass(frozen=True)
class ResolutionResult:
    """What happened to one due poll."""

    message_id: int
    activity: ScheduledActivity
    outcome: PollOutcome
    votes_for: Optional[int] = None
    error: Optional[str] = None
