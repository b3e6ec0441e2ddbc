"""Wizard steps carried entirely in Telegram callback data.

Each inline button encodes the step it triggers plus everything collected so
far, so no server-side session is needed. Tokens are versioned and compact
to stay within Telegram's 64-byte callback data limit::

    1|A|2                 SelectActivity(activity=TENNIS)
    1|D|2|2026-10-20      SelectDate(activity, date)
    1|T|0900|0930         SelectTime(slot)
    1|C|2|2026-10-20      Confirm(activity, date)
    1|E|<event id>        SelectEvent(event_id)
    1|K                   ConfirmCancel()
    1|X                   Dismiss()
"""

from __future__ import annotations
from tracking import t

from dataclasses import dataclass
from datetime import date, time
from typing import Callable, Dict, List, Union

from infrastructure.constants import MAX_CALLBACK_DATA_BYTES
from infrastructure.errors import InvalidPayloadError
from reservations.models import Activity, TimeSlot

PAYLOAD_VERSION = "1"
SEPARATOR = "|"
LEGACY_DISMISS = "cancel"


@dataclass(frozen=True)
class SelectActivity:
    activity: Activity


@dataclass(frozen=True)
class SelectDate:
    activity: Activity
    day: date


@dataclass(frozen=True)
class SelectTime:
    slot: TimeSlot


@dataclass(frozen=True)
class Confirm:
    activity: Activity
    day: date


@dataclass(frozen=True)
class SelectEvent:
    event_id: str


@dataclass(frozen=True)
class ConfirmCancel:
    pass


@dataclass(frozen=True)
class Dismiss:
    pass


WizardStep = Union[SelectActivity, SelectDate, SelectTime, Confirm, SelectEvent, ConfirmCancel, Dismiss]


def _clock(value: time) -> str:
    return value.strftime("%H%M")


def _parse_clock(value: str) -> time:
    if len(value) != 4 or not value.isdigit():
        raise InvalidPayloadError(f"Invalid time field {value!r}")
    hours, minutes = int(value[:2]), int(value[2:])
    if hours > 23 or minutes > 59:
        raise InvalidPayloadError(f"Invalid time field {value!r}")
    return time(hours, minutes)


def _parse_activity(value: str) -> Activity:
    try:
        return Activity(int(value))
    except ValueError as exc:
        raise InvalidPayloadError(f"Unknown activity {value!r}") from exc


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidPayloadError(f"Invalid date {value!r}") from exc


def _fields(step: WizardStep) -> List[str]:
    if isinstance(step, SelectActivity):
        return ["A", str(step.activity.value)]
    if isinstance(step, SelectDate):
        return ["D", str(step.activity.value), step.day.isoformat()]
    if isinstance(step, SelectTime):
        return ["T", _clock(step.slot.start), _clock(step.slot.end)]
    if isinstance(step, Confirm):
        return ["C", str(step.activity.value), step.day.isoformat()]
    if isinstance(step, SelectEvent):
        if not step.event_id or SEPARATOR in step.event_id:
            raise InvalidPayloadError(f"Event id {step.event_id!r} cannot be encoded")
        return ["E", step.event_id]
    if isinstance(step, ConfirmCancel):
        return ["K"]
    if isinstance(step, Dismiss):
        return ["X"]
    raise InvalidPayloadError(f"Unsupported step {step!r}")


def encode(step: WizardStep) -> str:
    """Serialise ``step`` into callback data.

    Raises:
        InvalidPayloadError: the token would exceed Telegram's size limit.
    """
    t('botapp.wizard.payload.encode')
    token = SEPARATOR.join([PAYLOAD_VERSION, *_fields(step)])
    if len(token.encode("utf-8")) > MAX_CALLBACK_DATA_BYTES:
        raise InvalidPayloadError(f"Payload too long ({len(token)} bytes)")
    return token


def _decode_time(parts: List[str]) -> WizardStep:
    try:
        return SelectTime(TimeSlot(_parse_clock(parts[0]), _parse_clock(parts[1])))
    except ValueError as exc:
        raise InvalidPayloadError(str(exc)) from exc


_DECODERS: Dict[str, tuple[int, Callable[[List[str]], WizardStep]]] = {
    "A": (1, lambda parts: SelectActivity(_parse_activity(parts[0]))),
    "D": (2, lambda parts: SelectDate(_parse_activity(parts[0]), _parse_day(parts[1]))),
    "T": (2, _decode_time),
    "C": (2, lambda parts: Confirm(_parse_activity(parts[0]), _parse_day(parts[1]))),
    "E": (1, lambda parts: SelectEvent(parts[0])),
    "K": (0, lambda parts: ConfirmCancel()),
    "X": (0, lambda parts: Dismiss()),
}


def decode(data: str) -> WizardStep:
    """Parse callback data back into exactly one wizard step.

    Raises:
        InvalidPayloadError: unknown version or tag, wrong field count or a
            malformed field.
    """
    t('botapp.wizard.payload.decode')
    if data == LEGACY_DISMISS:
        return Dismiss()
    if not data:
        raise InvalidPayloadError("Empty payload")

    version, _, rest = data.partition(SEPARATOR)
    if version != PAYLOAD_VERSION:
        raise InvalidPayloadError(f"Unsupported payload version {version!r}")

    parts = rest.split(SEPARATOR) if rest else []
    if not parts:
        raise InvalidPayloadError("Missing step tag")
    tag, fields = parts[0], parts[1:]
    decoder = _DECODERS.get(tag)
    if decoder is None:
        raise InvalidPayloadError(f"Unknown step tag {tag!r}")
    arity, build = decoder
    if len(fields) != arity or any(not field for field in fields):
        raise InvalidPayloadError(f"Step {tag!r} expects {arity} fields, got {len(fields)}")
    return build(fields)


__all__ = [
    'Confirm',
    'ConfirmCancel',
    'Dismiss',
    'SelectActivity',
    'SelectDate',
    'SelectEvent',
    'SelectTime',
    'WizardStep',
    'decode',
    'encode',
]
