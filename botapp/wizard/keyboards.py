"""Inline keyboards for the booking and cancellation wizard.

Selection state lives in the keyboard itself: a chosen button carries a
check mark prefix and is toggled by rebuilding the markup.
"""

from __future__ import annotations
from tracking import t

import logging
from datetime import date
from typing import List, Sequence, Tuple

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from infrastructure.constants import CHECK_MARK, TIME_BUTTONS_PER_ROW
from infrastructure.errors import InvalidPayloadError
from reservations.models import Activity, Event, TimeSlot

from . import payload
from .payload import (
    Confirm,
    ConfirmCancel,
    Dismiss,
    SelectActivity,
    SelectDate,
    SelectEvent,
    SelectTime,
)

logger = logging.getLogger('WizardKeyboards')

CHECK_PREFIX = f"{CHECK_MARK} "


def _button(text: str, step: payload.WizardStep) -> InlineKeyboardButton:
    return InlineKeyboardButton(text, callback_data=payload.encode(step))


def _dismiss_row(translator, key: str = 'wizard.dismiss') -> List[InlineKeyboardButton]:
    return [_button(translator.t(key), Dismiss())]


def activity_keyboard(translator) -> InlineKeyboardMarkup:
    """One button per activity, one per row."""

    t('botapp.wizard.keyboards.activity_keyboard')
    keyboard = [
        [_button(translator.t(activity.translation_key), SelectActivity(activity))]
        for activity in Activity
    ]
    keyboard.append(_dismiss_row(translator))
    return InlineKeyboardMarkup(keyboard)


def date_label(day: date, translator) -> str:
    return f"{day.isoformat()} ({translator.t(f'weekday.{day.weekday()}')})"


def date_keyboard(activity: Activity, days: Sequence[date], translator) -> InlineKeyboardMarkup:
    """One button per date that still has free slots."""

    t('botapp.wizard.keyboards.date_keyboard')
    keyboard = [
        [_button(date_label(day, translator), SelectDate(activity, day))]
        for day in days
    ]
    keyboard.append(_dismiss_row(translator))
    return InlineKeyboardMarkup(keyboard)


def time_keyboard(
    activity: Activity,
    day: date,
    slots: Sequence[TimeSlot],
    translator,
) -> InlineKeyboardMarkup:
    """Toggleable free slots laid out ``TIME_BUTTONS_PER_ROW`` per row."""

    t('botapp.wizard.keyboards.time_keyboard')
    keyboard = []
    ordered = sorted(slots)
    for i in range(0, len(ordered), TIME_BUTTONS_PER_ROW):
        keyboard.append([
            _button(slot.label, SelectTime(slot))
            for slot in ordered[i:i + TIME_BUTTONS_PER_ROW]
        ])
    keyboard.append([_button(translator.t('wizard.confirm'), Confirm(activity, day))])
    keyboard.append(_dismiss_row(translator))
    return InlineKeyboardMarkup(keyboard)


def event_label(event: Event, translator, timezone=None) -> str:
    start = event.start.astimezone(timezone) if timezone is not None else event.start
    end = event.end.astimezone(timezone) if timezone is not None else event.end
    when = f"{start.strftime('%d-%m-%y')} {start.strftime('%H:%M')}-{end.strftime('%H:%M')}"
    return f"{event.summary} {when}" if event.summary else when


def cancel_keyboard(events: Sequence[Event], translator, timezone=None) -> InlineKeyboardMarkup:
    """Toggleable list of the user's bookings plus confirm and "not now"."""

    t('botapp.wizard.keyboards.cancel_keyboard')
    keyboard = []
    for event in events:
        try:
            button = _button(event_label(event, translator, timezone), SelectEvent(event.id))
        except InvalidPayloadError as exc:
            logger.warning("Skipping event %s in cancel keyboard: %s", event.id, exc)
            continue
        keyboard.append([button])
    keyboard.append([_button(translator.t('cancel.confirm'), ConfirmCancel())])
    keyboard.append(_dismiss_row(translator, 'cancel.not_now'))
    return InlineKeyboardMarkup(keyboard)


def is_checked(button: InlineKeyboardButton) -> bool:
    return button.text.startswith(CHECK_PREFIX)


def _strip_check(text: str) -> str:
    return text[len(CHECK_PREFIX):] if text.startswith(CHECK_PREFIX) else text


def toggle_check(markup: InlineKeyboardMarkup, data: str) -> InlineKeyboardMarkup:
    """Return a copy of ``markup`` with the button carrying ``data`` toggled."""

    t('botapp.wizard.keyboards.toggle_check')
    keyboard = []
    for row in markup.inline_keyboard:
        new_row = []
        for button in row:
            if button.callback_data == data:
                text = _strip_check(button.text) if is_checked(button) else CHECK_PREFIX + button.text
                button = InlineKeyboardButton(text, callback_data=button.callback_data)
            new_row.append(button)
        keyboard.append(new_row)
    return InlineKeyboardMarkup(keyboard)


def _checked_steps(markup: InlineKeyboardMarkup) -> List[Tuple[InlineKeyboardButton, payload.WizardStep]]:
    steps = []
    for row in markup.inline_keyboard:
        for button in row:
            if not is_checked(button) or not button.callback_data:
                continue
            try:
                steps.append((button, payload.decode(button.callback_data)))
            except InvalidPayloadError as exc:
                logger.warning("Ignoring undecodable checked button %r: %s", button.callback_data, exc)
    return steps


def selected_slots(markup: InlineKeyboardMarkup) -> List[TimeSlot]:
    """Slots whose buttons are checked, in chronological order."""

    t('botapp.wizard.keyboards.selected_slots')
    return sorted(
        step.slot for _, step in _checked_steps(markup) if isinstance(step, SelectTime)
    )


def selected_events(markup: InlineKeyboardMarkup) -> List[Tuple[str, str]]:
    """``(event_id, label)`` for every checked booking."""

    t('botapp.wizard.keyboards.selected_events')
    return [
        (step.event_id, _strip_check(button.text))
        for button, step in _checked_steps(markup)
        if isinstance(step, SelectEvent)
    ]


__all__ = [
    'activity_keyboard',
    'cancel_keyboard',
    'date_keyboard',
    'date_label',
    'event_label',
    'selected_events',
    'selected_slots',
    'time_keyboard',
    'toggle_check',
]
