from datetime import date, datetime

import pytz

from botapp.i18n import Translator
from botapp.wizard.keyboards import (
    CHECK_PREFIX,
    activity_keyboard,
    cancel_keyboard,
    date_keyboard,
    event_label,
    selected_events,
    selected_slots,
    time_keyboard,
    toggle_check,
)
from reservations.models import Activity, Event, TimeSlot

KYIV = pytz.timezone("Europe/Kyiv")
DAY = date(2026, 10, 20)
TRANSLATOR = Translator("en")


def _texts(markup):
    return [[button.text for button in row] for row in markup.inline_keyboard]


def _event(event_id, hour, summary="Tennis"):
    start = KYIV.localize(datetime(2026, 10, 20, hour, 0))
    return Event(id=event_id, start=start, end=start.replace(minute=30), summary=summary)


def test_activity_keyboard_lists_every_activity_and_dismiss():
    texts = _texts(activity_keyboard(TRANSLATOR))

    assert texts[0] == ["Football"]
    assert len(texts) == len(Activity) + 1
    assert texts[-1] == ["Cancel"]


def test_date_keyboard_labels_include_weekday():
    markup = date_keyboard(Activity.FOOTBALL, [DAY], TRANSLATOR)

    assert markup.inline_keyboard[0][0].text == "2026-10-20 (Tuesday)"
    assert markup.inline_keyboard[0][0].callback_data == "1|D|0|2026-10-20"


def test_time_keyboard_rows_of_two_in_order():
    slots = [TimeSlot.parse(value) for value in ("10:00-10:30", "09:00-09:30", "09:30-10:00")]

    texts = _texts(time_keyboard(Activity.TENNIS, DAY, slots, TRANSLATOR))

    assert texts == [
        ["09:00 - 09:30", "09:30 - 10:00"],
        ["10:00 - 10:30"],
        ["Confirm"],
        ["Cancel"],
    ]


def test_toggle_check_marks_and_unmarks_one_button():
    markup = time_keyboard(Activity.TENNIS, DAY, [TimeSlot.parse("09:00-09:30")], TRANSLATOR)

    checked = toggle_check(markup, "1|T|0900|0930")
    unchecked = toggle_check(checked, "1|T|0900|0930")

    assert checked.inline_keyboard[0][0].text == CHECK_PREFIX + "09:00 - 09:30"
    assert unchecked.inline_keyboard[0][0].text == "09:00 - 09:30"
    assert markup.inline_keyboard[0][0].text == "09:00 - 09:30"


def test_selected_slots_reads_checked_buttons_in_order():
    slots = [TimeSlot.parse(value) for value in ("09:00-09:30", "09:30-10:00", "11:00-11:30")]
    markup = time_keyboard(Activity.TENNIS, DAY, slots, TRANSLATOR)
    markup = toggle_check(markup, "1|T|1100|1130")
    markup = toggle_check(markup, "1|T|0900|0930")

    assert selected_slots(markup) == [slots[0], slots[2]]


def test_cancel_keyboard_and_selected_events():
    events = [_event("evt1", 10), _event("evt2", 12, summary="Football")]
    markup = cancel_keyboard(events, TRANSLATOR, KYIV)

    texts = _texts(markup)
    assert texts[0] == ["Tennis 20-10-26 10:00-10:30"]
    assert texts[-2:] == [["Confirm cancellation"], ["Not now"]]

    markup = toggle_check(markup, "1|E|evt2")
    assert selected_events(markup) == [("evt2", "Football 20-10-26 12:00-12:30")]


def test_cancel_keyboard_skips_events_that_cannot_be_encoded():
    markup = cancel_keyboard([_event("x" * 80, 10)], TRANSLATOR, KYIV)

    assert _texts(markup) == [["Confirm cancellation"], ["Not now"]]


def test_event_label_without_summary():
    assert event_label(_event("evt1", 10, summary=""), TRANSLATOR, KYIV) == "20-10-26 10:00-10:30"
