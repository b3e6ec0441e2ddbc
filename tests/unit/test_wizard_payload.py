from datetime import date, time

import pytest

from botapp.wizard.payload import (
    Confirm,
    ConfirmCancel,
    Dismiss,
    SelectActivity,
    SelectDate,
    SelectEvent,
    SelectTime,
    decode,
    encode,
)
from infrastructure.errors import InvalidPayloadError
from reservations.models import Activity, TimeSlot

DAY = date(2026, 10, 20)


@pytest.mark.parametrize(
    ("step", "token"),
    [
        (SelectActivity(Activity.TENNIS), "1|A|2"),
        (SelectDate(Activity.FOOTBALL, DAY), "1|D|0|2026-10-20"),
        (SelectTime(TimeSlot(time(9, 0), time(9, 30))), "1|T|0900|0930"),
        (Confirm(Activity.OTHER, DAY), "1|C|5|2026-10-20"),
        (SelectEvent("abc123def"), "1|E|abc123def"),
        (ConfirmCancel(), "1|K"),
        (Dismiss(), "1|X"),
    ],
)
def test_steps_have_stable_tokens(step, token):
    assert encode(step) == token
    assert decode(token) == step


def test_legacy_cancel_token_dismisses():
    assert decode("cancel") == Dismiss()


@pytest.mark.parametrize(
    "data",
    [
        "",
        "2|A|1",
        "1",
        "1|Z|1",
        "1|A",
        "1|A|1|extra",
        "1|A|9",
        "1|D|0|2026-13-01",
        "1|T|0930|0900",
        "1|T|2460|2500",
        "1|T|9:00|9:30",
        "1|E|",
        "10:00-10:30",
    ],
)
def test_malformed_payloads_are_rejected(data):
    with pytest.raises(InvalidPayloadError):
        decode(data)


def test_event_ids_that_do_not_fit_are_rejected():
    with pytest.raises(InvalidPayloadError):
        encode(SelectEvent("x" * 70))
    with pytest.raises(InvalidPayloadError):
        encode(SelectEvent("a|b"))


def test_every_token_fits_telegram_limit():
    tokens = [encode(SelectDate(activity, DAY)) for activity in Activity]
    tokens.append(encode(SelectEvent("e" * 60)))

    assert all(len(token.encode("utf-8")) <= 64 for token in tokens)
