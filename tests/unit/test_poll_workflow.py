from datetime import datetime, timedelta

import pytest
import pytz

from activities.discovery import ActivityDiscovery
from activities.models import PollCreationStatus, PollOutcome
from activities.poll_workflow import ActivityPollWorkflow
from activities.repository import ScheduledActivityRepository
from botapp.i18n import Translator
from infrastructure.state_store import MemoryStore
from integrations.calendar import InMemoryCalendarBackend
from integrations.messaging import PollTally
from reservations.models import Event
from tests.helpers import DummyLogger, FakeMessenger

KYIV = pytz.timezone("Europe/Kyiv")
GROUP_CHAT = -1001
DESCRIPTION = (
    "Початок голосування: 09:00 в попередній день<br>"
    "Кінець голосування: 17:00<br>"
    "Мінімальна кількість голосів за: 3<br>"
)
BEFORE_WINDOW = KYIV.localize(datetime(2026, 10, 19, 8, 0))
IN_WINDOW = KYIV.localize(datetime(2026, 10, 19, 12, 0))
CHECK_TIME = KYIV.localize(datetime(2026, 10, 20, 17, 0))


def _activity_event(event_id="evt-football", hour=19, source_id=None, description=DESCRIPTION):
    start = KYIV.localize(datetime(2026, 10, 20, hour, 0))
    return Event(
        id=event_id,
        start=start,
        end=start + timedelta(hours=2),
        summary="НА Футбол",
        description=description,
        source_id=source_id,
    )


def _workflow(calendar=None, messenger=None, store=None, source_calendar_id=None):
    calendar = calendar or InMemoryCalendarBackend()
    messenger = messenger or FakeMessenger()
    store = store if store is not None else MemoryStore()
    logger = DummyLogger()
    discovery = ActivityDiscovery(calendar, "bookings", lookahead_hours=48, logger=logger)
    repository = ScheduledActivityRepository(store, logger=logger)
    return ActivityPollWorkflow(
        discovery,
        repository,
        messenger,
        calendar,
        "bookings",
        GROUP_CHAT,
        Translator("en"),
        source_calendar_id=source_calendar_id,
        logger=logger,
    )


@pytest.mark.asyncio
async def test_create_poll_sends_persists_and_pins():
    calendar = InMemoryCalendarBackend()
    calendar.add("bookings", _activity_event())
    messenger = FakeMessenger()
    store = MemoryStore()
    workflow = _workflow(calendar, messenger, store)

    result = await workflow.create_poll(IN_WINDOW)

    assert result.status is PollCreationStatus.CREATED
    assert result.pinned is True
    poll = messenger.actions("send_poll")[0]
    assert poll["chat_id"] == GROUP_CHAT
    assert poll["question"] == "Футбол 19:00 (Tuesday 20.10)"
    assert poll["options"] == ("✅", "❌")
    assert store.get(f"POLL_{result.message_id}") is not None
    assert [action for action, _ in messenger.calls] == ["send_poll", "pin"]


@pytest.mark.asyncio
async def test_create_poll_twice_keeps_one_poll():
    calendar = InMemoryCalendarBackend()
    calendar.add("bookings", _activity_event())
    messenger = FakeMessenger()
    workflow = _workflow(calendar, messenger)

    first = await workflow.create_poll(IN_WINDOW)
    second = await workflow.create_poll(IN_WINDOW + timedelta(minutes=5))

    assert second.status is PollCreationStatus.ALREADY_EXISTS
    assert second.message_id == first.message_id
    assert len(messenger.actions("send_poll")) == 1


@pytest.mark.asyncio
async def test_each_activity_in_the_lookahead_gets_one_poll():
    calendar = InMemoryCalendarBackend()
    calendar.add("bookings", _activity_event("evt-a", hour=18))
    calendar.add("bookings", _activity_event("evt-b", hour=20))
    messenger = FakeMessenger()
    store = MemoryStore()
    workflow = _workflow(calendar, messenger, store)

    ticks = [KYIV.localize(datetime(2026, 10, 19, hour, 0)) for hour in range(10, 17)]
    results = [await workflow.create_poll(now) for now in ticks]

    assert [(r.status, r.activity.id) for r in results[:2]] == [
        (PollCreationStatus.CREATED, "evt-a"),
        (PollCreationStatus.CREATED, "evt-b"),
    ]
    assert all(r.status is PollCreationStatus.ALREADY_EXISTS for r in results[2:])
    assert len(messenger.actions("send_poll")) == 2
    stored = ScheduledActivityRepository(store, logger=DummyLogger()).load_all()
    assert sorted(activity.id for activity in stored.values()) == ["evt-a", "evt-b"]


@pytest.mark.asyncio
async def test_closed_window_does_not_hide_later_activity():
    closed = (
        "Початок голосування: 08:00 в попередній день<br>"
        "Кінець голосування: 11:00 в попередній день<br>"
        "Мінімальна кількість голосів за: 3<br>"
    )
    calendar = InMemoryCalendarBackend()
    calendar.add("bookings", _activity_event("evt-a", hour=18, description=closed))
    calendar.add("bookings", _activity_event("evt-b", hour=20))
    messenger = FakeMessenger()

    result = await _workflow(calendar, messenger).create_poll(IN_WINDOW)

    assert result.status is PollCreationStatus.CREATED
    assert result.activity.id == "evt-b"


@pytest.mark.asyncio
async def test_no_new_poll_when_tick_lands_on_check_time():
    calendar = InMemoryCalendarBackend()
    calendar.add("bookings", _activity_event())
    messenger = FakeMessenger()
    store = MemoryStore()
    workflow = _workflow(calendar, messenger, store)
    created = await workflow.create_poll(IN_WINDOW)
    messenger.tallies[created.message_id] = PollTally(counts={"✅": 3})

    resolved = await workflow.resolve_due_polls(CHECK_TIME)
    again = await workflow.create_poll(CHECK_TIME)

    assert [result.outcome for result in resolved] == [PollOutcome.CONFIRMED]
    assert again.status is PollCreationStatus.OUTSIDE_WINDOW
    assert len(messenger.actions("send_poll")) == 1
    assert store.scan("POLL_") == {}


@pytest.mark.asyncio
async def test_create_poll_outside_window_does_nothing():
    calendar = InMemoryCalendarBackend()
    calendar.add("bookings", _activity_event())
    messenger = FakeMessenger()

    result = await _workflow(calendar, messenger).create_poll(BEFORE_WINDOW)

    assert result.status is PollCreationStatus.OUTSIDE_WINDOW
    assert messenger.calls == []


@pytest.mark.asyncio
async def test_create_poll_without_activity():
    result = await _workflow().create_poll(IN_WINDOW)

    assert result.status is PollCreationStatus.NO_ACTIVITY


@pytest.mark.asyncio
async def test_send_failure_stores_nothing():
    calendar = InMemoryCalendarBackend()
    calendar.add("bookings", _activity_event())
    messenger = FakeMessenger()
    messenger.send_poll_error = RuntimeError("chat not found")
    store = MemoryStore()

    with pytest.raises(RuntimeError):
        await _workflow(calendar, messenger, store).create_poll(IN_WINDOW)

    assert store.scan("POLL_") == {}


@pytest.mark.asyncio
async def test_unpinned_poll_is_still_recorded():
    calendar = InMemoryCalendarBackend()
    calendar.add("bookings", _activity_event())
    messenger = FakeMessenger()
    messenger.pin_result = False
    store = MemoryStore()

    result = await _workflow(calendar, messenger, store).create_poll(IN_WINDOW)

    assert result.status is PollCreationStatus.CREATED
    assert result.pinned is False
    assert store.get(f"POLL_{result.message_id}") is not None


async def _open_poll(calendar, messenger, store, **kwargs):
    workflow = _workflow(calendar, messenger, store, **kwargs)
    created = await workflow.create_poll(IN_WINDOW)
    return workflow, created.message_id


@pytest.mark.asyncio
async def test_enough_votes_confirm_the_activity():
    calendar = InMemoryCalendarBackend()
    calendar.add("bookings", _activity_event())
    messenger = FakeMessenger()
    store = MemoryStore()
    workflow, message_id = await _open_poll(calendar, messenger, store)
    messenger.tallies[message_id] = PollTally(counts={"✅": 3, "❌": 5}, total_voters=8)

    results = await workflow.resolve_due_polls(CHECK_TIME)

    assert [result.outcome for result in results] == [PollOutcome.CONFIRMED]
    assert results[0].votes_for == 3
    assert [event.id for event in calendar.events("bookings")] == ["evt-football"]
    announcement = messenger.actions("send_message")[0]
    assert announcement["reply_to"] == message_id
    assert announcement["text"].startswith("✅ 3 people voted for")
    assert messenger.actions("unpin") == [{"chat_id": GROUP_CHAT, "message_id": message_id}]
    assert store.scan("POLL_") == {}


@pytest.mark.asyncio
async def test_too_few_votes_cancel_the_activity():
    calendar = InMemoryCalendarBackend()
    calendar.add("bookings", _activity_event())
    messenger = FakeMessenger()
    store = MemoryStore()
    workflow, message_id = await _open_poll(calendar, messenger, store)
    messenger.tallies[message_id] = PollTally(counts={"✅": 2})

    results = await workflow.resolve_due_polls(CHECK_TIME)

    assert results[0].outcome is PollOutcome.CANCELLED
    assert calendar.events("bookings") == []
    assert messenger.actions("send_message")[0]["text"].startswith("❌ Only 2 voted for")
    assert store.scan("POLL_") == {}


@pytest.mark.asyncio
async def test_cancelling_a_mirror_also_deletes_its_source():
    calendar = InMemoryCalendarBackend()
    calendar.add("source", Event(
        id="src42",
        start=KYIV.localize(datetime(2026, 10, 20, 19, 0)),
        end=KYIV.localize(datetime(2026, 10, 20, 21, 0)),
        summary="НА Футбол",
    ))
    calendar.add("bookings", _activity_event(source_id="src42+2026-10-20T19:00:00+03:00"))
    messenger = FakeMessenger()
    workflow, message_id = await _open_poll(calendar, messenger, MemoryStore(), source_calendar_id="source")
    messenger.tallies[message_id] = PollTally(counts={"✅": 0})

    await workflow.resolve_due_polls(CHECK_TIME)

    assert calendar.events("bookings") == []
    assert calendar.events("source") == []


@pytest.mark.asyncio
async def test_polls_are_not_resolved_before_check_time():
    calendar = InMemoryCalendarBackend()
    calendar.add("bookings", _activity_event())
    messenger = FakeMessenger()
    store = MemoryStore()
    workflow, message_id = await _open_poll(calendar, messenger, store)

    results = await workflow.resolve_due_polls(CHECK_TIME - timedelta(minutes=1))

    assert results == []
    assert list(store.scan("POLL_")) == [f"POLL_{message_id}"]


@pytest.mark.asyncio
async def test_stop_poll_failure_marks_failed_and_removes_record():
    calendar = InMemoryCalendarBackend()
    calendar.add("bookings", _activity_event())
    messenger = FakeMessenger()
    store = MemoryStore()
    workflow, message_id = await _open_poll(calendar, messenger, store)
    messenger.tallies[message_id] = RuntimeError("Poll has already been closed")

    results = await workflow.resolve_due_polls(CHECK_TIME)

    assert results[0].outcome is PollOutcome.FAILED
    assert "already been closed" in results[0].error
    assert store.scan("POLL_") == {}
    assert len(calendar.events("bookings")) == 1
    assert messenger.actions("unpin")


@pytest.mark.asyncio
async def test_one_failing_record_does_not_block_others():
    calendar = InMemoryCalendarBackend()
    calendar.add("bookings", _activity_event("evt-a", hour=18))
    calendar.add("bookings", _activity_event("evt-b", hour=20))
    messenger = FakeMessenger()
    store = MemoryStore()
    workflow = _workflow(calendar, messenger, store)
    first = await workflow.create_poll(IN_WINDOW)
    second = await workflow.create_poll(IN_WINDOW)
    messenger.tallies[first.message_id] = RuntimeError("message to stop not found")
    messenger.tallies[second.message_id] = PollTally(counts={"✅": 4})

    results = await workflow.resolve_due_polls(CHECK_TIME)

    outcomes = {result.activity.id: result.outcome for result in results}
    assert outcomes == {"evt-a": PollOutcome.FAILED, "evt-b": PollOutcome.CONFIRMED}
    assert store.scan("POLL_") == {}


def test_sweep_and_clear_delegate_to_repository():
    store = MemoryStore()
    workflow = _workflow(store=store)

    assert workflow.sweep(IN_WINDOW) == 0
    assert workflow.clear_all() == 0
