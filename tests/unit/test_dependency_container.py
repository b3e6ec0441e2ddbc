import pytest

from activities.poll_workflow import ActivityPollWorkflow
from botapp.bootstrap import DependencyContainer
from botapp.config import load_bot_config
from infrastructure.errors import ConfigurationError
from infrastructure.settings import load_settings
from infrastructure.state_store import JsonFileStore
from integrations.calendar import InMemoryCalendarBackend
from tests.helpers import FakeMessenger


def _config(tmp_path, **env):
    values = {
        "TELEGRAM_BOT_TOKEN": "123:abc",
        "CALENDAR_BACKEND": "memory",
        "STATE_FILE": str(tmp_path / "state.json"),
    }
    values.update(env)
    return load_bot_config(load_settings(values))


def test_memory_backend_without_group_chat(tmp_path):
    container = DependencyContainer(_config(tmp_path), overrides={"bot": object(), "messenger": FakeMessenger()})

    dependencies = container.build_dependencies()

    assert isinstance(dependencies.calendar, InMemoryCalendarBackend)
    assert isinstance(dependencies.store, JsonFileStore)
    assert dependencies.scheduler.workflow is None
    assert dependencies.scheduler.calendar_sync is None
    assert dependencies.wizard.group_chat_id is None
    assert set(dependencies.as_dict()) == {
        "config", "store", "calendar", "messenger", "translator", "scheduler", "wizard",
    }


def test_group_chat_and_source_enable_polls_and_sync(tmp_path):
    config = _config(tmp_path, GROUP_CHAT_ID="-1001", SOURCE_CALENDAR_ID="source", BOT_LANGUAGE="en")
    container = DependencyContainer(config, overrides={"bot": object(), "messenger": FakeMessenger()})

    scheduler = container.scheduler

    assert isinstance(scheduler.workflow, ActivityPollWorkflow)
    assert scheduler.workflow.group_chat_id == -1001
    assert scheduler.workflow.source_calendar_id == "source"
    assert scheduler.calendar_sync is not None
    assert scheduler.lock_directory == str(tmp_path)
    assert container.translator.get_language() == "en"


def test_google_backend_requires_token(tmp_path):
    config = _config(tmp_path, CALENDAR_BACKEND="google", BOOKINGS_CALENDAR_ID="bookings@example.com")
    container = DependencyContainer(config, overrides={"bot": object()})

    with pytest.raises(ConfigurationError):
        container.calendar


def test_overrides_replace_factories(tmp_path):
    calendar = InMemoryCalendarBackend()
    container = DependencyContainer(_config(tmp_path), overrides={"bot": object(), "calendar": calendar})

    assert container.calendar is calendar
    assert container.coordinator.calendar is calendar
