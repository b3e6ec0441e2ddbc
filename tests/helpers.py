"""Shared fakes and utilities for unit tests."""

from __future__ import annotations
from tracking import t

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple


class DummyLogger:
    """Lightweight stand-in for ``logging.Logger`` that records calls."""

    def __init__(self) -> None:
        t('tests.helpers.DummyLogger.__init__')
        self.records: List[Tuple[str, Tuple[Any, ...], Dict[str, Any]]] = []
        # ``entries`` is kept for compatibility with existing assertions.
        self.entries = self.records

    def _record(self, level: str, *args: Any, **kwargs: Any) -> None:
        t('tests.helpers.DummyLogger._record')
        self.records.append((level, args, kwargs))

    def debug(self, *args: Any, **kwargs: Any) -> None:
        t('tests.helpers.DummyLogger.debug')
        self._record("debug", *args, **kwargs)

    def info(self, *args: Any, **kwargs: Any) -> None:
        t('tests.helpers.DummyLogger.info')
        self._record("info", *args, **kwargs)

    def warning(self, *args: Any, **kwargs: Any) -> None:
        t('tests.helpers.DummyLogger.warning')
        self._record("warning", *args, **kwargs)

    def error(self, *args: Any, **kwargs: Any) -> None:
        t('tests.helpers.DummyLogger.error')
        self._record("error", *args, **kwargs)

    def critical(self, *args: Any, **kwargs: Any) -> None:
        t('tests.helpers.DummyLogger.critical')
        self._record("critical", *args, **kwargs)

    def exception(self, *args: Any, **kwargs: Any) -> None:
        t('tests.helpers.DummyLogger.exception')
        self._record("exception", *args, **kwargs)

    @property
    def messages(self) -> List[Tuple[str, Any]]:
        """Return formatted messages for quick assertions."""
        t('tests.helpers.DummyLogger.messages')

        formatted: List[Tuple[str, Any]] = []
        for level, args, kwargs in self.records:
            message: Any = kwargs.get("msg")
            if args:
                template = args[0]
                if isinstance(template, str) and len(args) > 1:
                    try:
                        message = template % args[1:]
                    except (TypeError, ValueError):
                        message = template
                else:
                    message = template
            formatted.append((level, message))
        return formatted

    def clear(self) -> None:
        t('tests.helpers.DummyLogger.clear')
        self.records.clear()

    def last(self, level: str | None = None) -> Tuple[str, Tuple[Any, ...], Dict[str, Any]] | None:
        """Return the most recent record, optionally filtered by level."""
        t('tests.helpers.DummyLogger.last')

        if not self.records:
            return None
        if level is None:
            return self.records[-1]
        for entry in reversed(self.records):
            if entry[0] == level:
                return entry
        return None


class FakeMessenger:
    """Records messaging calls made by the poll workflow and the wizard."""

    def __init__(self, *, tallies: Dict[int, Any] | None = None, members: bool = True) -> None:
        t('tests.helpers.FakeMessenger.__init__')
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.tallies: Dict[int, Any] = dict(tallies or {})
        self.members = members
        self.pin_result = True
        self.send_poll_error: Exception | None = None
        self._next_message_id = 100

    def _record(self, action: str, **payload: Any) -> None:
        self.calls.append((action, payload))

    def actions(self, name: str) -> List[Dict[str, Any]]:
        t('tests.helpers.FakeMessenger.actions')
        return [payload for action, payload in self.calls if action == name]

    async def send_poll(self, chat_id: int, question: str, options) -> int:
        t('tests.helpers.FakeMessenger.send_poll')
        if self.send_poll_error is not None:
            raise self.send_poll_error
        self._next_message_id += 1
        self._record("send_poll", chat_id=chat_id, question=question, options=tuple(options),
                     message_id=self._next_message_id)
        return self._next_message_id

    async def stop_poll(self, chat_id: int, message_id: int):
        t('tests.helpers.FakeMessenger.stop_poll')
        self._record("stop_poll", chat_id=chat_id, message_id=message_id)
        tally = self.tallies.get(message_id)
        if isinstance(tally, Exception):
            raise tally
        if tally is None:
            raise RuntimeError(f"poll {message_id} not found")
        return tally

    async def pin(self, chat_id: int, message_id: int) -> bool:
        t('tests.helpers.FakeMessenger.pin')
        self._record("pin", chat_id=chat_id, message_id=message_id)
        return self.pin_result

    async def unpin(self, chat_id: int, message_id: int) -> bool:
        t('tests.helpers.FakeMessenger.unpin')
        self._record("unpin", chat_id=chat_id, message_id=message_id)
        return True

    async def send_message(self, chat_id: int, text: str, reply_to: int | None = None, reply_markup=None) -> int:
        t('tests.helpers.FakeMessenger.send_message')
        self._next_message_id += 1
        self._record("send_message", chat_id=chat_id, text=text, reply_to=reply_to, reply_markup=reply_markup)
        return self._next_message_id

    async def delete_message(self, chat_id: int, message_id: int) -> bool:
        t('tests.helpers.FakeMessenger.delete_message')
        self._record("delete_message", chat_id=chat_id, message_id=message_id)
        return True

    async def is_member(self, chat_id: int, user_id: int) -> bool:
        t('tests.helpers.FakeMessenger.is_member')
        self._record("is_member", chat_id=chat_id, user_id=user_id)
        return self.members


@dataclass
class FakeUser:
    """Minimal user representation carrying the identifiers handlers expect."""

    id: int = 7
    username: str | None = "player"
    first_name: str = "Test"


@dataclass
class FakeChat:
    id: int = 7
    type: str = "private"


class FakeMessage:
    """Collects replies and carries the inline keyboard of a wizard message."""

    def __init__(self, chat: FakeChat, *, text: str = "", message_id: int = 50, reply_markup: Any = None) -> None:
        t('tests.helpers.FakeMessage.__init__')
        self.chat = chat
        self.chat_id = chat.id
        self.text = text
        self.message_id = message_id
        self.reply_markup = reply_markup
        self.replies: List[Dict[str, Any]] = []

    async def reply_text(self, text: str, **kwargs: Any) -> None:
        t('tests.helpers.FakeMessage.reply_text')
        self.replies.append({"text": text, **kwargs})


class FakeCallbackQuery:
    """Subset of telegram.CallbackQuery used by the wizard."""

    def __init__(self, data: str, message: FakeMessage) -> None:
        t('tests.helpers.FakeCallbackQuery.__init__')
        self.data = data
        self.message = message
        self.answers: List[str | None] = []
        self.edits: List[Dict[str, Any]] = []

    async def answer(self, text: str | None = None, **kwargs: Any) -> None:
        t('tests.helpers.FakeCallbackQuery.answer')
        self.answers.append(text)

    async def edit_message_text(self, text: str, **kwargs: Any) -> None:
        t('tests.helpers.FakeCallbackQuery.edit_message_text')
        self.edits.append({"text": text, **kwargs})
        if "reply_markup" in kwargs:
            self.message.reply_markup = kwargs["reply_markup"]

    async def edit_message_reply_markup(self, reply_markup: Any = None, **kwargs: Any) -> None:
        t('tests.helpers.FakeCallbackQuery.edit_message_reply_markup')
        self.edits.append({"reply_markup": reply_markup})
        self.message.reply_markup = reply_markup


class FakeUpdate:
    """Simplified telegram.Update analogue."""

    def __init__(
        self,
        *,
        user: FakeUser | None = None,
        chat: FakeChat | None = None,
        message: FakeMessage | None = None,
        callback_query: FakeCallbackQuery | None = None,
    ) -> None:
        t('tests.helpers.FakeUpdate.__init__')
        self.effective_user = user or FakeUser()
        self.effective_chat = chat or FakeChat(id=self.effective_user.id)
        self.message = message
        self.callback_query = callback_query

    @property
    def effective_message(self) -> FakeMessage | None:
        if self.message is not None:
            return self.message
        if self.callback_query is not None:
            return self.callback_query.message
        return None


class FakeBot:
    """Records ``send_message`` calls made through ``context.bot``."""

    def __init__(self) -> None:
        t('tests.helpers.FakeBot.__init__')
        self.sent: List[Dict[str, Any]] = []

    async def send_message(self, chat_id: int, text: str, **kwargs: Any) -> None:
        t('tests.helpers.FakeBot.send_message')
        self.sent.append({"chat_id": chat_id, "text": text, **kwargs})


class FakeContext:
    """Plain object mirroring the telegram.ext callback context."""

    def __init__(self, error: BaseException | None = None) -> None:
        t('tests.helpers.FakeContext.__init__')
        self.error = error
        self.bot = FakeBot()
        self.user_data: Dict[str, Any] = {}
        self.bot_data: Dict[str, Any] = {}
