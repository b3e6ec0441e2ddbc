"""Thin wrapper over ``telegram.Bot`` used by the poll workflow and wizard."""

from __future__ import annotations
from tracking import t

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from telegram import InlineKeyboardMarkup, ReplyParameters
from telegram.constants import ChatMemberStatus
from telegram.error import TelegramError

NON_MEMBER_STATUSES = {
    ChatMemberStatus.LEFT,
    ChatMemberStatus.BANNED,
    ChatMemberStatus.RESTRICTED,
}


@dataclass(frozen=True)
class PollTally:
    """Final vote counts of a stopped poll keyed by option text."""

    counts: Dict[str, int] = field(default_factory=dict)
    total_voters: int = 0

    def votes_for(self, option: str) -> int:
        return self.counts.get(option, 0)


class TelegramMessenger:
    """Messaging operations the core needs, expressed over the Bot API."""

    def __init__(self, bot, *, logger: Optional[logging.Logger] = None) -> None:
        t('integrations.messaging.TelegramMessenger.__init__')
        self.bot = bot
        self.logger = logger or logging.getLogger('TelegramMessenger')

    async def send_poll(self, chat_id: int, question: str, options: Sequence[str]) -> int:
        t('integrations.messaging.TelegramMessenger.send_poll')
        message = await self.bot.send_poll(
            chat_id=chat_id,
            question=question,
            options=list(options),
            is_anonymous=False,
        )
        self.logger.info("Poll %s sent to chat %s: %s", message.message_id, chat_id, question)
        return message.message_id

    async def stop_poll(self, chat_id: int, message_id: int) -> PollTally:
        """Close the poll and return its tally. Errors propagate."""
        t('integrations.messaging.TelegramMessenger.stop_poll')
        poll = await self.bot.stop_poll(chat_id=chat_id, message_id=message_id)
        if poll is None:
            raise TelegramError(f"No poll returned for message {message_id}")
        counts = {option.text: option.voter_count for option in poll.options}
        return PollTally(counts=counts, total_voters=getattr(poll, 'total_voter_count', 0) or 0)

    async def pin(self, chat_id: int, message_id: int) -> bool:
        t('integrations.messaging.TelegramMessenger.pin')
        try:
            return bool(await self.bot.pin_chat_message(
                chat_id=chat_id, message_id=message_id, disable_notification=True
            ))
        except TelegramError as exc:
            self.logger.warning("Failed to pin message %s in %s: %s", message_id, chat_id, exc)
            return False

    async def unpin(self, chat_id: int, message_id: int) -> bool:
        t('integrations.messaging.TelegramMessenger.unpin')
        try:
            return bool(await self.bot.unpin_chat_message(chat_id=chat_id, message_id=message_id))
        except TelegramError as exc:
            self.logger.warning("Failed to unpin message %s in %s: %s", message_id, chat_id, exc)
            return False

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_to: Optional[int] = None,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> int:
        t('integrations.messaging.TelegramMessenger.send_message')
        reply_parameters = None
        if reply_to is not None:
            reply_parameters = ReplyParameters(message_id=reply_to, allow_sending_without_reply=True)
        message = await self.bot.send_message(
            chat_id=chat_id,
            text=text,
            reply_parameters=reply_parameters,
            reply_markup=reply_markup,
        )
        return message.message_id

    async def delete_message(self, chat_id: int, message_id: int) -> bool:
        t('integrations.messaging.TelegramMessenger.delete_message')
        try:
            return bool(await self.bot.delete_message(chat_id=chat_id, message_id=message_id))
        except TelegramError as exc:
            self.logger.warning("Failed to delete message %s in %s: %s", message_id, chat_id, exc)
            return False

    async def is_member(self, chat_id: int, user_id: int) -> bool:
        """True when ``user_id`` is an active member of ``chat_id``."""
        t('integrations.messaging.TelegramMessenger.is_member')
        try:
            member = await self.bot.get_chat_member(chat_id=chat_id, user_id=user_id)
        except TelegramError as exc:
            self.logger.info("Membership check for %s in %s failed: %s", user_id, chat_id, exc)
            return False
        return member.status not in NON_MEMBER_STATUSES


__all__ = ['PollTally', 'TelegramMessenger']
