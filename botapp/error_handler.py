"""
Centralized error handling for Telegram updates
Logs the failure, apologises to the user and notifies the admins
"""
from tracking import t

import logging
from typing import Iterable, Optional

from telegram import Update
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from botapp.i18n import Translator, create_translator


class ErrorHandler:
    """
    Application-level error handler for the bot

    Bound to one translator and the list of admin chats; ``handle`` is
    registered with ``Application.add_error_handler``.
    """

    def __init__(self, translator: Optional[Translator] = None, admin_chat_ids: Iterable[int] = ()) -> None:
        t('botapp.error_handler.ErrorHandler.__init__')
        self.translator = translator or create_translator()
        self.admin_chat_ids = tuple(admin_chat_ids)
        self.logger = logging.getLogger('ErrorHandler')

    async def handle(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Entry point for PTB; the exception is on ``context.error``."""
        t('botapp.error_handler.ErrorHandler.handle')
        await self.handle_telegram_error(
            update if isinstance(update, Update) else None,
            context,
            context.error,
        )

    async def handle_telegram_error(
        self,
        update: Optional[Update],
        context: ContextTypes.DEFAULT_TYPE,
        error: Optional[BaseException],
    ) -> None:
        """
        Log ``error`` and send a generic apology

        The user never sees exception details. "Message is not modified" is
        what Telegram answers when a button is pressed twice, so it is only
        logged as a warning.

        Args:
            update: The telegram update that caused the error, if any
            context: The callback context
            error: The exception that occurred
        """
        t('botapp.error_handler.ErrorHandler.handle_telegram_error')

        if error is not None and "message is not modified" in str(error).lower():
            self.logger.warning("Telegram message not modified (button pressed twice?): %s", error)
            return

        self.logger.error(
            "Unhandled error while processing update: %s: %s",
            type(error).__name__,
            error,
            exc_info=error,
        )
        if update is not None and update.effective_user:
            self.logger.error("Error context - User ID: %s", update.effective_user.id)

        await self._apologise(update)
        await self._notify_admins(context, error)

    async def _apologise(self, update: Optional[Update]) -> None:
        if update is None:
            self.logger.warning("No update object available - cannot send error message to user")
            return

        text = self.translator.t('error.generic')
        try:
            if update.callback_query:
                await update.callback_query.answer(text)
            elif update.effective_message:
                await update.effective_message.reply_text(text)
            else:
                self.logger.warning("Unable to send error message - no callback query or message available")
        except TelegramError as send_error:
            self.logger.error("Failed to send error message to user: %s", send_error)

    async def _notify_admins(self, context: ContextTypes.DEFAULT_TYPE, error: Optional[BaseException]) -> None:
        if not self.admin_chat_ids:
            return
        text = self.translator.t('error.admin_notice', error=f"{type(error).__name__}: {error}")
        for chat_id in self.admin_chat_ids:
            try:
                await context.bot.send_message(chat_id=chat_id, text=text)
            except TelegramError as exc:
                self.logger.warning("Failed to notify admin %s: %s", chat_id, exc)


__all__ = ['ErrorHandler']
