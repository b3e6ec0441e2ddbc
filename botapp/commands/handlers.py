"""Utilities to register Telegram command and callback handlers."""

from __future__ import annotations
from tracking import t

from telegram import BotCommand
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, MessageHandler, filters

from botapp.i18n import Translator


def menu_commands(translator: Translator) -> list[BotCommand]:
    """Commands shown in the private-chat menu."""

    t('botapp.commands.handlers.menu_commands')
    return [
        BotCommand("register", translator.t('command.register')),
        BotCommand("book", translator.t('command.book')),
        BotCommand("cancel", translator.t('command.cancel')),
        BotCommand("help", translator.t('command.help')),
    ]


def register_core_handlers(application: Application, bot) -> None:
    """Wire up the bot's command, message, callback, and error handlers."""

    t('botapp.commands.handlers.register_core_handlers')

    wizard = bot.wizard
    private = filters.ChatType.PRIVATE

    application.add_handler(CommandHandler(["start", "help"], wizard.help_command, filters=private))
    application.add_handler(CommandHandler("book", wizard.book_command, filters=private))
    application.add_handler(CommandHandler("cancel", wizard.cancel_command, filters=private))
    application.add_handler(CommandHandler("register", wizard.register_command, filters=private))
    application.add_handler(MessageHandler(private & filters.COMMAND, wizard.unknown_command))
    application.add_handler(MessageHandler(private & filters.TEXT & ~filters.COMMAND, wizard.handle_text))
    application.add_handler(CallbackQueryHandler(wizard.handle_callback))
    application.add_error_handler(bot.error_handler.handle)


__all__ = ['menu_commands', 'register_core_handlers']
