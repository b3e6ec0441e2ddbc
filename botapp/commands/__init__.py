"""Telegram command registration."""

from .handlers import menu_commands, register_core_handlers

__all__ = ['menu_commands', 'register_core_handlers']
