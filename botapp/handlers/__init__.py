"""
Handler utilities shared by the bot's Telegram entry points
"""

from .router import CallbackRouter

__all__ = ['CallbackRouter']
