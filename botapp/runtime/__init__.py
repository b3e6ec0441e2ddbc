"""Runtime helpers for the Telegram bot application."""

from .lifecycle import LifecycleManager
from .bot_application import BotApplication
from .update_puller import UpdatePuller

__all__ = ['LifecycleManager', 'BotApplication', 'UpdatePuller']
