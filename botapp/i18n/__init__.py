"""Internationalization (i18n) for bot messages.

Ukrainian is the default language; English is available via ``BOT_LANGUAGE=en``.

Usage:
    from botapp.i18n import create_translator

    translator = create_translator('en')
    text = translator.t('wizard.booked', date='2026-10-20', activity='Tennis', slots='10:00 - 11:00')
"""

from .languages import DEFAULT_LANGUAGE, Language
from .translator import Translator, create_translator

__all__ = [
    'DEFAULT_LANGUAGE',
    'Language',
    'Translator',
    'create_translator',
]
