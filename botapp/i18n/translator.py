"""Translation service for internationalization support."""

from __future__ import annotations
from tracking import t

from typing import Any, Optional

from .languages import DEFAULT_LANGUAGE, Language
from .strings import STRINGS


class Translator:
    """Looks up user-facing strings for one language."""

    def __init__(self, language: str | Language = DEFAULT_LANGUAGE):
        t('botapp.i18n.translator.Translator.__init__')
        self.language = language.value if isinstance(language, Language) else str(language)
        if self.language not in STRINGS:
            self.language = DEFAULT_LANGUAGE.value

    def t(self, key: str, **params: Any) -> str:
        """Translate ``key``, substituting ``params``.

        Missing keys fall back to the default language and then to
        ``[key]``; a missing parameter leaves the template unformatted.

        Example:
            >>> Translator('en').t('cancel.done', count=2)
            'Bookings cancelled: 2'
        """
        t('botapp.i18n.translator.Translator.t')
        translated = STRINGS[self.language].get(key)
        if translated is None:
            translated = STRINGS[DEFAULT_LANGUAGE.value].get(key, f"[{key}]")

        if params:
            try:
                translated = translated.format(**params)
            except (KeyError, IndexError):
                pass
        return translated

    def get_language(self) -> str:
        return self.language


def create_translator(language: Optional[str | Language] = None) -> Translator:
    t('botapp.i18n.translator.create_translator')
    return Translator(language if language is not None else DEFAULT_LANGUAGE)


__all__ = ['Translator', 'create_translator']
