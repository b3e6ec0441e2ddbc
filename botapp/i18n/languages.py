"""Language constants and enums for internationalization."""

from enum import Enum


class Language(str, Enum):
    """Supported languages."""
    UKRAINIAN = "uk"
    ENGLISH = "en"


# Language used when the configured one is unknown
DEFAULT_LANGUAGE = Language.UKRAINIAN
