"""Language preference, persisted in client-local storage."""

import logging

from .ports import KeyValueStore

logger = logging.getLogger(__name__)

LANGUAGE_KEY = "language"
SUPPORTED_LANGUAGES = ("en", "es")
DEFAULT_LANGUAGE = "es"


class LanguagePreference:
    """The UI language. Survives restarts and is never cleared on sign-out."""

    def __init__(self, storage: KeyValueStore):
        self._storage = storage

    @property
    def language(self) -> str:
        saved = self._storage.get(LANGUAGE_KEY)
        if saved in SUPPORTED_LANGUAGES:
            return saved
        if saved:
            logger.warning(f"Ignoring unsupported saved language {saved!r}")
        return DEFAULT_LANGUAGE

    def set(self, language: str) -> None:
        code = language.strip().lower()
        if code not in SUPPORTED_LANGUAGES:
            raise ValueError(
                f"Unsupported language {language!r} (choose from {', '.join(SUPPORTED_LANGUAGES)})"
            )
        self._storage.set(LANGUAGE_KEY, code)
