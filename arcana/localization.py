"""Language enumeration and localized text bundles."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Mapping, Optional


class Language(Enum):
    EN = "English"
    RU = "Русский"

    @property
    def code(self) -> str:
        return self.name

    @property
    def display_name(self) -> str:
        return self.value

    @classmethod
    def default(cls) -> "Language":
        return next(iter(cls))

    @classmethod
    def from_code(cls, code: object) -> Optional["Language"]:
        if isinstance(code, Language):
            return code
        if not isinstance(code, str):
            return None
        return cls.__members__.get(code.strip().upper())

    def __str__(self) -> str:
        return self.display_name


class LocalizedText:
    """Text keyed by language, resolved with fallback to the default language."""

    def __init__(
        self,
        texts: Mapping[Language, str] | None = None,
        default_language: Language = Language.EN,
    ) -> None:
        self._texts: Dict[Language, str] = dict(texts or {})
        self.default_language = default_language

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[object, object] | None,
        default_language: Language = Language.EN,
    ) -> "LocalizedText":
        text = cls(default_language=default_language)
        for key, value in (data or {}).items():
            language = Language.from_code(key)
            if language is None or not isinstance(value, str):
                continue
            text.set_text(language, value)
        return text

    @classmethod
    def single(cls, value: str, language: Language = Language.EN) -> "LocalizedText":
        return cls({language: value}, default_language=language)

    def set_text(self, language: Language, value: str) -> None:
        self._texts[language] = value

    def get_text(self, language: Language | None = None) -> str:
        if language is not None and language in self._texts:
            return self._texts[language]
        if self.default_language in self._texts:
            return self._texts[self.default_language]
        # Any stored entry; which one wins is unspecified.
        for value in self._texts.values():
            return value
        return ""

    def has_text(self, language: Language) -> bool:
        return language in self._texts

    def all_texts(self) -> Dict[Language, str]:
        return dict(self._texts)

    def __bool__(self) -> bool:
        return bool(self._texts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LocalizedText):
            return NotImplemented
        return self._texts == other._texts and self.default_language == other.default_language

    def __repr__(self) -> str:
        entries = ", ".join(f"{lang.code}={text!r}" for lang, text in self._texts.items())
        return f"LocalizedText({entries})"
