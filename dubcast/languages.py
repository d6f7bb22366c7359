"""
Supported dubbing language codes.

The closed set accepted by the dubbing provider, plus the distinguished
origin track that is extracted from the source video.
"""

from typing import Iterable, List

from dubcast import settings
from dubcast.exceptions import UnsupportedLanguageError, ValidationError

DUBBING_LANGUAGE_CODES = frozenset({
    "ar", "bg", "cs", "da", "de", "el", "en", "es", "fi", "fr",
    "he", "hi", "hu", "id", "it", "ja", "ko", "ms", "nl", "no",
    "pl", "pt", "ro", "ru", "sk", "sv", "th", "tr", "uk", "vi",
    "zh", "fil",
})


def is_origin(language: str) -> bool:
    return language == settings.get_origin_language()


def is_supported(language: str) -> bool:
    return language in DUBBING_LANGUAGE_CODES or is_origin(language)


def normalize_languages(languages: Iterable[str]) -> List[str]:
    """
    Lower-case, strip and de-duplicate requested languages, keeping order.

    Raises:
        ValidationError: If no languages are given
        UnsupportedLanguageError: If any code is outside the supported set
    """
    seen = []
    for raw in languages or []:
        code = str(raw).strip().lower()
        if code and code not in seen:
            seen.append(code)

    if not seen:
        raise ValidationError("No target languages specified", field="target_languages")

    unsupported = [code for code in seen if not is_supported(code)]
    if unsupported:
        raise UnsupportedLanguageError(unsupported)

    return seen
