"""Supported target languages — a static lookup table."""

from __future__ import annotations

from typing import NamedTuple


class Language(NamedTuple):
    """A selectable language."""

    code: str   # ISO 639-1 language code
    name: str   # Human-readable name


SUPPORTED_LANGUAGES: tuple[Language, ...] = (
    Language("en", "English"),
    Language("pt", "Portuguese"),
    Language("es", "Spanish"),
    Language("ru", "Russian"),
    Language("tr", "Turkish"),
    Language("fr", "French"),
)

_NAMES: dict[str, str] = {lang.code: lang.name for lang in SUPPORTED_LANGUAGES}


def language_name(code: str) -> str:
    """Resolve a language code to its display name, falling back to the code."""
    return _NAMES.get(code, code)


def is_supported(code: str) -> bool:
    """Check if a code is in the supported-language table."""
    return code in _NAMES
