"""Convert localized resume date phrases to ``YYYY-MM``, ``YYYY`` or ``present``."""

from __future__ import annotations

import re

from resume_intake.errors import DateUnparseableError
from resume_intake.schemas.resume_record import PRESENT

_MIN_YEAR = 1900
_MAX_YEAR = 2100

# Words per month: full name, inflected forms, abbreviations. Matching is exact.
_MONTH_WORDS: dict[str, tuple[tuple[str, ...], ...]] = {
    "en": (
        ("january", "jan"),
        ("february", "feb", "febr"),
        ("march", "mar"),
        ("april", "apr"),
        ("may",),
        ("june", "jun"),
        ("july", "jul"),
        ("august", "aug"),
        ("september", "sep", "sept"),
        ("october", "oct"),
        ("november", "nov"),
        ("december", "dec"),
    ),
    "ru": (
        ("январь", "января", "январе", "янв"),
        ("февраль", "февраля", "феврале", "фев", "февр"),
        ("март", "марта", "марте", "мар"),
        ("апрель", "апреля", "апреле", "апр"),
        ("май", "мая", "мае"),
        ("июнь", "июня", "июне", "июн"),
        ("июль", "июля", "июле", "июл"),
        ("август", "августа", "августе", "авг"),
        ("сентябрь", "сентября", "сентябре", "сен", "сент"),
        ("октябрь", "октября", "октябре", "окт"),
        ("ноябрь", "ноября", "ноябре", "ноя", "нояб"),
        ("декабрь", "декабря", "декабре", "дек"),
    ),
}

_MONTH_NAMES: dict[str, dict[str, int]] = {
    code: {word: month for month, words in enumerate(table, start=1) for word in words}
    for code, table in _MONTH_WORDS.items()
}

_PRESENT_PHRASES: dict[str, frozenset[str]] = {
    "en": frozenset(
        {
            "present",
            "current",
            "currently",
            "now",
            "ongoing",
            "today",
            "to date",
            "to present",
            "till now",
            "until now",
            "to now",
        }
    ),
    "ru": frozenset(
        {
            "настоящее время",
            "по настоящее время",
            "до настоящего времени",
            "наст время",
            "н в",
            "по н в",
            "сейчас",
            "по сей день",
            "текущее время",
            "текущий момент",
            "в настоящее время",
        }
    ),
}

_YEAR_SUFFIX_RE = re.compile(r"\s*(?:г|гг|год|года|году|yr|year)\s*$")
_ISO_MONTH_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")
_YEAR_RE = re.compile(r"^(\d{4})$")
_YEAR_MONTH_RE = re.compile(r"^(\d{4})[-/.](\d{1,2})$")
_MONTH_YEAR_RE = re.compile(r"^(\d{1,2})[-/.](\d{4})$")
_YEAR_MONTH_DAY_RE = re.compile(r"^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})(?:t.*)?$")
_NUMERIC_DAY_FIRST_RE = re.compile(r"^(\d{1,2})[-/.](\d{1,2})[-/.](\d{4})$")
_WORD_YEAR_RE = re.compile(r"^([^\W\d_]+)\.?,?\s+(\d{4})$")
_YEAR_WORD_RE = re.compile(r"^(\d{4}),?\s+([^\W\d_]+)\.?$")
_DAY_WORD_YEAR_RE = re.compile(r"^(\d{1,2})\s+([^\W\d_]+)\.?,?\s+(\d{4})$")
_WORD_DAY_YEAR_RE = re.compile(r"^([^\W\d_]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})$")

_RANGE_SPLIT_RE = re.compile(
    r"\s*[–—]\s*|\s+-\s+|\s+(?:to|until|till|through|по|до)\s+",
    re.IGNORECASE,
)
_RANGE_PREFIX_RE = re.compile(r"^(?:from|since|с|со)\s+", re.IGNORECASE)


def _language(locale_hint: str | None) -> str:
    return (locale_hint or "en").strip().lower().replace("_", "-").split("-")[0] or "en"


def _locale_order(locale_hint: str | None) -> list[str]:
    primary = _language(locale_hint)
    ordered = [primary] if primary in _MONTH_NAMES else []
    ordered.extend(code for code in _MONTH_NAMES if code not in ordered)
    return ordered


def _clean_phrase(phrase: str) -> str:
    cleaned = phrase.strip().lower().replace("ё", "е")
    cleaned = re.sub(r"\s+", " ", cleaned).rstrip(". ")
    cleaned = _YEAR_SUFFIX_RE.sub("", cleaned)
    return cleaned.strip(" ,;()")


def _present_key(cleaned: str) -> str:
    return re.sub(r"\s+", " ", re.sub(r"[^\w\s]", " ", cleaned)).strip()


def _format(year: int, month: int | None, phrase: str) -> str:
    if not (_MIN_YEAR <= year <= _MAX_YEAR):
        raise DateUnparseableError(phrase)
    if month is None:
        return f"{year:04d}"
    if not (1 <= month <= 12):
        raise DateUnparseableError(phrase)
    return f"{year:04d}-{month:02d}"


def _month_from_word(word: str, locale_hint: str | None) -> int | None:
    key = word.rstrip(".").lower()
    for code in _locale_order(locale_hint):
        month = _MONTH_NAMES[code].get(key)
        if month is not None:
            return month
    return None


def is_normalized(value: object) -> bool:
    if not isinstance(value, str):
        return False
    return value == PRESENT or bool(_ISO_MONTH_RE.match(value) or _YEAR_RE.match(value))


def is_present_phrase(phrase: str, locale_hint: str | None = None) -> bool:
    key = _present_key(_clean_phrase(phrase))
    return any(key in _PRESENT_PHRASES[code] for code in _locale_order(locale_hint))


def normalize(phrase: str, locale_hint: str | None = "en") -> str:
    """Normalize one date phrase.

    Accepts ISO forms unchanged, numeric month/year combinations, month names in English or
    Russian (full, genitive or abbreviated) with a year, and "current position" phrases.
    Numeric ``a/b/YYYY`` dates are read month-first for English and day-first otherwise.

    Raises:
        DateUnparseableError: when no recognized pattern matches.
    """
    if not isinstance(phrase, str) or not phrase.strip():
        raise DateUnparseableError(str(phrase))

    if is_normalized(phrase):
        return phrase

    cleaned = _clean_phrase(phrase)
    if is_present_phrase(cleaned, locale_hint):
        return PRESENT

    match = _YEAR_RE.match(cleaned)
    if match:
        return _format(int(match.group(1)), None, phrase)

    match = _YEAR_MONTH_RE.match(cleaned)
    if match:
        return _format(int(match.group(1)), int(match.group(2)), phrase)

    match = _MONTH_YEAR_RE.match(cleaned)
    if match:
        return _format(int(match.group(2)), int(match.group(1)), phrase)

    match = _YEAR_MONTH_DAY_RE.match(cleaned)
    if match:
        return _format(int(match.group(1)), int(match.group(2)), phrase)

    match = _NUMERIC_DAY_FIRST_RE.match(cleaned)
    if match:
        first, second = int(match.group(1)), int(match.group(2))
        month, other = (first, second) if _language(locale_hint) == "en" else (second, first)
        if month > 12 >= other:
            month = other
        return _format(int(match.group(3)), month, phrase)

    for pattern, word_group, year_group in (
        (_WORD_YEAR_RE, 1, 2),
        (_YEAR_WORD_RE, 2, 1),
        (_DAY_WORD_YEAR_RE, 2, 3),
        (_WORD_DAY_YEAR_RE, 1, 3),
    ):
        match = pattern.match(cleaned)
        if not match:
            continue
        month = _month_from_word(match.group(word_group), locale_hint)
        if month is not None:
            return _format(int(match.group(year_group)), month, phrase)

    raise DateUnparseableError(phrase)


def split_range(phrase: str) -> tuple[str, str | None]:
    """Split ``"Jan 2020 - Present"`` style ranges into their start and end phrases."""
    cleaned = _RANGE_PREFIX_RE.sub("", phrase.strip())
    parts = [part.strip() for part in _RANGE_SPLIT_RE.split(cleaned, maxsplit=1)]
    if len(parts) == 2 and parts[0] and parts[1]:
        return parts[0], parts[1]
    return cleaned, None
