from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

from resume_intake.config import DEFAULT_REQUIRED_FIELDS
from resume_intake.errors import DateUnparseableError
from resume_intake.schemas.pipeline_result import ValidationOutcome
from resume_intake.schemas.resume_record import (
    CANONICAL_FIELDS,
    LOCATION_TYPES,
    PRESENT,
    SALARY_PERIODS,
    SCHEDULES,
    SKILL_LEVEL_LABELS,
    SKILL_TYPES,
    CanonicalResumeRecord,
)
from resume_intake.services import date_normalizer

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
_SKILL_SPLIT_RE = re.compile(r"[,;\n]+")

_SCHEDULE_ALIASES = {
    "fulltime": "full_time",
    "full": "full_time",
    "permanent": "full_time",
    "parttime": "part_time",
    "contractor": "contract",
    "freelancer": "freelance",
    "intern": "internship",
    "temp": "temporary",
}

_PERIOD_ALIASES = {
    "annual": "year",
    "annually": "year",
    "yearly": "year",
    "per year": "year",
    "monthly": "month",
    "per month": "month",
    "daily": "day",
    "per day": "day",
    "hourly": "hour",
    "per hour": "hour",
    "per project": "project",
}

_LOCATION_ALIASES = {
    "on-site": "onsite",
    "on site": "onsite",
    "office": "onsite",
    "in office": "onsite",
    "remote only": "remote",
    "fully remote": "remote",
}


@dataclass
class _FieldCheck:
    value: Any
    partial: bool = False
    problems: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def flag(self, problem: str | None = None) -> None:
        self.partial = True
        if problem:
            self.problems.append(problem)


def _is_absent(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _text(value: Any) -> str | None:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = re.sub(r"[\s,_]", "", value)
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def _skill_level(value: Any) -> int | None:
    number = _number(value)
    if number is None or not number.is_integer():
        return None
    level = int(number)
    return level if level in SKILL_LEVEL_LABELS else None


def _is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)


def _type_name(value: Any) -> str:
    return type(value).__name__


def parse_candidate(candidate: Any) -> dict[str, Any] | None:
    """Turn untrusted model output into a mapping, or ``None`` when it is not a JSON object."""
    if isinstance(candidate, Mapping):
        return dict(candidate)
    if isinstance(candidate, bytes):
        candidate = candidate.decode("utf-8", errors="replace")
    if not isinstance(candidate, str):
        return None

    raw = candidate.strip()
    if raw.startswith("```"):
        raw = re.sub(r"^```(?:json)?\s*", "", raw)
        raw = re.sub(r"\s*```$", "", raw)
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        parsed = _parse_embedded_object(raw)
    return parsed if isinstance(parsed, dict) else None


def _parse_embedded_object(raw: str) -> Any:
    # Prose around a single object is tolerated; an array at the top level is not.
    if raw.startswith("["):
        return None
    start, end = raw.find("{"), raw.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        return json.loads(raw[start : end + 1])
    except json.JSONDecodeError:
        return None


def _check_desired_titles(raw: Any, language: str) -> _FieldCheck:
    check = _FieldCheck(value=None)
    if isinstance(raw, (list, tuple)):
        items = list(raw)
    else:
        items = [raw]
        check.flag(f"expected a list of titles, got {_type_name(raw)}")

    titles: list[str] = []
    for index, item in enumerate(items):
        title = _text(item)
        if title is None:
            check.flag(f"entry {index} is not a non-empty string")
            continue
        if title in titles:
            check.warnings.append(f"desired_titles contains duplicate {title!r}")
            continue
        titles.append(title)

    if not titles:
        check.flag("no usable titles")
    check.value = titles or None
    return check


def _check_summary(raw: Any, language: str) -> _FieldCheck:
    summary = _text(raw)
    if summary is not None and isinstance(raw, str):
        return _FieldCheck(value=summary)

    check = _FieldCheck(value=None)
    check.flag(f"expected a string, got {_type_name(raw)}")
    if isinstance(raw, (list, tuple)):
        parts = [part for part in (_text(item) for item in raw) if part]
        check.value = " ".join(parts) or None
    else:
        check.value = summary
    return check


def _coerce_skill(entry: dict[str, Any], index: int, check: _FieldCheck) -> dict[str, Any]:
    name = _text(entry.get("name") if entry.get("name") is not None else entry.get("skill"))
    if name is None:
        check.flag(f"skill {index} has no name")

    skill: dict[str, Any] = {"name": name}
    raw_level = entry.get("level")
    if raw_level is not None:
        level = _skill_level(raw_level)
        if level is None:
            check.flag(f"skill {name or index!r} has invalid level {raw_level!r} (must be 1-5)")
        skill["level"] = level

    label = _text(entry.get("label"))
    if label is not None:
        label = label.lower()
        expected = SKILL_LEVEL_LABELS.get(skill.get("level") or 0)
        if label not in SKILL_LEVEL_LABELS.values():
            check.warnings.append(f"skill {name or index!r} has unknown label {label!r}")
        elif expected and label != expected:
            check.warnings.append(
                f"skill {name or index!r} label {label!r} does not match level {skill['level']}"
            )
        skill["label"] = label

    skill_type = _text(entry.get("type"))
    if skill_type is not None:
        skill_type = skill_type.lower().replace(" ", "_")
        if skill_type not in SKILL_TYPES:
            check.warnings.append(f"skill {name or index!r} has unknown type {skill_type!r}")
        skill["type"] = skill_type

    notes = _text(entry.get("notes"))
    if notes is not None:
        skill["notes"] = notes
    return skill


def _check_skills(raw: Any, language: str) -> _FieldCheck:
    check = _FieldCheck(value=None)
    if isinstance(raw, (list, tuple)):
        items = list(raw)
    elif isinstance(raw, str):
        items = [part for part in _SKILL_SPLIT_RE.split(raw) if part.strip()]
        check.flag("expected a list of skills, got a delimited string")
    elif isinstance(raw, Mapping) and "name" in raw:
        items = [dict(raw)]
        check.flag("expected a list of skills, got a single object")
    elif isinstance(raw, Mapping):
        items = []
        for key, value in raw.items():
            if isinstance(value, (list, tuple)):
                items.extend(value)
            elif _skill_level(value) is not None:
                items.append({"name": key, "level": value})
            else:
                items.append(key)
        check.flag("expected a list of skills, got a grouped object")
    else:
        items = [raw]
        check.flag(f"expected a list of skills, got {_type_name(raw)}")

    skills: list[Any] = []
    for index, entry in enumerate(items):
        if isinstance(entry, str):
            name = _text(entry)
            if name is None:
                check.flag(f"skill {index} is an empty string")
                continue
            skills.append(name)
        elif isinstance(entry, Mapping):
            skills.append(_coerce_skill(dict(entry), index, check))
        else:
            check.flag(f"skill {index} has invalid type {_type_name(entry)}")
            text = _text(entry)
            if text is not None:
                skills.append(text)

    if not skills:
        check.flag("no usable skills")
    check.value = skills or None
    return check


def _normalize_date(
    raw: Any, label: str, language: str, check: _FieldCheck
) -> tuple[str | None, bool]:
    phrase = _text(raw)
    if phrase is None:
        check.warnings.append(f"{label}: unusable date value {raw!r}")
        return None, False
    try:
        return date_normalizer.normalize(phrase, language), True
    except DateUnparseableError:
        check.warnings.append(f"{label}: could not normalize date {phrase!r}")
        return None, False


def _coerce_experience(
    entry: dict[str, Any], index: int, language: str, check: _FieldCheck
) -> dict[str, Any]:
    label = f"experience[{index}]"
    employer = _text(entry.get("employer") or entry.get("company"))
    title = _text(entry.get("title") or entry.get("position") or entry.get("role"))
    description = entry.get("description")
    if isinstance(description, (list, tuple)):
        description = "\n".join(part for part in (_text(item) for item in description) if part)
    description = _text(description)

    if title is None and employer is None:
        check.flag(f"{label} has neither title nor employer")
    elif title is None:
        check.flag()

    start_raw = entry.get("start", entry.get("start_date"))
    end_raw = entry.get("end", entry.get("end_date"))
    period = entry.get("period") or entry.get("dates")
    if _is_absent(start_raw) and _is_absent(end_raw) and isinstance(period, str):
        start_raw, end_raw = date_normalizer.split_range(period)

    start: str | None = None
    if _is_absent(start_raw):
        check.flag()
    else:
        start, ok = _normalize_date(start_raw, f"{label}.start", language, check)
        if not ok:
            check.flag()

    end: str | None = None
    if not _is_absent(end_raw):
        end, ok = _normalize_date(end_raw, f"{label}.end", language, check)
        if not ok:
            check.flag()

    if start and end and end != PRESENT and start != PRESENT:
        width = min(len(start), len(end))
        if end[:width] < start[:width]:
            check.warnings.append(f"{label} ends ({end}) before it starts ({start})")

    return {
        "employer": employer,
        "title": title,
        "start": start,
        "end": end,
        "description": description,
        "location": _text(entry.get("location")),
    }


def _check_experience(raw: Any, language: str) -> _FieldCheck:
    check = _FieldCheck(value=None)
    if isinstance(raw, (list, tuple)):
        items = list(raw)
    else:
        items = [raw]
        check.flag(f"expected a list of experience entries, got {_type_name(raw)}")

    entries: list[dict[str, Any]] = []
    for index, entry in enumerate(items):
        if isinstance(entry, Mapping):
            entries.append(_coerce_experience(dict(entry), index, language, check))
            continue
        check.flag(f"experience[{index}] is not an object")
        text = _text(entry)
        if text is not None:
            entries.append({"description": text})

    if not entries:
        check.flag("no usable experience entries")
    check.value = entries or None
    return check


def _location_type(value: Any, check: _FieldCheck) -> str | None:
    text = _text(value)
    if text is None:
        return None
    lowered = text.lower()
    lowered = _LOCATION_ALIASES.get(lowered, lowered)
    if lowered not in LOCATION_TYPES:
        check.flag(f"invalid location preference type {text!r}")
    return lowered


def _check_location_preference(raw: Any, language: str) -> _FieldCheck:
    check = _FieldCheck(value=None)
    if isinstance(raw, str):
        check.flag("expected an object, got a string")
        lowered = _LOCATION_ALIASES.get(raw.strip().lower(), raw.strip().lower())
        if lowered in LOCATION_TYPES:
            check.value = {"type": lowered, "preferred_locations": []}
        else:
            check.value = {"preferred_locations": [raw.strip()]}
        return check
    if isinstance(raw, (list, tuple)):
        check.flag("expected an object, got a list")
        check.value = {"preferred_locations": [t for t in (_text(item) for item in raw) if t]}
        return check
    if not isinstance(raw, Mapping):
        check.flag(f"expected an object, got {_type_name(raw)}")
        return check

    location_type = _location_type(raw.get("type"), check)
    preferred = raw.get("preferred_locations", raw.get("locations"))
    locations: list[str] = []
    if isinstance(preferred, str):
        locations = [preferred.strip()] if preferred.strip() else []
        check.flag("preferred_locations must be a list")
    elif isinstance(preferred, (list, tuple)):
        locations = [t for t in (_text(item) for item in preferred) if t]
    elif preferred is not None:
        check.flag("preferred_locations must be a list")

    if location_type is None and not locations:
        check.flag("location preference has no usable values")
        return check
    check.value = {"type": location_type, "preferred_locations": locations}
    return check


def _check_schedule(raw: Any, language: str) -> _FieldCheck:
    check = _FieldCheck(value=None)
    if isinstance(raw, (list, tuple)) and raw:
        check.flag("expected a single schedule value, got a list")
        raw = raw[0]
    text = _text(raw)
    if text is None:
        check.flag(f"expected a string, got {_type_name(raw)}")
        return check

    key = re.sub(r"[\s-]+", "_", text.lower())
    key = _SCHEDULE_ALIASES.get(key.replace("_", ""), key)
    if key not in SCHEDULES:
        check.flag(f"invalid schedule {text!r}")
        check.value = text
        return check
    check.value = key
    return check


def _check_salary_expectation(raw: Any, language: str) -> _FieldCheck:
    check = _FieldCheck(value=None)
    if not isinstance(raw, Mapping):
        check.flag(f"expected an object, got {_type_name(raw)}")
        amount = _number(raw)
        if amount is not None:
            check.value = {"min": amount}
        elif _text(raw) is not None:
            check.value = {"notes": _text(raw)}
        return check

    salary: dict[str, Any] = {}
    currency = _text(raw.get("currency"))
    if currency is None:
        check.flag("salary_expectation must have currency")
    else:
        currency = currency.upper()
        if not _CURRENCY_RE.match(currency):
            check.flag(f"invalid currency {currency!r} (expected 3-letter code like USD)")
        salary["currency"] = currency

    for bound in ("min", "max"):
        if raw.get(bound) is None:
            continue
        amount = _number(raw.get(bound))
        if amount is None or amount < 0:
            check.flag(f"salary_expectation {bound} must be a non-negative number")
            continue
        salary[bound] = amount
    if "min" in salary and "max" in salary and salary["min"] > salary["max"]:
        check.warnings.append("salary_expectation min is greater than max")

    periodicity = _text(raw.get("periodicity") or raw.get("period"))
    if periodicity is None:
        check.flag("salary_expectation must have periodicity")
    else:
        periodicity = periodicity.lower()
        periodicity = _PERIOD_ALIASES.get(periodicity, periodicity)
        if periodicity not in SALARY_PERIODS:
            check.flag(f"invalid periodicity {periodicity!r}")
        salary["periodicity"] = periodicity

    notes = _text(raw.get("notes"))
    if notes is not None:
        salary["notes"] = notes
    if not salary:
        check.flag("salary expectation has no usable values")
    check.value = salary or None
    return check


def _check_availability(raw: Any, language: str) -> _FieldCheck:
    if isinstance(raw, str):
        return _FieldCheck(value=raw.strip())
    check = _FieldCheck(value=None)
    check.flag(f"expected a string, got {_type_name(raw)}")
    if isinstance(raw, (Mapping, list, tuple)):
        check.value = json.dumps(raw, ensure_ascii=False)
    else:
        check.value = _text(raw)
    return check


def _coerce_url(url: str, label: str, check: _FieldCheck) -> str:
    if _is_valid_url(url):
        return url
    if "." in url and " " not in url and "://" not in url:
        check.flag()
        return f"https://{url}"
    check.flag(f"{label} has invalid URL {url!r}")
    return url


def _check_links(raw: Any, language: str) -> _FieldCheck:
    check = _FieldCheck(value=None)
    if isinstance(raw, (list, tuple)):
        items = list(raw)
    elif isinstance(raw, Mapping) and ("url" in raw or "href" in raw):
        items = [dict(raw)]
        check.flag("expected a list of links, got a single object")
    elif isinstance(raw, Mapping):
        items = [{"label": key, "url": value} for key, value in raw.items()]
        check.flag("expected a list of links, got a label-to-url mapping")
    else:
        items = [raw]
        check.flag(f"expected a list of links, got {_type_name(raw)}")

    links: list[Any] = []
    for index, entry in enumerate(items):
        label = f"link {index}"
        if isinstance(entry, str):
            url = entry.strip()
            if not url:
                check.flag(f"{label} is an empty string")
                continue
            links.append(_coerce_url(url, label, check))
        elif isinstance(entry, Mapping):
            url = _text(entry.get("url") or entry.get("href"))
            link_label = _text(entry.get("label") or entry.get("name") or entry.get("type"))
            if url is None:
                check.flag(f"{label} must have a URL")
            else:
                url = _coerce_url(url, label, check)
            if link_label is None:
                check.flag(f"{label} must have a non-empty label")
            links.append({"label": link_label, "url": url})
        else:
            check.flag(f"{label} has invalid type {_type_name(entry)}")

    if not links:
        check.flag("no usable links")
    check.value = links or None
    return check


_FIELD_CHECKS: dict[str, Callable[[Any, str], _FieldCheck]] = {
    "desired_titles": _check_desired_titles,
    "summary": _check_summary,
    "skills": _check_skills,
    "experience": _check_experience,
    "location_preference": _check_location_preference,
    "schedule": _check_schedule,
    "salary_expectation": _check_salary_expectation,
    "availability": _check_availability,
    "links": _check_links,
}


class SchemaValidator:
    """Field-by-field coercion of model output into a CanonicalResumeRecord.

    Every schema field lands in exactly one of ``mapped``, ``partial`` or ``unmapped``.
    Structural problems are recorded as errors only in strict mode; dates are always
    best-effort and never produce errors.
    """

    def __init__(self, required_fields: tuple[str, ...] = DEFAULT_REQUIRED_FIELDS) -> None:
        self.required_fields = tuple(required_fields)

    def validate(self, candidate: Any, mode: str, language: str = "en") -> ValidationOutcome:
        strict = mode == "strict"
        data = parse_candidate(candidate)
        if data is None:
            return ValidationOutcome(
                record=None,
                unmapped=list(CANONICAL_FIELDS),
                errors=["model output is not a JSON object"],
            )

        values: dict[str, Any] = {}
        mapped: list[str] = []
        partial: list[str] = []
        unmapped: list[str] = []
        errors: list[str] = []
        warnings: list[str] = []

        for name in CANONICAL_FIELDS:
            raw = data.get(name)
            if _is_absent(raw):
                unmapped.append(name)
                if strict and name in self.required_fields:
                    errors.append(f"{name} is required but missing")
                continue

            check = _FIELD_CHECKS[name](raw, language)
            warnings.extend(check.warnings)
            values[name] = check.value
            if check.partial:
                partial.append(name)
                if strict:
                    errors.extend(f"{name}: {problem}" for problem in check.problems)
            else:
                mapped.append(name)

        return ValidationOutcome(
            record=CanonicalResumeRecord.model_validate(values),
            mapped=mapped,
            partial=partial,
            unmapped=unmapped,
            errors=errors,
            warnings=warnings,
        )
