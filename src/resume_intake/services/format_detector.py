from __future__ import annotations

import re
from typing import Literal, TypedDict

ResumeFormat = Literal["chronological", "functional", "hybrid"]

_DATE_RANGE_RE = re.compile(
    r"(?:\b(?:19|20)\d{2}\b|\b\d{1,2}[./]\d{4}\b)"
    r"\s*(?:-|–|—|to|по|until|till)\s*"
    r"(?:\b(?:19|20)\d{2}\b|\b\d{1,2}[./]\d{4}\b|present|current|now|настоящее|н\.\s?в\.)",
    re.IGNORECASE,
)

_EXPERIENCE_HEADINGS = (
    "experience",
    "work experience",
    "employment history",
    "professional experience",
    "опыт работы",
    "опыт",
    "места работы",
)

_FUNCTIONAL_HEADINGS = (
    "skills",
    "core competencies",
    "competencies",
    "key skills",
    "areas of expertise",
    "qualifications",
    "summary of qualifications",
    "навыки",
    "ключевые навыки",
    "компетенции",
    "профессиональные навыки",
)

# Resume sections the canonical record has no field for.
_SECTIONS_OUTSIDE_SCHEMA: dict[str, tuple[str, ...]] = {
    "education": ("education", "academic background", "образование"),
    "certifications": ("certifications", "certificates", "licenses", "сертификаты", "сертификация"),
    "projects": ("projects", "personal projects", "проекты"),
    "awards": ("awards", "honors", "achievements", "награды", "достижения"),
    "languages": ("languages", "языки", "знание языков", "иностранные языки"),
    "references": ("references", "рекомендации"),
    "volunteer": ("volunteer", "volunteering", "волонтерство", "волонтёрство"),
    "publications": ("publications", "публикации"),
}


class FormatHint(TypedDict):
    format_detected: ResumeFormat
    format_confidence: float


def _clean_lines(text: str) -> list[str]:
    lines: list[str] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if line.startswith("[Page ") and line.endswith("]"):
            continue
        line = re.sub(r"\s+", " ", line)
        lines.append(line)
    return lines


def _heading_key(line: str) -> str | None:
    if len(line) > 40:
        return None
    key = line.lower().strip(" :-—–•*#")
    return key or None


def _matches_heading(lines: list[str], headings: tuple[str, ...]) -> bool:
    for line in lines:
        key = _heading_key(line)
        if key and key in headings:
            return True
    return False


def detect_resume_format(text: str) -> FormatHint:
    """Guess the resume layout from dated ranges and section headings."""
    lines = _clean_lines(text)
    date_ranges = len(_DATE_RANGE_RE.findall(text))
    has_experience = _matches_heading(lines, _EXPERIENCE_HEADINGS)
    has_skills = _matches_heading(lines, _FUNCTIONAL_HEADINGS)

    chronological_score = min(date_ranges, 4) + (2 if has_experience else 0)
    functional_score = (3 + (1 if date_ranges == 0 else 0)) if has_skills else 0

    if chronological_score == 0 and functional_score == 0:
        return {"format_detected": "chronological", "format_confidence": 0.3}
    if chronological_score >= 3 and functional_score >= 3:
        confidence = min(chronological_score, functional_score) / max(chronological_score, functional_score)
        return {"format_detected": "hybrid", "format_confidence": round(0.5 + confidence / 2, 2)}

    total = chronological_score + functional_score
    if chronological_score >= functional_score:
        return {
            "format_detected": "chronological",
            "format_confidence": round(chronological_score / total, 2),
        }
    return {
        "format_detected": "functional",
        "format_confidence": round(functional_score / total, 2),
    }


def find_sections_outside_schema(text: str) -> list[str]:
    lines = _clean_lines(text)
    found: list[str] = []
    for section, headings in _SECTIONS_OUTSIDE_SCHEMA.items():
        if _matches_heading(lines, headings):
            found.append(section)
    return found
