from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

CANONICAL_FIELDS: tuple[str, ...] = (
    "desired_titles",
    "summary",
    "skills",
    "experience",
    "location_preference",
    "schedule",
    "salary_expectation",
    "availability",
    "links",
)

PRESENT = "present"

SKILL_LEVEL_LABELS: dict[int, str] = {
    1: "basic",
    2: "limited",
    3: "proficient",
    4: "advanced",
    5: "expert",
}

SKILL_TYPES = (
    "programming_language",
    "spoken_language",
    "framework",
    "tool",
    "domain",
    "methodology",
    "soft_skill",
    "other",
)

SCHEDULES = ("full_time", "part_time", "contract", "freelance", "internship", "temporary")
LOCATION_TYPES = ("remote", "hybrid", "onsite")
SALARY_PERIODS = ("year", "month", "day", "hour", "project")

ValidationMode = Literal["strict", "flexible"]
VALIDATION_MODES: tuple[str, ...] = ("strict", "flexible")


class RecordModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Skill(RecordModel):
    name: str | None = None
    level: int | None = Field(default=None, ge=1, le=5)
    label: str | None = None
    type: str | None = None
    notes: str | None = None


class ExperienceEntry(RecordModel):
    employer: str | None = None
    title: str | None = None
    start: str | None = None
    end: str | None = None
    description: str | None = None
    location: str | None = None


class LocationPreference(RecordModel):
    type: str | None = None
    preferred_locations: list[str] = Field(default_factory=list)


class SalaryExpectation(RecordModel):
    currency: str | None = None
    min: float | None = None
    max: float | None = None
    periodicity: str | None = None
    notes: str | None = None


class Link(RecordModel):
    label: str | None = None
    url: str | None = None


class CanonicalResumeRecord(RecordModel):
    desired_titles: list[str] | None = None
    summary: str | None = None
    skills: list[Skill | str] | None = None
    experience: list[ExperienceEntry] | None = None
    location_preference: LocationPreference | None = None
    schedule: str | None = None
    salary_expectation: SalaryExpectation | None = None
    availability: str | None = None
    links: list[Link | str] | None = None
