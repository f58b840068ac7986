from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from resume_intake.schemas.resume_record import CanonicalResumeRecord


class ValidationOutcome(BaseModel):
    """Result of one schema walk; the three field lists partition CANONICAL_FIELDS."""

    model_config = ConfigDict(frozen=True)

    record: CanonicalResumeRecord | None
    mapped: list[str] = Field(default_factory=list)
    partial: list[str] = Field(default_factory=list)
    unmapped: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class PipelineResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    data: CanonicalResumeRecord | None
    unmapped_fields: list[str] = Field(default_factory=list)
    partial_fields: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    processing_time_ms: int
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_serializer("data")
    def _serialize_data(self, data: CanonicalResumeRecord | None) -> dict[str, Any] | None:
        if data is None:
            return None
        return data.model_dump(mode="json", exclude_none=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
