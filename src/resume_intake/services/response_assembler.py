from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Any, Optional

from resume_intake.errors import ErrorKind
from resume_intake.schemas.pipeline_result import PipelineResult
from resume_intake.schemas.resume_record import CANONICAL_FIELDS, CanonicalResumeRecord

_FIELD_CONFIDENCE = {"mapped": 1.0, "partial": 0.5, "unmapped": 0.0}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def in_canonical_order(names: Iterable[str]) -> list[str]:
    wanted = set(names)
    return [name for name in CANONICAL_FIELDS if name in wanted]


def collapse_errors(issues: Sequence[tuple[ErrorKind, str]]) -> list[str]:
    """One human-readable line per error kind, kinds in first-seen order."""
    grouped: dict[ErrorKind, list[str]] = {}
    for kind, message in issues:
        details = grouped.setdefault(kind, [])
        if message and message not in details:
            details.append(message)
    return [
        f"{kind.value}: {'; '.join(details)}" if details else kind.value
        for kind, details in grouped.items()
    ]


class ResponseAssembler:
    def __init__(self, worker_version: str) -> None:
        self.worker_version = worker_version

    def assemble(
        self,
        record: Optional[CanonicalResumeRecord],
        mapped: Sequence[str],
        partial: Sequence[str],
        unmapped: Sequence[str],
        errors: Sequence[tuple[ErrorKind, str]],
        elapsed_ms: int,
        meta: dict[str, Any],
        mode: str,
    ) -> PipelineResult:
        partial_fields = in_canonical_order(partial)
        unmapped_fields = in_canonical_order(unmapped)
        mapped_fields = in_canonical_order(mapped)
        error_lines = collapse_errors(errors)

        metadata: dict[str, Any] = {
            "worker_version": self.worker_version,
            "ai_model_used": meta.get("ai_model_used", "unknown"),
            "timestamp": _utc_now_iso(),
            "validation_mode": mode,
        }
        metadata.update({key: value for key, value in meta.items() if value is not None})
        if record is not None:
            confidence = {name: _FIELD_CONFIDENCE["mapped"] for name in mapped_fields}
            confidence.update({name: _FIELD_CONFIDENCE["partial"] for name in partial_fields})
            confidence.update({name: _FIELD_CONFIDENCE["unmapped"] for name in unmapped_fields})
            metadata["field_confidence"] = {name: confidence[name] for name in CANONICAL_FIELDS if name in confidence}

        return PipelineResult(
            success=record is not None and (not error_lines or mode == "flexible"),
            data=record,
            unmapped_fields=unmapped_fields,
            partial_fields=partial_fields,
            errors=error_lines,
            processing_time_ms=max(0, int(elapsed_ms)),
            metadata=metadata,
        )
