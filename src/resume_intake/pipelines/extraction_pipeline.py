from __future__ import annotations

import json
import sys
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional, TypeVar

from resume_intake.config import Settings, load_settings
from resume_intake.errors import (
    ErrorKind,
    ExtractionFailedError,
    InferenceFailedError,
    InputInvalidError,
    PipelineCancelledError,
    ResumeIntakeError,
    SchemaValidationError,
)
from resume_intake.schemas.pipeline_result import PipelineResult, ValidationOutcome
from resume_intake.schemas.resume_record import CANONICAL_FIELDS, VALIDATION_MODES
from resume_intake.services.format_detector import detect_resume_format, find_sections_outside_schema
from resume_intake.services.pdf_co_client import PdfCoClient
from resume_intake.services.pdf_extractor import PypdfInlineExtractor
from resume_intake.services.response_assembler import ResponseAssembler
from resume_intake.services.resume_extractor import InferenceOrchestrator, InferenceResult
from resume_intake.services.schema_validator import SchemaValidator
from resume_intake.services.text_acquirer import AcquiredText, PdfTextAcquirer
from resume_intake.utils.logger import get_logger, sanitize_for_log

logger = get_logger(__name__)

T = TypeVar("T")

_STAGE_ERRORS: dict[ErrorKind, type[ResumeIntakeError]] = {
    ErrorKind.EXTRACTION_FAILED: ExtractionFailedError,
    ErrorKind.INFERENCE_FAILED: InferenceFailedError,
    ErrorKind.SCHEMA_VALIDATION_ERROR: SchemaValidationError,
}


def _run_stage(kind: ErrorKind, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    try:
        return func(*args, **kwargs)
    except ResumeIntakeError:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected failure in %s stage", kind.value)
        raise _STAGE_ERRORS[kind](f"{type(exc).__name__}: {exc}") from exc


def _check_cancelled(cancel_event: Optional[threading.Event], stage: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise PipelineCancelledError(f"Request cancelled before {stage}.")


class ExtractionPipeline:
    """START -> (PDF) ACQUIRE_TEXT -> INFER -> VALIDATE -> ASSEMBLE.

    Every run returns a PipelineResult; a failing stage jumps straight to assembly with
    ``success=False``. Instances hold only immutable configuration and collaborators, so one
    pipeline may serve concurrent requests.
    """

    def __init__(
        self,
        settings: Settings,
        orchestrator: InferenceOrchestrator,
        acquirer: Optional[PdfTextAcquirer] = None,
        validator: Optional[SchemaValidator] = None,
        assembler: Optional[ResponseAssembler] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings
        self._orchestrator = orchestrator
        self._acquirer = acquirer
        self._validator = validator or SchemaValidator(settings.required_fields)
        self._assembler = assembler or ResponseAssembler(settings.worker_version)
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExtractionPipeline":
        uploader = None
        if settings.pdf_co_api_key:
            uploader = PdfCoClient(settings.pdf_co_api_key, settings.pdf_co_base_url)
        acquirer = PdfTextAcquirer(
            inline_extractor=PypdfInlineExtractor(),
            uploader=uploader,
            external_extractor=uploader,
            size_threshold=settings.pdf_size_threshold_bytes,
            external_timeout_seconds=settings.external_timeout_seconds,
        )
        return cls(settings, InferenceOrchestrator.from_settings(settings), acquirer=acquirer)

    def process_text(
        self,
        resume_text: str,
        language: str = "en",
        validation_mode: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> PipelineResult:
        return self._run(
            resume_text=resume_text,
            pdf_bytes=None,
            filename=None,
            language=language,
            validation_mode=validation_mode,
            cancel_event=cancel_event,
        )

    def process_pdf(
        self,
        pdf_bytes: bytes,
        filename: str = "resume.pdf",
        language: str = "en",
        validation_mode: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> PipelineResult:
        return self._run(
            resume_text=None,
            pdf_bytes=pdf_bytes,
            filename=filename,
            language=language,
            validation_mode=validation_mode,
            cancel_event=cancel_event,
        )

    @staticmethod
    def _resolve_language(language: Any) -> str:
        if language is None:
            return "en"
        if not isinstance(language, str):
            raise InputInvalidError(
                f"language must be a string language code, got {type(language).__name__}"
            )
        return language.strip() or "en"

    def _resolve_mode(self, validation_mode: Optional[str]) -> str:
        if validation_mode is None:
            return self.settings.default_validation_mode
        mode = str(validation_mode).strip().lower()
        if mode not in VALIDATION_MODES:
            raise InputInvalidError(
                f"validation_mode must be one of {', '.join(VALIDATION_MODES)}, got {validation_mode!r}"
            )
        return mode

    def _check_text(self, resume_text: Any) -> str:
        if not isinstance(resume_text, str):
            raise InputInvalidError("resume_text is required and must be a string")
        if len(resume_text.strip()) < self.settings.min_text_chars:
            if not resume_text.strip():
                raise InputInvalidError("resume_text is empty")
            raise InputInvalidError(
                f"resume_text must be at least {self.settings.min_text_chars} characters"
            )
        return resume_text

    def _acquire(
        self,
        pdf_bytes: Any,
        filename: str,
        cancel_event: Optional[threading.Event],
    ) -> AcquiredText:
        if not isinstance(pdf_bytes, (bytes, bytearray)) or not pdf_bytes:
            raise InputInvalidError("PDF payload is empty")
        if self._acquirer is None:
            raise ExtractionFailedError("PDF text acquisition is not configured.")
        return _run_stage(
            ErrorKind.EXTRACTION_FAILED,
            self._acquirer.acquire_text,
            bytes(pdf_bytes),
            self.settings.pdf_size_threshold_bytes,
            filename=filename,
            cancel_event=cancel_event,
        )

    def _run(
        self,
        resume_text: Optional[str],
        pdf_bytes: Optional[bytes],
        filename: Optional[str],
        language: str,
        validation_mode: Optional[str],
        cancel_event: Optional[threading.Event],
    ) -> PipelineResult:
        started = self._clock()
        mode = self.settings.default_validation_mode
        issues: list[tuple[ErrorKind, str]] = []
        outcome: Optional[ValidationOutcome] = None
        meta: dict[str, Any] = {
            "input_type": "pdf" if pdf_bytes is not None else "text",
            "ai_model_used": self._orchestrator.model_name,
        }

        try:
            language = self._resolve_language(language)
            meta["language"] = language
            mode = self._resolve_mode(validation_mode)
            if pdf_bytes is not None:
                _check_cancelled(cancel_event, "text acquisition")
                acquired = self._acquire(pdf_bytes, filename or "resume.pdf", cancel_event)
                meta["acquisition_path"] = acquired.path
                meta["pdf_size_bytes"] = acquired.size_bytes
                text = acquired.text
            else:
                text = self._check_text(resume_text)

            logger.info(
                "Starting resume extraction: input=%s language=%s mode=%s preview=%r",
                meta["input_type"],
                language,
                mode,
                sanitize_for_log(text, 80),
            )
            meta.update(detect_resume_format(text))
            meta["sections_outside_schema"] = find_sections_outside_schema(text)

            _check_cancelled(cancel_event, "inference")
            inference: InferenceResult = _run_stage(
                ErrorKind.INFERENCE_FAILED,
                self._orchestrator.extract_structured,
                text,
                language,
                cancel_event=cancel_event,
            )
            meta["ai_model_used"] = inference.model
            meta["prompt_version"] = inference.prompt_version
            meta["inference_attempts"] = inference.attempts

            _check_cancelled(cancel_event, "validation")
            outcome = _run_stage(
                ErrorKind.SCHEMA_VALIDATION_ERROR,
                self._validator.validate,
                inference.raw_output,
                mode,
                language,
            )
            issues.extend((ErrorKind.SCHEMA_VALIDATION_ERROR, message) for message in outcome.errors)
            if outcome.warnings:
                logger.warning("Validation warnings: %s", "; ".join(outcome.warnings))
                meta["validation_warnings"] = list(outcome.warnings)
        except ResumeIntakeError as exc:
            if isinstance(exc, PipelineCancelledError):
                logger.info("Resume extraction cancelled: %s", exc.message)
            else:
                logger.error("Resume extraction failed: %s", exc)
            issues.append((exc.kind, exc.message))
            outcome = None

        elapsed_ms = int((self._clock() - started) * 1000)
        if outcome is None:
            result = self._assembler.assemble(
                None, [], [], CANONICAL_FIELDS, issues, elapsed_ms, meta, mode
            )
        else:
            result = self._assembler.assemble(
                outcome.record,
                outcome.mapped,
                outcome.partial,
                outcome.unmapped,
                issues,
                elapsed_ms,
                meta,
                mode,
            )

        logger.info(
            "Resume extraction completed: success=%s processing_time_ms=%s partial=%s unmapped=%s errors=%s",
            result.success,
            result.processing_time_ms,
            len(result.partial_fields),
            len(result.unmapped_fields),
            len(result.errors),
        )
        return result


def main() -> int:
    if not 2 <= len(sys.argv) <= 4:
        print(
            "Usage: python -m resume_intake.pipelines.extraction_pipeline "
            "/path/to/resume.(pdf|txt) [language] [strict|flexible]",
            file=sys.stderr,
        )
        return 1

    source = Path(sys.argv[1]).expanduser().resolve()
    language = sys.argv[2] if len(sys.argv) > 2 else "en"
    mode = sys.argv[3] if len(sys.argv) > 3 else None
    if not source.exists():
        print(f"Error: File not found: {source}", file=sys.stderr)
        return 1

    try:
        pipeline = ExtractionPipeline.from_settings(load_settings())
    except (EnvironmentError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if source.suffix.lower() == ".pdf":
        result = pipeline.process_pdf(source.read_bytes(), source.name, language, mode)
    else:
        result = pipeline.process_text(source.read_text(encoding="utf-8"), language, mode)

    print(json.dumps(result.to_json_dict(), indent=2, ensure_ascii=False))
    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
